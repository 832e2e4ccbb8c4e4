#!/usr/bin/env python3
"""
Invoice Pattern Extraction Engine - Main Entry Point.

Command-line interface and programmatic access to pattern-based invoice
field extraction over plain-text invoice content (the output of an
upstream OCR or PDF text-layer step).

Usage:
    Command Line:
        python main.py --input invoice.txt
        python main.py --input ./texts/ --output results.json
        python main.py --input invoice.txt --patterns my_patterns.yaml --probe

    Python:
        from main import run_extraction
        results = run_extraction("texts/")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager
from pattern_extraction.utils.logger import LOGGER_NAMESPACE, setup_logger_from_config, get_logger
from pattern_extraction.utils.helpers import ensure_directory, generate_timestamp
from pattern_extraction.utils.exceptions import PatternExtractionError
from pattern_extraction.patterns.library import PatternLibrary
from pattern_extraction.extraction.orchestrator import ExtractionOrchestrator
from pattern_extraction.extraction.source_text import SourceText

SUPPORTED_EXTENSIONS = {'.txt'}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Pattern Extraction Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Extract a single invoice text:
        python main.py --input invoice.txt

    Extract a directory of texts with a custom pattern library:
        python main.py --input ./texts/ --patterns patterns.yaml --output results.json

    Show what every pattern captures in a sample:
        python main.py --input invoice.txt --probe

    Print pattern library statistics:
        python main.py --stats
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        default=None,
        help="Input .txt file or directory of .txt files (required unless --stats)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output JSON file (default: outputs/extraction_results_<timestamp>.json)"
    )

    parser.add_argument(
        "--patterns", "-p",
        type=str,
        default=None,
        help="Pattern library YAML file (default: patterns.library_path)"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--probe",
        action="store_true",
        help="Report what every active pattern captures instead of extracting"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print pattern library statistics and exit"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    args = parser.parse_args(argv)
    if args.input is None and not args.stats:
        parser.error("--input is required unless --stats is given")
    return args


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)
    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.DEBUG)
        for handler in logging.getLogger(LOGGER_NAMESPACE).handlers:
            handler.setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.WARNING)

    logger.info("=" * 60)
    logger.info("INVOICE PATTERN EXTRACTION ENGINE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    if args.input:
        logger.info(f"Input: {args.input}")

    return config


def collect_inputs(input_path: str) -> List[Path]:
    """
    Resolve the input argument into the list of text files to process.

    Raises:
        FileNotFoundError: If the input path doesn't exist.
        ValueError: If a single file has an unsupported extension.
    """
    logger = get_logger(__name__)
    path = Path(input_path)

    if not path.exists():
        raise FileNotFoundError(f"Input path not found: {path}")

    if path.is_file():
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {path.suffix}")
        return [path]

    files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS)
    if not files:
        logger.warning(f"No .txt files found in: {path}")
    else:
        logger.info(f"Found {len(files)} files to process")
    return files


def load_sources(files: List[Path]) -> List[SourceText]:
    """Read text files into SourceText objects."""
    return [
        SourceText(
            text=file_path.read_text(encoding='utf-8', errors='replace'),
            extraction_method="TEXT_FILE",
            source_name=file_path.name
        )
        for file_path in files
    ]


def run_extraction(
    input_path: str,
    patterns_path: Optional[str] = None,
    config_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Run pattern extraction over a text file or directory.

    Args:
        input_path: Path to a .txt file or a directory of .txt files.
        patterns_path: Pattern library YAML file, defaults to config.
        config_path: Optional custom configuration file path.

    Returns:
        Dictionary with per-invoice results and the usage increments
        recorded during the run.

    Example:
        >>> output = run_extraction("texts/")
        >>> for r in output["results"]:
        ...     print(r["source"]["source_name"], r["status"])
    """
    logger = get_logger(__name__)
    ConfigurationManager(config_path)

    library = PatternLibrary.from_yaml(patterns_path)
    orchestrator = ExtractionOrchestrator(library=library)

    sources = load_sources(collect_inputs(input_path))
    results = orchestrator.extract_batch(sources)

    for result in results:
        logger.info(
            f"  {result.source.source_name}: {result.status.value}, "
            f"Invoice #{result.invoice_number or 'N/A'}, "
            f"Total {result.total_amount if result.total_amount is not None else 'N/A'}, "
            f"Confidence: {result.overall_confidence:.2f}"
        )

    usage = orchestrator.usage_tracker.drain()

    return {
        'library_version': library.version,
        'processed': len(results),
        'results': [result.to_dict() for result in results],
        'audit': [result.to_audit_fields() for result in results],
        'pattern_usage': [item.to_dict() for item in usage],
    }


def run_probe(input_path: str, patterns_path: Optional[str] = None) -> Dict[str, Any]:
    """Report what every active pattern captures in each input text."""
    library = PatternLibrary.from_yaml(patterns_path)
    orchestrator = ExtractionOrchestrator(library=library)

    return {
        source.source_name: orchestrator.probe_patterns(source.text)
        for source in load_sources(collect_inputs(input_path))
    }


def write_output(data: Dict[str, Any], output_path: Optional[str]) -> Path:
    """Write a JSON document, creating the parent directory."""
    if output_path is None:
        output_path = f"outputs/extraction_results_{generate_timestamp()}.json"

    path = Path(output_path)
    ensure_directory(path.parent)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = None
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        if args.stats:
            library = PatternLibrary.from_yaml(args.patterns)
            print(json.dumps(library.statistics(), indent=2, default=str))
            return 0

        if args.probe:
            report = run_probe(args.input, args.patterns)
            output_file = write_output(report, args.output)
            logger.info(f"Probe report: {output_file}")
            return 0

        output = run_extraction(args.input, args.patterns, args.config)
        if not output['processed']:
            logger.error("No files to process")
            return 1

        output_file = write_output(output, args.output)

        logger.info("=" * 60)
        logger.info(f"Extraction complete. Processed {output['processed']} files.")
        logger.info(f"Results: {output_file}")
        logger.info("=" * 60)

        return 0

    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except PatternExtractionError as e:
        print(f"Pattern library error: {e}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args is not None and args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
