#!/usr/bin/env python3
"""
Order Document Extraction System - Main Entry Point.

Command-line interface and programmatic access to the extraction
engines and the feedback refiner.

Usage:
    Command Line:
        python main.py --input order.pdf --engine cloud
        python main.py --input ./orders/ --engine local-regex --output ./results/
        python main.py --input order.pdf --context-file email.txt

        # Correct a stored result and learn from it
        python main.py --input order.pdf --previous results/order.json \\
            --feedback "The PO number is 4500099999" --rules rules.yaml --promote

    Python:
        from main import run_extraction
        results = run_extraction("order.pdf", engine="local-regex")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, List, Dict, Any

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager
from order_extraction.utils.logger import setup_logger_from_config, get_logger, ROOT_LOGGER_NAME
from order_extraction.utils.helpers import ensure_directory
from order_extraction.utils.exceptions import OrderExtractionError


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list; defaults to ``sys.argv[1:]``.

    Returns:
        Parsed argument namespace.
    """
    from order_extraction.engines import ENGINES

    parser = argparse.ArgumentParser(
        description="Order Document Extraction System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Extract a single order:
        python main.py --input order.pdf

    Extract a directory with the local pipeline:
        python main.py --input ./orders/ --engine local-regex --output ./results/

    Apply feedback to a stored result:
        python main.py --input order.pdf --previous results/order.json --feedback "..."
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input document or directory of documents"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output JSON file (single input) or directory (default: paths.outputs)"
    )

    parser.add_argument(
        "--engine", "-e",
        choices=list(ENGINES),
        default=None,
        help="Extraction engine (default: extraction.engine from config)"
    )

    parser.add_argument(
        "--rules", "-r",
        type=str,
        default=None,
        help="Rules file (YAML or JSON); defaults to rules.default from config"
    )

    parser.add_argument(
        "--context",
        type=str,
        default=None,
        help="Supplementary free text (e.g. the e-mail the order came with)"
    )

    parser.add_argument(
        "--context-file",
        type=str,
        default=None,
        help="File holding supplementary free text"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    # Feedback refinement
    parser.add_argument(
        "--feedback",
        type=str,
        default=None,
        help="Free-text correction applied to --previous"
    )

    parser.add_argument(
        "--previous",
        type=str,
        default=None,
        help="Stored result JSON the feedback applies to"
    )

    parser.add_argument(
        "--promote",
        action="store_true",
        help="Append the suggested rule to the --rules file"
    )

    # Logging options
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

    if args.feedback and not args.previous:
        parser.error("--feedback requires --previous")
    if args.promote and not (args.feedback and args.rules):
        parser.error("--promote requires --feedback and --rules")

    return args


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize the extraction system with configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)
    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)

    logger.info("=" * 60)
    logger.info("ORDER DOCUMENT EXTRACTION SYSTEM")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")

    return config


def load_rules(rules_path: Optional[str]):
    """Rules object from a file, or the configured default."""
    from order_extraction.model_inference.schema import TrainingRules

    if rules_path:
        return TrainingRules.from_file(rules_path)
    return TrainingRules.default()


def read_context(args: argparse.Namespace) -> Optional[str]:
    """Supplementary text from --context or --context-file."""
    if args.context_file:
        return Path(args.context_file).read_text(encoding='utf-8')
    return args.context


def write_json(data: Dict[str, Any], path: Path) -> Path:
    """Write a JSON document, creating parent directories."""
    ensure_directory(path.parent)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def run_extraction(
    input_path: str,
    engine: Optional[str] = None,
    rules_path: Optional[str] = None,
    supplementary_text: Optional[str] = None,
    config_path: Optional[str] = None
) -> Dict[str, Dict[str, Any]]:
    """
    Run extraction on a file or every supported file of a directory.

    Args:
        input_path: Path to input file or directory.
        engine: Engine identifier; defaults to config.
        rules_path: Optional rules file.
        supplementary_text: Free text attached to every document.
        config_path: Optional custom configuration file path.

    Returns:
        Result contract dictionaries keyed by filename.

    Example:
        >>> results = run_extraction("orders/", engine="local-regex")
        >>> results["order.pdf"]["mappedData"]["po_number"]
        '4500012345'
    """
    from order_extraction.input_handler import InputHandler
    from order_extraction.engines import EngineSelector

    logger = get_logger(__name__)
    ConfigurationManager(config_path)

    handler = InputHandler()
    input_p = Path(input_path)

    if input_p.is_dir():
        payloads = handler.load_batch(input_p)
        if supplementary_text:
            from dataclasses import replace
            payloads = [replace(p, supplementary_text=supplementary_text) for p in payloads]
    else:
        payloads = [handler.load(input_p, supplementary_text)]

    if not payloads:
        logger.warning(f"No supported documents found in: {input_path}")
        return {}

    selector = EngineSelector()
    rules = load_rules(rules_path)
    results = asyncio.run(selector.extract_many(payloads, rules, engine))

    return {
        payload.filename: result.to_dict()
        for payload, result in zip(payloads, results)
    }


def run_feedback(
    input_path: str,
    previous_path: str,
    feedback: str,
    rules_path: Optional[str] = None,
    promote: bool = False
) -> Dict[str, Any]:
    """
    Apply a free-text correction to a stored result.

    Args:
        input_path: The document the stored result belongs to.
        previous_path: Stored result contract JSON.
        feedback: Correction text.
        rules_path: Optional rules file.
        promote: Append the suggested rule to ``rules_path``.

    Returns:
        ``{"result": <merged contract>, "suggestedRule": str}``

    Raises:
        OrderExtractionError: If the refinement fails.
    """
    from order_extraction.input_handler import InputHandler
    from order_extraction.engines import EngineSelector
    from order_extraction.model_inference.extraction_result import ExtractionResult

    logger = get_logger(__name__)

    payload = InputHandler().load(input_path)
    with open(previous_path, 'r', encoding='utf-8') as f:
        previous = ExtractionResult.from_dict(json.load(f))

    rules = load_rules(rules_path)
    outcome = asyncio.run(
        EngineSelector().refine_with_feedback(payload, previous, feedback, rules)
    )

    if promote and rules_path:
        rules.promote_rule(outcome.suggested_rule).save(rules_path)
        logger.info(f"Suggested rule appended to {rules_path}")

    return {
        'result': outcome.result.to_dict(),
        'suggestedRule': outcome.suggested_rule,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        config = initialize_system(args)
        logger = get_logger(__name__)

        output_root = Path(config.get('paths.outputs', 'outputs'))

        if args.feedback:
            refined = run_feedback(
                input_path=args.input,
                previous_path=args.previous,
                feedback=args.feedback,
                rules_path=args.rules,
                promote=args.promote
            )
            output = Path(args.output) if args.output else Path(args.previous)
            write_json(refined['result'], output)
            logger.info(f"Refined result written to {output}")
            print(json.dumps(refined, indent=2, ensure_ascii=False))
            return 0

        results = run_extraction(
            input_path=args.input,
            engine=args.engine,
            rules_path=args.rules,
            supplementary_text=read_context(args),
            config_path=args.config
        )

        if not results:
            logger.error("No files to process")
            return 1

        single_file = Path(args.input).is_file()
        for filename, result in results.items():
            if single_file and args.output and Path(args.output).suffix == '.json':
                output = Path(args.output)
            else:
                output = Path(args.output or output_root) / f"{Path(filename).stem}.json"
            write_json(result, output)
            logger.info(f"{filename} -> {output}")

        degraded = sum(1 for r in results.values() if any(
            entry.get('key') == 'error' for entry in r['unmappedData']
        ))

        logger.info("=" * 60)
        logger.info(f"Extraction complete. Processed {len(results)} files, {degraded} degraded.")
        logger.info("=" * 60)

        return 0 if degraded == 0 else 2

    except OrderExtractionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
