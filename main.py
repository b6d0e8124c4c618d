import argparse
import sys

from docsim.core.config import EngineConfig
from docsim.core.logging_config import get_logger, setup_logging
from docsim.core.orchestrator import AnalysisOrchestrator
from docsim.core.validation import ValidationError
from docsim.utils.report import export_matches_csv, format_report
from docsim.utils.text_loader import load_text_documents


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare up to five plain-text documents for near-duplicate sentences."
    )
    parser.add_argument("paths", nargs="+", help="Text files or directories of text files")
    parser.add_argument("-t", "--threshold", type=float, default=None,
                        help="Minimum sentence similarity in [0, 1] (default from DOCSIM_DEFAULT_THRESHOLD)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--csv", metavar="PATH", help="Also write the ranked matches to a CSV file")
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size (default: CPU count)")
    parser.add_argument("--progress", action="store_true", help="Show progress bars")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = EngineConfig.from_env(
            max_workers=args.workers,
            log_level=args.log_level,
            show_progress=args.progress or None,
        )
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    setup_logging(
        log_level=config.log_level,
        log_dir=config.log_dir,
        structured_logging=config.structured_logging,
        enable_console=True,
        enable_file=config.log_to_file,
    )
    logger = get_logger(__name__)

    # Step 1: Load plain-text documents
    try:
        documents = load_text_documents(args.paths)
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    logger.info(f"Loaded {len(documents)} documents from {len(args.paths)} path(s)")

    # Step 2: Run the similarity analysis
    orchestrator = AnalysisOrchestrator(config)
    try:
        result = orchestrator.analyze(documents, args.threshold)
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    # Step 3: Report
    if args.json:
        print(result.to_json(indent=2))
    else:
        print(format_report(result))

    if args.csv:
        path = export_matches_csv(result, args.csv)
        print(f"\nMatches written to {path}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
