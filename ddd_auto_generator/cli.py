import argparse
import json
import logging
import sys
from typing import List, Optional

from ddd_auto_generator.ast_codegen_main import generate_code_from_schema
from ddd_auto_generator.config import load_config
from ddd_auto_generator.exceptions import DomainGeneratorError

# Import colored logging
from ddd_auto_generator.colored_logging import (
    setup_colored_logging,
    get_colored_logger,
    log_success,
    log_progress,
    log_section
)

# Note: Colored logging will be configured after parsing args
logger = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate event-sourced domain artifacts (aggregates, value objects, events, "
                    "error catalogs, persistence mappings, DTOs) from an entity-relationship schema."
    )
    parser.add_argument(
        "schema",
        help="Schema identifier: a directory under schemas_dir, or a path to a schema directory.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the YAML tool configuration file.",
    )
    parser.add_argument(
        "-s",
        "--schemas-dir",
        dest="schemas_dir",
        help="Directory holding the schema directories. Overrides config file setting.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        dest="output_dir",
        help="Directory to generate the artifacts in. Overrides config file setting.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=None,
        help="Overwrite existing files (files with identical content are left untouched).",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=None,
        help="Render every artifact without writing anything.",
    )
    parser.add_argument(
        "--unimplemented-rules",
        dest="unimplemented_rules",
        choices=["defer", "block"],
        help="'defer' flags unimplemented business rules at runtime, 'block' fails the table.",
    )
    parser.add_argument(
        "--report",
        help="Write the generation report as JSON to this path.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging for the generator tool.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    # --- Argument Parsing ---
    args = build_parser().parse_args(argv)

    # --- Logging Setup ---
    use_colors = not args.no_color
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_colored_logging(level=log_level, use_colors=use_colors)

    global logger
    logger = get_colored_logger(__name__)

    if args.verbose:
        logger.debug("Verbose mode enabled. DEBUG level logging activated.")
    if args.no_color:
        logger.debug("Color output disabled.")

    # --- Main Execution Pipeline ---
    try:
        # 1. Load Configuration
        log_progress(logger, "Loading configuration...")
        config = load_config(args.config, args)
        logger.debug(f"Effective configuration loaded: {config}")

        # 2. Load, normalize and generate
        report = generate_code_from_schema(args.schema, config)

        # 3. Report
        if args.report:
            with open(args.report, "w", encoding="utf-8") as f:
                json.dump(report.to_dict(), f, indent=2, sort_keys=True)
            logger.info(f"Generation report written to {args.report}")

        # --- Completion ---
        log_section(logger, "COMPLETION")
        if report.has_errors:
            logger.warning(f"Generation completed with {len(report.errors)} failed steps; see the log above.")
        else:
            log_success(logger, f"Domain artifacts generated in {config.output_dir}")
        return 0

    # --- Error Handling ---
    except DomainGeneratorError as e:
        logger.error(f"{type(e).__name__}: {e}", exc_info=args.verbose)
        return 1
    except OSError as e:
        logger.error(f"I/O Error: {e}", exc_info=args.verbose)
        return 1
    except Exception as e:
        # Catch any other unexpected exceptions
        logger.error(
            f"An unexpected error occurred during generation: {e}", exc_info=True
        )  # Always show traceback for unexpected
        return 1


# --- Script Entry Point ---
if __name__ == "__main__":
    sys.exit(main())
