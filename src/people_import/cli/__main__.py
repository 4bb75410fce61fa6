from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from people_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from people_import.logging.init import log_summary, setup_logging
from people_import.services.matching_client import MatchingServiceClient
from people_import.services.orchestrator import ProcessingError, process_files
from people_import.services.summary import render_summary_line
from people_import.tabular.reader import write_template

"""CLI entrypoint.

    people-import FILE_OR_DIR [...] [--config PATH] [--dry-run] [--debug]
    people-import --template people_template.csv

Exit codes: 0 every file imported, 2 at least one file failed, 1 fatal
startup error (configuration, missing input).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so PEOPLE_IMPORT_API_URL set there wins over the config file."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="people-import", description="Bulk people import (CSV / Excel)")
    p.add_argument("paths", nargs="*", type=Path, help="Files or directories to import")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config file (YAML)")
    p.add_argument("--dry-run", action="store_true", help="Stop after preview; nothing is committed")
    p.add_argument("--template", type=Path, metavar="PATH", help="Write the column template CSV and exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when no argv was passed (tests call main([]))
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    if args.template is not None:
        written = write_template(args.template)
        logger.info(f"template written: {written}")
        return EXIT_SUCCESS_ALL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not args.paths:
        logger.error("no input files given")
        return EXIT_FATAL

    client = MatchingServiceClient(cfg.service.base_url, timeout_seconds=cfg.service.timeout_seconds)
    mode = "dry-run" if args.dry_run else "live"
    logger.info(f"mode={mode} service={cfg.service.base_url}")

    try:
        result = process_files(args.paths, cfg, client, dry_run=args.dry_run)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
