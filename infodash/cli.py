"""Command-line interface for the infodash application."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import pprint
from pathlib import Path
from typing import List, Optional

from . import db
from .config import parse_app_config
from .runner import SECTIONS, build_session_factory, discover, execute

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Fetch feeds, stock quotes and weather into one JSON report."
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )

    # Overrides for logging/debugging
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )

    parser.add_argument(
        "--section",
        action="append",
        choices=SECTIONS,
        help="Only refresh the given section. May be repeated.",
    )
    parser.add_argument(
        "--discover",
        metavar="URL",
        help="List the feeds advertised by URL instead of refreshing.",
    )
    parser.add_argument(
        "--mark-read",
        metavar="LINK",
        action="append",
        default=[],
        help="Mark the article LINK as read before refreshing. May be repeated.",
    )
    parser.add_argument(
        "--toggle-saved",
        metavar="LINK",
        action="append",
        default=[],
        help="Toggle the saved flag of article LINK. May be repeated.",
    )

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def _update_article_state(
    session_factory, mark_read: List[str], toggle_saved: List[str]
) -> None:
    if session_factory is None:
        raise RuntimeError("Article state flags need a configured database.")
    with session_factory() as session:
        for link in mark_read:
            db.mark_read(session, link)
        for link in toggle_saved:
            saved = db.toggle_saved(session, link)
            logger.info("Article %s saved=%s", link, saved)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        # CLI overrides config
        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        config_dict = dataclasses.asdict(app_config)
        if config_dict["database"].get("connection_string"):
            config_dict["database"]["connection_string"] = "***MASKED***"
        logger.info("Active Configuration:\n%s", pprint.pformat(config_dict))

        if args.discover:
            output_text = discover(args.discover, app_config)
        else:
            session_factory = build_session_factory(app_config)
            if args.mark_read or args.toggle_saved:
                _update_article_state(session_factory, args.mark_read, args.toggle_saved)
            output_text = execute(
                app_config, sections=args.section, session_factory=session_factory
            ).output_text
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    print(output_text)
    return 0
