#!/usr/bin/env python
"""Main entry point for the NoteTree MCP server."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from notetree import __version__
from notetree.config import config
from notetree.models.db_models import init_db
from notetree.observability import configure_logging, metrics
from notetree.server.mcp_server import NoteTreeMcpServer
from notetree.services.tree_validator import TreeValidator
from notetree.storage.record_store import RecordStore


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="NoteTree MCP Server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("NOTETREE_DATABASE_PATH")
    )
    parser.add_argument(
        "--in-memory",
        help="Use an in-memory database (contents are lost on exit)",
        action="store_true",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTETREE_LOG_LEVEL", "INFO")
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files (default: ~/.notetree/logs)",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--metrics-file",
        help="JSON file that keeps operation metrics across restarts",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--validate-only",
        help="Check the folder tree, report and exit (exit code 1 if corrupted)",
        action="store_true",
    )
    parser.add_argument(
        "--print-tree",
        help="Print the folder tree and exit",
        action="store_true",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.in_memory:
        config.in_memory_db = True
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    if args.metrics_file:
        config.metrics_file = Path(args.metrics_file)


def _save_metrics_on_exit():
    """Save metrics to disk on server shutdown."""
    if metrics.save_metrics():
        logging.getLogger(__name__).info("Metrics saved to disk on shutdown")


def main(argv=None):
    """Run the NoteTree MCP server."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Fall back to console logging if the log directory is unusable
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")
    if config.metrics_file:
        metrics.set_metrics_file(config.get_absolute_path(config.metrics_file))
        logger.info(f"Metrics persisted to {metrics.get_metrics_file()}")

    try:
        logger.info(f"Using SQLite database: {config.get_db_url()}")
        engine = init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    if args.print_tree or args.validate_only or config.validate_on_startup:
        validator = TreeValidator(RecordStore(engine=engine))
        if args.print_tree:
            print(validator.render_tree())
            return
        tree_ok = validator.check_on_startup()
        if args.validate_only:
            sys.exit(0 if tree_ok else 1)

    try:
        logger.info("Starting NoteTree MCP server")
        atexit.register(_save_metrics_on_exit)
        server = NoteTreeMcpServer(engine=engine)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
