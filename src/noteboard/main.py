#!/usr/bin/env python
"""Main entry point for the Noteboard MCP server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from noteboard.config import config
from noteboard.models.db_models import init_db
from noteboard.observability import configure_logging
from noteboard.server.mcp_server import NoteboardMcpServer
from noteboard.storage.sql_store import SqlNoteStore


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Noteboard MCP Server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("NOTEBOARD_DATABASE_PATH")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTEBOARD_LOG_LEVEL", "INFO")
    )
    parser.add_argument(
        "--canvas-width",
        help="Canvas width used until a client reports its own",
        type=float,
        default=None
    )
    parser.add_argument(
        "--canvas-height",
        help="Canvas height used until a client reports its own",
        type=float,
        default=None
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.canvas_width is not None:
        config.canvas_width = args.canvas_width
    if args.canvas_height is not None:
        config.canvas_height = args.canvas_height


def main():
    """Run the Noteboard MCP server."""
    args = parse_args()
    update_config(args)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except Exception as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    try:
        logger.info(f"Using SQLite database: {config.get_db_url()}")
        engine = init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    try:
        logger.info("Starting Noteboard MCP server")
        server = NoteboardMcpServer(store=SqlNoteStore(engine=engine))
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
