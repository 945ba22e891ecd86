"""
CLI entry point for the mitrack MCP server.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from mitrack_mcp.config import LedgerConfig
from mitrack_mcp.core.exceptions import LedgerError
from mitrack_mcp.server import run_server


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="mitrack MCP Server - Double-entry ledger over MCP"
    )
    parser.add_argument(
        "--home",
        type=Path,
        help="Ledger home directory (default: $MITRACK_HOME or ~/.mitrack)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail listings on unreadable records instead of skipping them",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,  # MCP uses stdout for protocol, so log to stderr
    )

    try:
        config = LedgerConfig.from_env().with_overrides(home=args.home, strict=args.strict)
    except ValueError as e:
        parser.error(str(e))

    # Run the server
    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logging.info("Server stopped by user")
        sys.exit(0)
    except LedgerError as e:
        logging.error(f"Ledger error: {e}")
        sys.exit(1)
    except Exception as e:
        logging.exception(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
