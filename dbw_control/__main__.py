"""
Main entry point when running the dbw_control module with python -m.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from .client import main, setup_logging
from .config import load_config

if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Drive-by-wire trajectory tracking controller over WebSocket"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file")
    parser.add_argument("--uri", type=str, default=None, help="WebSocket URI of the vehicle bridge")
    parser.add_argument(
        "--output-dir", type=str, default=".", help="Base directory for recorded runs (default: .)"
    )
    parser.add_argument("--no-record", action="store_true", help="Do not record ticks to CSV")
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        if args.uri:
            config = replace(config, ws_uri=args.uri)
    except (OSError, ValueError) as e:
        logging.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        asyncio.run(main(config, output_dir=args.output_dir, record=not args.no_record))
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
