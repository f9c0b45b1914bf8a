#!/usr/bin/env python
"""Run the Wordpix web API.

Usage:
    python scripts/serve.py
    python scripts/serve.py --config config.yaml --port 8080
    python scripts/serve.py --storage json --data-dir ./data

Configuration is read from ``WORDPIX_*`` environment variables (and the
YAML file named by ``WORDPIX_CONFIG``); command-line flags override both.
Image generation requires ``FAL_KEY``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from _01_engine.config import GameConfig
from _01_engine.logging_config import setup_logging
from _03_ui import create_app

logger = logging.getLogger(__name__)


def main() -> int:
    """Server entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = argparse.ArgumentParser(
        description="Serve the Wordpix challenge API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument(
        "--storage",
        choices=("memory", "json"),
        default=None,
        help="Storage backend (overrides config)",
    )
    parser.add_argument("--data-dir", type=str, default=None, help="Directory for JSON storage")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (overrides config)")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")
    args = parser.parse_args()

    try:
        config = GameConfig.from_yaml(args.config) if args.config else GameConfig.from_env()
        if args.storage:
            config.storage = args.storage
        if args.data_dir:
            config.data_dir = args.data_dir
        if args.log_level:
            config.log_level = args.log_level
        if args.log_json:
            config.log_json = True
        config.validate()
    except (FileNotFoundError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, format_json=config.log_json)
    logger.info("Starting Wordpix on %s:%d (storage=%s)", args.host, args.port, config.storage)

    app = create_app(config=config)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
