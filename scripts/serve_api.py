#!/usr/bin/env python3
"""Run the HTTP trigger API.

Binds to 127.0.0.1 for an nginx proxy; schedulers POST to the job routes.
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from daystart.api import create_app
from daystart.config import load_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="DayStart pipeline trigger API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5001)
    args = parser.parse_args()

    config = load_config()
    app = create_app(config)

    logger.info(f"Starting DayStart pipeline API on {args.host}:{args.port}")
    logger.info(f"Database: {config.paths.db_path}")

    app.run(
        host=args.host,
        port=args.port,
        debug=False,
        threaded=True,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
