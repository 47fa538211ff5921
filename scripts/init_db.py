#!/usr/bin/env python3
"""Create the content store schema.

Idempotent: existing tables and indexes are left as they are.

Usage:
    ./scripts/init_db.py [--db-path PATH]
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from daystart.config import load_config
from daystart.content_store import ContentStore
from daystart.errors import PipelineError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize the content store database")
    parser.add_argument("--db-path", type=Path, default=None, help="Database file (default: from config)")
    args = parser.parse_args()

    db_path = args.db_path or load_config().paths.db_path

    try:
        with ContentStore(db_path) as store:
            store.initialize()
    except PipelineError as e:
        logger.error(f"Database initialization failed: {e}")
        return 1

    logger.info(f"Database initialized at {db_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
