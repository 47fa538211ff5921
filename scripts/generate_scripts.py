#!/usr/bin/env python3
"""Generate scripts for content_ready blocks.

Runs one batch of the script synthesis stage using Claude.

Usage:
    ./scripts/generate_scripts.py [--batch-size N]

Exit codes:
    0: Success
    1: Failed to run (missing API key, database unavailable)
    2: Partial success (some blocks failed)
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from daystart import jobs
from daystart.config import load_config
from daystart.content_store import ContentStore
from daystart.errors import PipelineError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate scripts for content_ready blocks")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Max blocks to process (default: from config)",
    )
    args = parser.parse_args()

    config = load_config()
    if args.batch_size is not None:
        config.synthesis.script_batch_size = args.batch_size

    try:
        with ContentStore(config.paths.db_path) as store:
            store.initialize()
            result = jobs.generate_scripts(config, store)
    except (PipelineError, ValueError) as e:
        logger.error(f"Script generation failed: {e}")
        return 1

    logger.info(f"Script generation {result.outcome.value}: {result.counts}")
    for error in result.errors:
        logger.error(error)
    return result.outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
