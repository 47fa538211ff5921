#!/usr/bin/env python3
"""Delete audio for expired content and mark it expired.

Blocks whose expiration date has passed lose their audio object and move to
the expired status. Rows are kept for audit. Storage failures do not stop the
database update; they are reported and the run exits with status 2.

Usage:
    ./scripts/expire_content.py [--dry-run]

Exit codes:
    0: Success
    1: Failed to run (database unavailable, storage misconfigured)
    2: Partial success (some blocks or objects could not be cleaned up)
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
from daystart.models import utc_now

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


def preview(store: ContentStore, batch_size: int) -> int:
    """Log the first page of blocks a sweep would expire.

    Returns:
        Number of blocks listed
    """
    blocks = store.find_expired_blocks(utc_now().date(), batch_size)
    for block in blocks:
        logger.info(
            f"[DRY-RUN] Would expire {block.id[:8]}... ({block.content_type.value}, "
            f"expired {block.expiration_date}, status={block.status.value}): {block.audio_location}"
        )
    logger.info(f"[DRY-RUN] {len(blocks)} expired blocks in first page (page size {batch_size})")
    return len(blocks)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Reclaim audio storage for expired content",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --dry-run

  # Cron entry for daily cleanup at 3 AM
  0 3 * * * /srv/daystart/scripts/expire_content.py
        """,
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be expired without deleting anything",
    )
    args = parser.parse_args()

    config = load_config()

    try:
        with ContentStore(config.paths.db_path) as store:
            store.initialize()
            if args.dry_run:
                preview(store, config.sweeps.expiration_batch_size)
                return 0
            result = jobs.expire_content(config, store)
    except (PipelineError, ValueError) as e:
        logger.error(f"Expiration cleanup failed: {e}")
        return 1

    logger.info(
        f"Expiration cleanup {result.outcome.value}: "
        f"{result.counts['processed']} processed, {result.counts['expired']} expired, "
        f"{result.counts['audio_deleted']} audio files deleted"
    )
    for error in result.errors:
        logger.error(error)
    return result.outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
