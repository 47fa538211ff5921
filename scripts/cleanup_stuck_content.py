#!/usr/bin/env python3
"""Reclaim content stuck in an in-progress status.

Moves blocks that have sat in script_generating, audio_generating,
content_generating or retry_pending longer than the stuck timeout to their
failure status. Safe to run concurrently with the synthesis stages and with
itself: every move is a conditional write.

Usage:
    ./scripts/cleanup_stuck_content.py [--timeout-hours HOURS] [--dry-run]

Examples:
    # Reclaim blocks stuck for more than the configured timeout (default: 1 hour)
    ./scripts/cleanup_stuck_content.py

    # Preview what would be reclaimed
    ./scripts/cleanup_stuck_content.py --dry-run

Exit codes:
    0: Success
    1: Failed to run (database unavailable)
    2: Partial success (some blocks could not be reclaimed)
"""

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pydantic import ValidationError

from daystart import jobs
from daystart.config import PipelineConfig, SweepConfig, load_config
from daystart.content_store import ContentStore
from daystart.errors import PipelineError
from daystart.models import to_timestamp, utc_now
from daystart.status import failure_status_for

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


def preview(store: ContentStore, timeout_hours: float, batch_size: int) -> int:
    """Log the blocks a sweep would reclaim.

    Returns:
        Number of blocks that would be reclaimed
    """
    cutoff = utc_now() - timedelta(hours=timeout_hours)
    blocks = store.find_stuck_blocks(cutoff, batch_size)
    for block in blocks:
        logger.info(
            f"[DRY-RUN] Would move {block.id[:8]}... ({block.content_type.value}) "
            f"{block.status.value} -> {failure_status_for(block.status).value} "
            f"(updated={to_timestamp(block.updated_at)})"
        )
    logger.info(f"[DRY-RUN] Would reclaim {len(blocks)} stuck blocks")
    return len(blocks)


def build_config(timeout_hours: Optional[float] = None) -> PipelineConfig:
    """Load the configuration, applying a validated stuck-timeout override.

    Raises:
        pydantic.ValidationError: If the override is not a positive number of hours
    """
    if timeout_hours is None:
        return load_config()
    return load_config(sweeps=SweepConfig(stuck_timeout_hours=timeout_hours))


def main() -> int:
    """Main entry point.

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(
        description="Reclaim content blocks stuck in an in-progress status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --timeout-hours 2
  %(prog)s --dry-run

  # Cron entry, every 15 minutes
  */15 * * * * /srv/daystart/scripts/cleanup_stuck_content.py
        """,
    )
    parser.add_argument(
        "--timeout-hours",
        type=float,
        default=None,
        help="Treat in-progress blocks older than this as stuck (default: from config)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be reclaimed without changing anything",
    )
    args = parser.parse_args()

    try:
        config = build_config(args.timeout_hours)
    except ValidationError as e:
        parser.error(f"invalid --timeout-hours: {e.errors()[0]['msg']}")

    try:
        with ContentStore(config.paths.db_path) as store:
            store.initialize()
            if args.dry_run:
                preview(store, config.sweeps.stuck_timeout_hours, config.sweeps.stuck_batch_size)
                return 0
            result = jobs.cleanup_stuck_content(config, store)
    except PipelineError as e:
        logger.error(f"Stuck content cleanup failed: {e}")
        return 1

    logger.info(
        f"Stuck content cleanup {result.outcome.value}: "
        f"{result.counts['cleaned']}/{result.counts['found']} cleaned, "
        f"{result.counts['skipped']} skipped"
    )
    for error in result.errors:
        logger.error(error)
    return result.outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
