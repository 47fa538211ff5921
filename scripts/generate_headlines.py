#!/usr/bin/env python3
"""Create today's shared headlines block from RSS feeds.

The block is created as content_ready, or content_failed if no feed returned
any headlines.

Exit codes:
    0: Block created as content_ready
    1: Failed (database unavailable)
    2: Block created as content_failed
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from daystart.audit import AuditLog
from daystart.config import load_config
from daystart.content_store import ContentStore
from daystart.errors import PipelineError
from daystart.producers import ContentProducer, HeadlinesProducer
from daystart.status import ContentBlockStatus

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the shared headlines content block")
    parser.parse_args()

    config = load_config()

    try:
        with ContentStore(config.paths.db_path) as store:
            store.initialize()
            producer = ContentProducer(
                store, AuditLog(store), expiration_days=config.producers.content_expiration_days
            )
            block = HeadlinesProducer(producer, config.producers).produce()
    except PipelineError as e:
        logger.error(f"Headlines generation failed: {e}")
        return 1

    logger.info(f"Created headlines block {block.id} ({block.status.value})")
    return 0 if block.status is ContentBlockStatus.CONTENT_READY else 2


if __name__ == "__main__":
    sys.exit(main())
