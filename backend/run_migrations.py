from __future__ import annotations

import argparse
import logging
import sys

from bootstrap import run_bootstrap
from database import DATABASE_URL

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the workshop console schema and seed the default admin.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop every managed table before creating the schema. Destroys all data.",
    )
    parser.add_argument(
        "--skip-admin",
        action="store_true",
        help="Do not seed the admin from DEFAULT_ADMIN_EMAIL/DEFAULT_ADMIN_PASSWORD.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger.info("Bootstrapping schema on %s", DATABASE_URL.split("@")[-1])
    run_bootstrap(reset=args.reset, seed_admin=not args.skip_admin)
    logger.info("Schema ready.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
