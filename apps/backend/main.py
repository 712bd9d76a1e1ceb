"""
Command line entry point.

Reads the crawl input (JSON file from --input or CRAWLER_INPUT), runs the
crawl and writes records to --output or CRAWLER_OUTPUT.
"""

import os
import sys
import asyncio
import logging
import argparse
from typing import List, Optional

from dotenv import load_dotenv

from core.crawl_config import load_input
from core.result_storage import DEFAULT_OUTPUT_PATH, get_result_storage
from orchestrator import run_crawl

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl CareerViet job postings")
    parser.add_argument("--input", default=os.getenv("CRAWLER_INPUT"),
                        help="Path to the input JSON file (default: $CRAWLER_INPUT)")
    parser.add_argument("--output", default=os.getenv("CRAWLER_OUTPUT", DEFAULT_OUTPUT_PATH),
                        help="Path of the JSON Lines dataset (default: $CRAWLER_OUTPUT)")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"),
                        help="Logging level (default: $LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def cli(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_input(args.input)
        storage = get_result_storage("jsonl", args.output)
        saved = asyncio.run(run_crawl(config, storage=storage))
    except Exception as e:
        logger.exception(f"Crawl failed: {e}")
        return 1

    print(f"Saved {saved} job(s) to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(cli())
