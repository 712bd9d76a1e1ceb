"""
Crawl orchestrator.

Wires configuration, fetcher, result storage and controller together for a
single crawl run.
"""

import logging
from typing import Optional

from core.crawl_config import CrawlInput, resolve_seed_urls
from core.result_storage import ResultStorage, get_result_storage
from crawler.controller import CrawlController
from crawler.html_fetch import HTMLFetcher
from pipeline.monitoring import MetricsCollector, get_metrics_collector

logger = logging.getLogger(__name__)


async def run_crawl(
    config: CrawlInput,
    storage: Optional[ResultStorage] = None,
    fetcher=None,
    metrics: Optional[MetricsCollector] = None,
) -> int:
    """
    Run one crawl.

    Args:
        config: Crawl input
        storage: Result storage (defaults to the configured JSON Lines file)
        fetcher: Page fetcher (defaults to an HTMLFetcher built from config)
        metrics: Metrics collector (defaults to the global one)

    Returns:
        Number of records saved
    """
    storage = storage or get_result_storage()
    metrics = metrics or get_metrics_collector()
    owns_fetcher = fetcher is None
    fetcher = fetcher or HTMLFetcher.from_config(config)

    seeds = resolve_seed_urls(config)
    logger.info(
        f"[orchestrator] Start: {seeds[0]} | target={config.results_wanted} | "
        f"maxPages={config.max_pages} | concurrency={config.max_concurrency}")
    if len(seeds) > 1:
        logger.info(f"[orchestrator] {len(seeds)} seed URLs")

    controller = CrawlController(config, fetcher, storage, metrics=metrics)
    try:
        saved = await controller.run(seeds)
    finally:
        if owns_fetcher:
            await fetcher.aclose()
        await storage.close()

    logger.info(f"[orchestrator] Finished. Saved {saved} job(s).")
    if controller.state.abandoned:
        logger.info(f"[orchestrator] Abandoned {len(controller.state.abandoned)} page(s)")
    metrics.log_summary()
    return saved
