"""
Crawl controller: drives the LIST -> DETAIL traversal.

A pool of asyncio workers consumes a shared frontier. LIST pages yield detail
links and the next listing page; DETAIL pages yield one record each, until
the result quota is reached.
"""
import asyncio
import logging
import random
from collections import defaultdict
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from core.crawl_config import CrawlInput
from core.net import BLOCK_RE, BlockedError, FetchError
from core.normalize import age_in_days, parse_posted_date
from core.result_storage import ResultStorage
from pipeline.document import Document
from pipeline.extractor import Extractor, build_record, stub_record
from pipeline.links import LinkResolver
from pipeline.models import JobRecord, PageRole, WorkItem
from pipeline.monitoring import MetricsCollector, get_metrics_collector

logger = logging.getLogger(__name__)


class CrawlState:
    """
    Run-wide shared state.

    ``try_emit`` is the only place records reach the storage: the quota
    check, the push and the increment happen under one lock, so ``saved``
    never exceeds ``quota``.
    """

    def __init__(self, quota: int):
        self.quota = quota
        self.saved = 0
        self.visited: Set[str] = set()
        self.visited_pages: Set[str] = set()
        self.pages_visited_per_seed: Dict[str, int] = defaultdict(int)
        self.abandoned: List[str] = []
        self._lock = asyncio.Lock()

    @property
    def quota_reached(self) -> bool:
        return self.saved >= self.quota

    def claim_urls(self, urls: Iterable[str]) -> List[str]:
        """Keep the URLs not seen before and mark them seen."""
        fresh = []
        for url in urls:
            if url not in self.visited:
                self.visited.add(url)
                fresh.append(url)
        return fresh

    def claim_page(self, url: str) -> bool:
        """Listing pages are always claimed so pagination cannot loop."""
        if url in self.visited_pages:
            return False
        self.visited_pages.add(url)
        return True

    def record_page(self, item: WorkItem):
        self.pages_visited_per_seed[item.seed or item.url] += 1

    async def try_emit(self, record: JobRecord, storage: ResultStorage) -> int:
        """
        Push a record if the quota allows it.

        Returns:
            The new saved count, or 0 if the quota was already met
        """
        async with self._lock:
            if self.saved >= self.quota:
                return 0
            await storage.push(record)
            self.saved += 1
            return self.saved


class CrawlController:
    """Worker pool over the frontier; LIST and DETAIL handlers."""

    def __init__(
        self,
        config: CrawlInput,
        fetcher,
        storage: ResultStorage,
        extractor: Optional[Extractor] = None,
        link_resolver: Optional[LinkResolver] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.fetcher = fetcher
        self.storage = storage
        self.metrics = metrics or get_metrics_collector()
        self.extractor = extractor or Extractor(metrics=self.metrics)
        self.link_resolver = link_resolver or LinkResolver(metrics=self.metrics)
        self.sleep = sleep
        self.state = CrawlState(config.results_wanted)
        self.enqueued: List[WorkItem] = []
        self._queue: Optional[asyncio.Queue] = None

    async def run(self, seed_urls: Iterable[str]) -> int:
        """
        Crawl from the seed URLs until the quota is reached or the frontier
        is exhausted.

        Returns:
            Number of records saved
        """
        self._queue = asyncio.Queue()
        for url in seed_urls:
            if self.state.claim_page(url):
                self._enqueue(WorkItem.seed_item(url))

        workers = [
            asyncio.create_task(self._worker(i))
            for i in range(self.config.max_concurrency)
        ]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return self.state.saved

    def _enqueue(self, item: WorkItem):
        self.enqueued.append(item)
        self._queue.put_nowait(item)

    def _delay_for(self, role: PageRole) -> float:
        if role == PageRole.DETAIL:
            low, high = self.config.detail_delay_ms_min, self.config.detail_delay_ms_max
        else:
            low, high = self.config.list_delay_ms_min, self.config.list_delay_ms_max
        return random.randint(low, high) / 1000.0

    async def _worker(self, worker_id: int):
        while True:
            item = await self._queue.get()
            try:
                await self._process(item)
            except Exception as e:
                logger.exception(f"[controller] Worker {worker_id} error on {item.url}: {e}")
            finally:
                self._queue.task_done()

    async def _process(self, item: WorkItem):
        if self.state.quota_reached:
            return

        await self.sleep(self._delay_for(item.role))
        if self.state.quota_reached:
            return

        document = None
        try:
            document = await self.fetcher.fetch(item)
            await asyncio.wait_for(
                self._handle(item, document),
                timeout=self.config.request_handler_timeout_secs,
            )
        except BlockedError as e:
            logger.warning(f"[controller] Blocked, abandoning {item.url}: {e}")
            self._abandon(item, blocked=True)
            await self.fetcher.retire_session(e.session_id)
        except FetchError as e:
            logger.warning(f"[controller] Fetch failed, abandoning {item.url}: {e}")
            self._abandon(item)
        except asyncio.TimeoutError:
            logger.error(
                f"[controller] Handler timed out after {self.config.request_handler_timeout_secs}s: {item.url}")
            self._abandon(item)
        except Exception as e:
            logger.exception(f"[controller] Failed {item.role.value} {item.url}: {e}")
            blocked = bool(BLOCK_RE.search(str(e)))
            self._abandon(item, blocked=blocked)
            if blocked and document is not None:
                await self.fetcher.retire_session(document.session_id)

    def _abandon(self, item: WorkItem, blocked: bool = False):
        self.state.abandoned.append(item.url)
        self.metrics.record_abandoned(blocked=blocked)

    async def _handle(self, item: WorkItem, document: Document):
        if item.role == PageRole.DETAIL:
            await self.handle_detail(item, document)
        else:
            await self.handle_list(item, document)

    async def handle_list(self, item: WorkItem, document: Document):
        state = self.state
        state.record_page(item)

        links = self.link_resolver.extract_detail_links(
            document, item.url, state=state if self.config.dedupe else None)
        to_take = max(0, min(state.quota - state.saved, len(links)))
        logger.info(
            f"[controller] LIST p{item.page_number}: found {len(links)} detail links | "
            f"taking {to_take} (saved={state.saved}/{state.quota})")
        if not links:
            logger.info(f"[controller] LIST p{item.page_number}: no detail links on {item.url}")

        if self.config.collect_details:
            for url in links[:to_take]:
                self._enqueue(item.detail(url))
        else:
            for url in links[:to_take]:
                saved = await state.try_emit(stub_record(url), self.storage)
                if not saved:
                    break
                self.metrics.record_saved()
                logger.info(f"[controller] LINK saved {saved}/{state.quota}: {url}")

        if state.quota_reached or item.page_number >= self.config.max_pages:
            return

        next_url = self.link_resolver.find_next_page(document, item.url, item.page_number)
        if not next_url:
            logger.info(f"[controller] LIST p{item.page_number}: no next page detected")
            return
        if state.claim_page(next_url):
            self._enqueue(item.next_page(next_url))

    async def handle_detail(self, item: WorkItem, document: Document):
        state = self.state
        if state.quota_reached:
            return

        record = build_record(self.extractor.extract(document), item.url)

        max_age = self.config.max_age_days
        if max_age and record.date_posted:
            posted = parse_posted_date(record.date_posted)
            if posted is not None:
                age = age_in_days(posted)
                if age > max_age:
                    logger.info(f"[controller] Skip old job ({age:.0f}d > {max_age}d): {item.url}")
                    self.metrics.record_skipped('too_old')
                    return

        saved = await state.try_emit(record, self.storage)
        if saved:
            self.metrics.record_saved()
            logger.info(f"[controller] DETAIL saved {saved}/{state.quota}: {item.url}")
