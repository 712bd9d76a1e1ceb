"""
HTML fetcher: fetch a work item's page and parse it into a Document
"""
import logging
from typing import Dict, Optional

from core.crawl_config import CrawlInput
from core.net import HTTPClient
from pipeline.document import Document
from pipeline.models import PageRole, WorkItem

logger = logging.getLogger(__name__)

SITE_ROOT_URL = "https://careerviet.vn/"
ALL_JOBS_URL = "https://careerviet.vn/jobs/all-jobs-en.html"

# Detail pages look like they were opened from the listing
REFERERS = {
    PageRole.DETAIL: ALL_JOBS_URL,
    PageRole.LIST: SITE_ROOT_URL,
}


class HTMLFetcher:
    """Fetches pages for the crawl controller"""

    def __init__(self, http_client: Optional[HTTPClient] = None):
        self.http_client = http_client or HTTPClient()

    @classmethod
    def from_config(cls, config: CrawlInput, transport=None) -> 'HTMLFetcher':
        client = HTTPClient(
            max_sessions=config.max_sessions,
            proxy_configuration=config.proxy_configuration,
            max_request_retries=config.max_request_retries,
            timeout=config.navigation_timeout_secs,
            transport=transport,
        )
        return cls(client)

    def headers_for(self, item: WorkItem) -> Dict[str, str]:
        return {"Referer": REFERERS.get(item.role, SITE_ROOT_URL)}

    async def fetch(self, item: WorkItem) -> Document:
        """
        Fetch and parse the page of a work item.

        Raises:
            FetchError / BlockedError from the HTTP client
        """
        html, session_id = await self.http_client.fetch(item.url, headers=self.headers_for(item))
        return Document(html, url=item.url, session_id=session_id)

    async def retire_session(self, session_id: Optional[str]) -> bool:
        return await self.http_client.retire_session(session_id)

    async def aclose(self):
        await self.http_client.aclose()
