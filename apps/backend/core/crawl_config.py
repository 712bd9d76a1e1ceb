"""
Crawl input configuration.

Parses the input JSON into a CrawlInput model and derives the seed URLs.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

ENGLISH_ALL_JOBS_URL = "https://careerviet.vn/jobs/all-jobs-en.html"
VI_SEARCH_URL = "https://careerviet.vn/vi/tim-viec-lam/tat-ca-viec-lam"

# Site-side recency filter values; other ages are only applied at extraction
POSTED_AGE_MAP = {1: '24h', 7: '7d', 30: '30d'}

# Accepted spellings of "how many results", first finite one wins
RESULT_ALIASES = ('results_wanted', 'jobs', 'max_items', 'maxItems', 'maxResults', 'limit')

DEFAULT_RESULTS_WANTED = 10
DEFAULT_MAX_PAGES = 25


def _finite_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class CrawlInput(BaseModel):
    """Input options for a crawl run. Unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    keyword: str = ''
    location: str = ''
    max_age_days: Optional[int] = None
    results_wanted: int = Field(default=DEFAULT_RESULTS_WANTED, ge=1)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)

    collect_details: bool = Field(default=True, alias='collectDetails')
    dedupe: bool = True

    max_concurrency: int = Field(default=10, ge=1, alias='maxConcurrency')
    list_delay_ms_min: int = Field(default=150, ge=0, alias='listDelayMsMin')
    list_delay_ms_max: int = Field(default=600, ge=0, alias='listDelayMsMax')
    detail_delay_ms_min: int = Field(default=200, ge=0, alias='detailDelayMsMin')
    detail_delay_ms_max: int = Field(default=700, ge=0, alias='detailDelayMsMax')

    start_url: Optional[str] = Field(default=None, alias='startUrl')
    start_urls: List[Any] = Field(default_factory=list, alias='startUrls')
    url: Optional[str] = None

    proxy_configuration: Optional[Any] = Field(default=None, alias='proxyConfiguration')
    max_sessions: int = Field(default=10, ge=1, alias='maxSessions')
    max_request_retries: int = Field(default=3, ge=0, alias='maxRequestRetries')
    request_handler_timeout_secs: float = Field(default=90, gt=0, alias='requestHandlerTimeoutSecs')
    navigation_timeout_secs: float = Field(default=45, gt=0, alias='navigationTimeoutSecs')

    @model_validator(mode='before')
    @classmethod
    def _coerce_raw_input(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        wanted = next(
            (n for n in (_finite_number(data.get(key)) for key in RESULT_ALIASES) if n is not None),
            None,
        )
        for key in RESULT_ALIASES[1:]:
            data.pop(key, None)
        data['results_wanted'] = max(1, int(wanted)) if wanted is not None else DEFAULT_RESULTS_WANTED

        pages = _finite_number(data.get('max_pages'))
        data['max_pages'] = max(1, int(pages)) if pages is not None else DEFAULT_MAX_PAGES

        age = _finite_number(data.get('max_age_days'))
        data['max_age_days'] = int(age) if age else None

        for key in ('maxConcurrency', 'max_concurrency'):
            concurrency = _finite_number(data.get(key))
            if concurrency is not None:
                data[key] = max(1, int(concurrency))

        for key in ('startUrls', 'start_urls'):
            if key in data and not isinstance(data[key], list):
                data[key] = []
        return data

    @model_validator(mode='after')
    def _clamp_delays(self) -> 'CrawlInput':
        if self.list_delay_ms_max < self.list_delay_ms_min:
            self.list_delay_ms_max = self.list_delay_ms_min
        if self.detail_delay_ms_max < self.detail_delay_ms_min:
            self.detail_delay_ms_max = self.detail_delay_ms_min
        return self


def build_start_url(keyword: str = '', location: str = '', max_age_days: Optional[int] = None) -> str:
    """
    Start URL for a filter-driven crawl.

    No filters: the English all-jobs listing. With filters: the Vietnamese
    search listing with query parameters.
    """
    if not keyword and not location:
        return ENGLISH_ALL_JOBS_URL

    params = {}
    if keyword:
        params['keyword'] = keyword
    if location:
        params['location'] = location
    if max_age_days and max_age_days in POSTED_AGE_MAP:
        params['posted'] = POSTED_AGE_MAP[max_age_days]
    return f"{VI_SEARCH_URL}?{urlencode(params)}"


def resolve_seed_urls(config: CrawlInput) -> List[str]:
    """Explicit start URLs in input order, or the built start URL."""
    candidates = []
    for entry in config.start_urls:
        if isinstance(entry, dict):
            entry = entry.get('url')
        if isinstance(entry, str) and entry.strip():
            candidates.append(entry.strip())
    for entry in (config.start_url, config.url):
        if entry and entry.strip():
            candidates.append(entry.strip())

    seeds = list(dict.fromkeys(candidates))
    if not seeds:
        seeds.append(build_start_url(config.keyword, config.location, config.max_age_days))
    return seeds


def load_input(path: Optional[str] = None) -> CrawlInput:
    """
    Load crawl input from a JSON file.

    A missing path yields the defaults; a missing file is an error.
    """
    if not path:
        logger.info("[config] No input file given, using defaults")
        return CrawlInput()

    input_path = Path(path)
    with open(input_path, 'r', encoding='utf-8') as f:
        data: Dict[str, Any] = json.load(f) or {}
    logger.info(f"[config] Loaded input from {input_path}")
    return CrawlInput.model_validate(data)
