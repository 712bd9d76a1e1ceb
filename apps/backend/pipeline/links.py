"""
Link & pagination resolver for listing pages.

Detail links come from a broad anchor scan with a narrower card-container
fallback. The next listing page comes from an ordered chain of pagination
rules; the first rule that yields a usable URL wins.
"""

import logging
import re
import unicodedata
from typing import Callable, Iterable, List, Optional

from .classifier import UrlClassifier, get_url_classifier, to_absolute
from .document import Document, Node
from .models import PageRole
from .monitoring import MetricsCollector, get_metrics_collector

logger = logging.getLogger(__name__)

# Listing item containers used when the broad scan finds nothing
CARD_SELECTORS = ['h2', '.job', '.job-card', '.job-item', '.job-title', '[data-job-id]']

# Attributes carrying a link target on script-driven cards
CARD_LINK_ATTRS = ['href', 'data-href', 'data-url']

# Matched against the whole folded label, never a substring of it
NEXT_LABEL_RE = re.compile(
    r'^(?:(?:next(?:\s+page)?|tiếp(?:\s+theo)?|trang\s+(?:sau|tiếp(?:\s+theo)?))\s*[›»>]*|[›»>]+)$'
)


def _fold(text: Optional[str]) -> str:
    return unicodedata.normalize('NFC', text or '').strip().lower()


def _unique(urls: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            out.append(url)
    return out


class PaginationRule:
    """One stage of the next-page chain, yielding candidate hrefs in page order."""

    def __init__(self, name: str, finder: Callable[[Document, int], Iterable[Optional[str]]]):
        self.name = name
        self.finder = finder

    def candidates(self, document: Document, current_page: int) -> Iterable[Optional[str]]:
        return self.finder(document, current_page)

    def __repr__(self):
        return f"PaginationRule({self.name})"


def _rel_next(document: Document, current_page: int):
    for node in document.select('a[rel~="next"], link[rel~="next"]'):
        yield node.attr('href')


def _next_label(document: Document, current_page: int):
    for node in document.select('a[href]'):
        text = _fold(node.text())
        aria = _fold(node.attr('aria-label'))
        if NEXT_LABEL_RE.match(text) or NEXT_LABEL_RE.match(aria):
            yield node.attr('href')


def _en_page_file(document: Document, current_page: int):
    for node in document.select(f'a[href*="-page-{current_page + 1}-en.html"]'):
        yield node.attr('href')


def _page_number(document: Document, current_page: int):
    wanted = str(current_page + 1)
    for node in document.select('a[href]'):
        if node.text() == wanted:
            yield node.attr('href')


def _vi_page_file(document: Document, current_page: int):
    for node in document.select(f'a[href*="trang-{current_page + 1}-vi.html"]'):
        yield node.attr('href')


PAGINATION_RULES = [
    PaginationRule('rel_next', _rel_next),
    PaginationRule('next_label', _next_label),
    PaginationRule('en_page_file', _en_page_file),
    PaginationRule('page_number', _page_number),
    PaginationRule('vi_page_file', _vi_page_file),
]


class LinkResolver:
    """Finds detail links and the next listing page on a listing page."""

    def __init__(self, classifier: Optional[UrlClassifier] = None,
                 pagination_rules: Optional[List[PaginationRule]] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.classifier = classifier or get_url_classifier()
        self.pagination_rules = list(pagination_rules) if pagination_rules is not None else list(PAGINATION_RULES)
        self.metrics = metrics or get_metrics_collector()

    def _detail_urls(self, hrefs: Iterable[Optional[str]], base_url: str) -> List[str]:
        urls = []
        for href in hrefs:
            absolute, role = self.classifier.classify_href(href, base_url)
            if absolute and role is PageRole.DETAIL:
                urls.append(absolute)
        return urls

    def _card_hrefs(self, cards: List[Node]):
        for card in cards:
            for attr in CARD_LINK_ATTRS[1:]:
                yield card.attr(attr)
            for anchor in card.select('a'):
                for attr in CARD_LINK_ATTRS:
                    yield anchor.attr(attr)

    def extract_detail_links(self, document: Document, base_url: str, state=None) -> List[str]:
        """
        Ordered, page-unique absolute detail URLs.

        Args:
            document: Parsed listing page
            base_url: URL the page was fetched from
            state: Optional crawl state; visited links are excluded and the
                returned links are claimed in its visited set

        Returns:
            Detail URLs not seen before
        """
        links = _unique(self._detail_urls(
            (a.attr('href') for a in document.select('a[href]')), base_url))

        if not links:
            cards = []
            for selector in CARD_SELECTORS:
                cards.extend(document.select(selector))
            links = _unique(self._detail_urls(self._card_hrefs(cards), base_url))
            if links:
                logger.debug(f"[links] Card fallback found {len(links)} detail links on {base_url}")

        if state is not None:
            links = state.claim_urls(links)
        return links

    def find_next_page(self, document: Document, base_url: str, current_page: int) -> Optional[str]:
        """
        Absolute URL of the next listing page, or None when pagination ends.
        """
        current = to_absolute(base_url, base_url)
        for rule in self.pagination_rules:
            for href in rule.candidates(document, current_page):
                absolute = to_absolute(href, base_url)
                if not absolute or absolute == current:
                    continue
                if self.classifier.is_detail(absolute):
                    logger.debug(f"[links] {rule.name} candidate is a detail page, skipping {absolute}")
                    continue
                logger.info(f"[links] Pagination via {rule.name} -> {absolute}")
                self.metrics.record_pagination_stage(rule.name)
                return absolute
        self.metrics.record_pagination_stage('none')
        return None
