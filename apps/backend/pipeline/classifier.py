"""
URL classifier.

Decides whether an absolute URL is a listing page or a job detail page using
an ordered list of locale-specific path rules (first match wins).
"""

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from .models import PageRole

logger = logging.getLogger(__name__)

SKIP_SCHEMES = ('javascript:', 'mailto:', 'tel:', 'data:')


class UrlRule:
    """A single path pattern mapped to a page role."""

    def __init__(self, name: str, role: PageRole, pattern: str):
        self.name = name
        self.role = role
        self.regex = re.compile(pattern, re.IGNORECASE)

    def matches(self, url: str) -> bool:
        return bool(self.regex.search(url))

    def __repr__(self):
        return f"UrlRule({self.name}, {self.role.value})"


# Detail rules come first so a detail page is never shadowed by a listing rule.
DEFAULT_RULES = [
    # EN current: /en/search-job/<slug>.<id>.html
    UrlRule('en_detail', PageRole.DETAIL,
            r'careerviet\.vn/en/search-job/[^/?#]+\.[A-Za-z0-9]+\.html'),
    # VI: /vi/tim-viec-lam/<slug>.<digits>.html
    UrlRule('vi_detail', PageRole.DETAIL,
            r'careerviet\.vn/vi/tim-viec-lam/[^/?#]+\.\d+\.html'),
    # Legacy EN: /jobs/<slug>-<digits>.html
    UrlRule('legacy_detail', PageRole.DETAIL,
            r'careerviet\.vn/jobs/[^/?#]+-\d+\.html'),
    UrlRule('en_listing', PageRole.LIST,
            r'careerviet\.vn/(?:en/)?jobs/[^?#]*all-jobs[^/?#]*\.html'),
    UrlRule('en_page_file', PageRole.LIST,
            r'careerviet\.vn/[^?#]*-page-\d+-en\.html'),
    UrlRule('vi_listing', PageRole.LIST,
            r'careerviet\.vn/vi/tim-viec-lam/tat-ca-viec-lam'),
    UrlRule('vi_page_file', PageRole.LIST,
            r'careerviet\.vn/[^?#]*trang-\d+-vi\.html'),
    UrlRule('en_search', PageRole.LIST,
            r'careerviet\.vn/en/search-job(?:/[^/?#.]*)?(?:[?#]|/?$)'),
]


def to_absolute(href: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve an href against the page URL.

    Returns None for empty hrefs, non-navigational schemes and anything that
    does not resolve to an http(s) URL.
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith('#') or href.lower().startswith(SKIP_SCHEMES):
        return None
    try:
        absolute = urljoin(base_url, href)
        parsed = urlparse(absolute)
    except ValueError as e:
        logger.debug(f"[classifier] Could not resolve {href!r} against {base_url}: {e}")
        return None
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    return parsed._replace(fragment='').geturl()


class UrlClassifier:
    """Classifies URLs as LIST, DETAIL or UNKNOWN."""

    def __init__(self, rules: Optional[List[UrlRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def match(self, url: str) -> Optional[UrlRule]:
        """Return the first rule matching the URL."""
        if not url:
            return None
        for rule in self.rules:
            if rule.matches(url):
                return rule
        return None

    def classify(self, url: str) -> PageRole:
        rule = self.match(url)
        return rule.role if rule else PageRole.UNKNOWN

    def classify_href(self, href: Optional[str], base_url: str) -> Tuple[Optional[str], PageRole]:
        """Resolve a raw href and classify it. Unresolvable hrefs are UNKNOWN."""
        absolute = to_absolute(href, base_url)
        if absolute is None:
            return None, PageRole.UNKNOWN
        return absolute, self.classify(absolute)

    def is_detail(self, url: str) -> bool:
        return self.classify(url) is PageRole.DETAIL


_classifier: Optional[UrlClassifier] = None


def get_url_classifier() -> UrlClassifier:
    """Get the shared classifier with the default rules."""
    global _classifier
    if _classifier is None:
        _classifier = UrlClassifier()
    return _classifier
