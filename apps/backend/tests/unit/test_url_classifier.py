"""
Unit tests for the URL classifier rules.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pipeline.classifier import UrlClassifier, to_absolute
from pipeline.models import PageRole


@pytest.fixture
def classifier():
    return UrlClassifier()


@pytest.mark.parametrize("url", [
    "https://careerviet.vn/en/search-job/backend-engineer.35B1A2C3.html",
    "https://careerviet.vn/vi/tim-viec-lam/ky-su-phan-mem.35123456.html",
    "https://careerviet.vn/jobs/senior-accountant-123456.html",
    "https://careerviet.vn/en/search-job/backend-engineer.35B1A2C3.html?src=list",
])
def test_detail_urls(classifier, url):
    """Every locale's detail URL shape is DETAIL."""
    assert classifier.classify(url) is PageRole.DETAIL
    assert classifier.is_detail(url)


@pytest.mark.parametrize("url", [
    "https://careerviet.vn/jobs/all-jobs-en.html",
    "https://careerviet.vn/en/jobs/all-jobs-page-2-en.html",
    "https://careerviet.vn/vi/tim-viec-lam/tat-ca-viec-lam?keyword=ke+toan",
    "https://careerviet.vn/viec-lam/tat-ca-viec-lam-trang-3-vi.html",
    "https://careerviet.vn/en/search-job?keyword=python",
])
def test_listing_urls(classifier, url):
    """Listing and search pages are LIST, never DETAIL."""
    assert classifier.classify(url) is PageRole.LIST


@pytest.mark.parametrize("url", [
    "https://careerviet.vn/",
    "https://careerviet.vn/en/employers/login.html",
    "https://careerviet.vn/en/about-us.html",
    "https://example.com/jobs/some-job-123456.html",
])
def test_navigation_urls_unknown(classifier, url):
    """Navigation pages and other hosts are not classified."""
    assert classifier.classify(url) is PageRole.UNKNOWN


def test_first_rule_wins():
    """A detail rule is never shadowed by a listing rule listed after it."""
    classifier = UrlClassifier()
    rule = classifier.match("https://careerviet.vn/jobs/all-jobs-developer-123456.html")
    assert rule is not None
    assert rule.name == 'legacy_detail'


def test_to_absolute():
    base = "https://careerviet.vn/jobs/all-jobs-en.html"
    assert to_absolute("/en/search-job/a.1.html#apply", base) == "https://careerviet.vn/en/search-job/a.1.html"
    assert to_absolute("page-2.html", base) == "https://careerviet.vn/jobs/page-2.html"
    assert to_absolute("", base) is None
    assert to_absolute("#top", base) is None
    assert to_absolute("javascript:void(0)", base) is None
    assert to_absolute("mailto:hr@careerviet.vn", base) is None
    assert to_absolute("http://[invalid", base) is None


def test_classify_href_unresolvable(classifier):
    absolute, role = classifier.classify_href("tel:+84123", "https://careerviet.vn/")
    assert absolute is None
    assert role is PageRole.UNKNOWN
