"""
Unit tests for core/crawl_config.py
"""

import json

import pytest
from core.crawl_config import (
    ENGLISH_ALL_JOBS_URL,
    CrawlInput,
    build_start_url,
    load_input,
    resolve_seed_urls,
)


class TestCrawlInput:
    def test_defaults(self):
        config = CrawlInput()
        assert config.results_wanted == 10
        assert config.max_pages == 25
        assert config.collect_details is True
        assert config.dedupe is True
        assert config.max_concurrency == 10
        assert (config.list_delay_ms_min, config.list_delay_ms_max) == (150, 600)
        assert (config.detail_delay_ms_min, config.detail_delay_ms_max) == (200, 700)
        assert config.max_request_retries == 3
        assert config.request_handler_timeout_secs == 90
        assert config.navigation_timeout_secs == 45

    @pytest.mark.parametrize("data,expected", [
        ({"results_wanted": 25}, 25),
        ({"jobs": "7"}, 7),
        ({"maxItems": 3, "limit": 50}, 3),
        ({"results_wanted": "abc", "limit": 12}, 12),
        ({"max_items": 0}, 1),
        ({}, 10),
    ])
    def test_result_aliases(self, data, expected):
        """The first finite number among the aliases wins."""
        assert CrawlInput.model_validate(data).results_wanted == expected

    @pytest.mark.parametrize("raw,expected", [(5, 5), ("3", 3), ("many", 25), (0, 1), (None, 25)])
    def test_max_pages(self, raw, expected):
        assert CrawlInput.model_validate({"max_pages": raw}).max_pages == expected

    def test_camel_case_options(self):
        config = CrawlInput.model_validate({
            "collectDetails": False,
            "maxConcurrency": 0,
            "listDelayMsMin": 500,
            "listDelayMsMax": 100,
            "proxyConfiguration": {"proxyUrls": ["http://proxy:8000"]},
            "unknownOption": True,
        })
        assert config.collect_details is False
        assert config.max_concurrency == 1
        assert config.list_delay_ms_max == 500
        assert config.proxy_configuration == {"proxyUrls": ["http://proxy:8000"]}


class TestSeedUrls:
    def test_no_filters(self):
        assert build_start_url() == ENGLISH_ALL_JOBS_URL
        assert resolve_seed_urls(CrawlInput()) == [ENGLISH_ALL_JOBS_URL]

    def test_filters_use_vietnamese_search(self):
        url = build_start_url("kế toán", "Hà Nội", 7)
        assert url.startswith("https://careerviet.vn/vi/tim-viec-lam/tat-ca-viec-lam?")
        assert "keyword=k%E1%BA%BF+to%C3%A1n" in url
        assert "posted=7d" in url

    def test_unmapped_age_not_sent(self):
        assert "posted" not in build_start_url("python", "", 14)
        assert build_start_url("python", "", 1).endswith("posted=24h")

    def test_explicit_urls(self):
        config = CrawlInput.model_validate({
            "startUrls": [{"url": "https://careerviet.vn/a"}, "https://careerviet.vn/b", {"nope": 1}],
            "startUrl": "https://careerviet.vn/a",
            "url": "https://careerviet.vn/c",
            "keyword": "ignored",
        })
        assert resolve_seed_urls(config) == [
            "https://careerviet.vn/a",
            "https://careerviet.vn/b",
            "https://careerviet.vn/c",
        ]


class TestLoadInput:
    def test_load_from_file(self, tmp_path):
        path = tmp_path / "input.json"
        path.write_text(json.dumps({"keyword": "java", "maxResults": 4}), encoding="utf-8")
        config = load_input(str(path))
        assert config.keyword == "java"
        assert config.results_wanted == 4

    def test_no_path_defaults(self):
        assert load_input(None).results_wanted == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_input(str(tmp_path / "missing.json"))
