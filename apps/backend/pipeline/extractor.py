"""
Main extraction orchestrator.

Implements a multi-stage extraction pipeline with deterministic fallbacks;
each stage only fills fields the previous stages left empty:
1. JSON-LD (Schema.org JobPosting)
2. Scoped label heuristics (job summary containers)
3. Generic class-name heuristics
4. Description block
"""

import logging
from typing import Optional

from core.normalize import (
    clean_field,
    normalize_job_type,
    normalize_location,
    normalize_salary,
)

from .document import Document, html_to_text
from .heuristics import HeuristicExtractor
from .jsonld import JSONLDExtractor
from .models import RAW_FIELDS, FieldResult, JobRecord, RawRecord
from .monitoring import MetricsCollector, get_metrics_collector

logger = logging.getLogger(__name__)

DESCRIPTION_SELECTORS = [
    '.job-description',
    '.description',
    '[class*="description"]',
    '.content',
    '[class*="content"]',
    '.entry-content',
]


class Extractor:
    """Main extraction orchestrator."""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.jsonld_extractor = JSONLDExtractor()
        self.heuristic_extractor = HeuristicExtractor()
        self.metrics = metrics or get_metrics_collector()

    def extract(self, document: Document) -> RawRecord:
        """
        Extract raw job fields from a detail page.

        Best effort: any field may remain None.

        Args:
            document: Parsed detail page

        Returns:
            RawRecord with the fields each stage could find
        """
        raw = RawRecord()

        raw.merge(self.jsonld_extractor.extract(document))

        if raw.missing_fields():
            raw.merge(self.heuristic_extractor.extract_scoped(document, raw.missing_fields()))

        if raw.missing_fields():
            raw.merge(self.heuristic_extractor.extract_generic(document, raw.missing_fields()))

        if raw.missing('description_html'):
            raw.set_if_missing('description_html', self._extract_description(document))

        for field_name in RAW_FIELDS:
            self.metrics.record_field_source(field_name, raw.sources.get(field_name))

        missing = raw.missing_fields()
        if missing:
            logger.debug(f"[extractor] {document.url}: missing fields {missing}")
        return raw

    def _extract_description(self, document: Document) -> Optional[FieldResult]:
        for selector in DESCRIPTION_SELECTORS:
            for node in document.select(selector):
                html = node.html()
                if html and html_to_text(html):
                    return FieldResult(value=html, source='description', raw_snippet=html[:200])
        return None


def build_record(raw: RawRecord, url: str) -> JobRecord:
    """Normalize a RawRecord into the final JobRecord."""
    description_html = raw.description_html or None
    description_text = html_to_text(description_html) if description_html else None
    return JobRecord(
        url=url,
        title=clean_field(raw.title),
        company=clean_field(raw.company),
        location=normalize_location(raw.location),
        salary=normalize_salary(raw.salary),
        job_type=normalize_job_type(raw.job_type),
        date_posted=clean_field(raw.date_posted),
        description_html=description_html,
        description_text=description_text or None,
    )


def stub_record(url: str) -> JobRecord:
    """Link-only record: every field but the URL and source is None."""
    return JobRecord(url=url)
