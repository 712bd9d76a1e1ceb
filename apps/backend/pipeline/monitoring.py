"""
In-process crawl metrics.

Counts which pagination rule resolved each listing page, which extraction
stage produced each field, and per-item outcomes. The pagination counts are
how dead rules get noticed.
"""

import logging
from collections import defaultdict
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects crawl and extraction metrics."""

    def __init__(self):
        self.counters = defaultdict(int)
        self.pagination_stages = defaultdict(int)
        self.field_sources = defaultdict(lambda: defaultdict(int))

    def record_pagination_stage(self, stage: str):
        """Record the rule that resolved a next page ('none' when nothing did)."""
        self.pagination_stages[stage] += 1

    def record_field_source(self, field_name: str, source: Optional[str]):
        """Record which extraction stage filled a field."""
        self.field_sources[field_name][source or 'missing'] += 1

    def incr(self, key: str, value: int = 1):
        self.counters[key] += value

    def record_saved(self):
        self.incr('saved')

    def record_skipped(self, reason: str):
        self.incr(f'skipped:{reason}')

    def record_abandoned(self, blocked: bool = False):
        self.incr('abandoned')
        if blocked:
            self.incr('blocked')

    def get_stats(self) -> Dict:
        """Get current statistics."""
        return {
            'counters': dict(self.counters),
            'pagination_stages': dict(self.pagination_stages),
            'field_sources': {k: dict(v) for k, v in self.field_sources.items()},
        }

    def log_summary(self):
        stats = self.get_stats()
        logger.info(f"[metrics] counters={stats['counters']}")
        logger.info(f"[metrics] pagination stages={stats['pagination_stages']}")
        for field_name, sources in sorted(stats['field_sources'].items()):
            logger.info(f"[metrics] field {field_name}: {sources}")

    def reset(self):
        self.counters.clear()
        self.pagination_stages.clear()
        self.field_sources.clear()


# Global metrics instance
_metrics: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
