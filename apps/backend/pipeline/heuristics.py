"""
Heuristic extractor.

Uses label-based heuristics and class-name matching to extract job fields
when structured metadata is missing or incomplete.

Two stages:
- scoped: label/value pairs inside job summary containers only, so that
  sidebars and navigation cannot leak into the record;
- generic: broad class-name matching anywhere in the document.
"""

import logging
import re
import unicodedata
from typing import Callable, Dict, Iterable, List, Optional, Pattern

from .document import Document, Node
from .models import FieldResult

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 40
MAX_VALUE_LENGTH = 200

SUMMARY_CONTAINERS = [
    '.job-summary', '.job-info', '.job-meta', '.detail-box', '.job-detail',
    '[class*="summary"]', '[class*="info"]', '[class*="meta"]',
]

# Bilingual label patterns, matched against the start of a label
FIELD_LABELS: Dict[str, Pattern] = {
    'company': re.compile(r'(?:company|employer|công\s+ty|nhà\s+tuyển\s+dụng)\b', re.IGNORECASE),
    'location': re.compile(r'(?:work\s+location|location|địa\s+điểm|nơi\s+làm\s+việc)', re.IGNORECASE),
    'salary': re.compile(r'(?:salary|mức\s+lương|lương)', re.IGNORECASE),
    'job_type': re.compile(
        r'(?:job\s+type|employment\s+type|type\s+of\s+employment|hình\s+thức(?:\s+làm\s+việc)?|loại\s+hình)',
        re.IGNORECASE),
    'date_posted': re.compile(
        r'(?:date\s+posted|posted(?:\s+on)?|updated|ngày\s+(?:đăng|cập\s+nhật)|cập\s+nhật)',
        re.IGNORECASE),
}

TITLE_SELECTORS = ['h1.job-title', '.job-title h1', '.title h1', 'h1']
COMPANY_SELECTORS = ['.company-name', '.employer-name', 'a[href*="/company/"]', 'a[href*="nha-tuyen-dung"]']

GENERIC_SELECTORS: Dict[str, List[str]] = {
    'title': ['[class*="job-title"]'],
    'company': ['[class*="company"]'],
    'location': ['[class*="location"]', '[class*="address"]'],
    'salary': ['[class*="salary"]', '[class*="luong"]'],
    'job_type': ['[class*="job-type"]', '[class*="employment"]'],
    'date_posted': ['[class*="date"]', '[class*="posted"]', 'time'],
}

INLINE_LABEL_RE = re.compile(r'^(?P<label>[^:：]{1,40}?)\s*[:：]\s*(?P<value>.+)$')


def _fold(text: Optional[str]) -> str:
    return unicodedata.normalize('NFC', text or '').strip()


def _label_matches(pattern: Pattern, text: Optional[str]) -> bool:
    label = _fold(text).rstrip(':： ').strip()
    if not label or len(label) > MAX_LABEL_LENGTH:
        return False
    return bool(pattern.match(label))


def _usable(value: Optional[str]) -> Optional[str]:
    value = _fold(value).strip(' :：-')
    if not value or len(value) > MAX_VALUE_LENGTH:
        return None
    return value


# --- scoped strategies: each takes a container and a label pattern ---------

def _from_definition_list(container: Node, pattern: Pattern) -> Optional[str]:
    for dt in container.select('dt'):
        if _label_matches(pattern, dt.text()):
            dd = dt.next_sibling_element()
            if dd is not None and dd.name == 'dd':
                value = _usable(dd.text())
                if value:
                    return value
    return None


def _from_table_rows(container: Node, pattern: Pattern) -> Optional[str]:
    for row in container.select('tr'):
        cells = row.select(':scope > th, :scope > td')
        if len(cells) >= 2 and _label_matches(pattern, cells[0].text()):
            value = _usable(cells[1].text())
            if value:
                return value
    return None


def _from_list_items(container: Node, pattern: Pattern) -> Optional[str]:
    for item in container.select('li'):
        label_node = item.select_one('strong, b, label, span, p, h3, h4')
        full_text = item.text()
        if label_node is not None and _label_matches(pattern, label_node.text()):
            label_text = label_node.text()
            value = full_text[len(label_text):] if full_text.startswith(label_text) else ''
            value = _usable(value)
        elif _label_matches(pattern, full_text):
            value = None
        else:
            continue
        if not value:
            following = item.next_sibling_element()
            value = _usable(following.text()) if following is not None else None
        if value:
            return value
    return None


def _from_inline_text(container: Node, pattern: Pattern) -> Optional[str]:
    for line in container.lines():
        match = INLINE_LABEL_RE.match(line)
        if match and _label_matches(pattern, match.group('label')):
            value = _usable(match.group('value'))
            if value:
                return value
    return None


SCOPED_STRATEGIES: List[Callable[[Node, Pattern], Optional[str]]] = [
    _from_definition_list,
    _from_table_rows,
    _from_list_items,
    _from_inline_text,
]


class HeuristicExtractor:
    """Extracts job fields using heuristics and pattern matching."""

    def summary_containers(self, document: Document) -> List[Node]:
        containers = []
        seen = set()
        for selector in SUMMARY_CONTAINERS:
            for node in document.select(selector):
                if node not in seen:
                    seen.add(node)
                    containers.append(node)
        return containers

    def extract_scoped(self, document: Document, missing: Iterable[str]) -> Dict[str, FieldResult]:
        """Label/value heuristics restricted to job summary containers."""
        missing = set(missing)
        fields = {}

        if 'title' in missing:
            value = self._first_text(document, TITLE_SELECTORS)
            if value:
                fields['title'] = FieldResult(value=value, source='scoped', raw_snippet=value[:200])

        if 'company' in missing:
            value = self._first_text(document, COMPANY_SELECTORS)
            if value:
                fields['company'] = FieldResult(value=value, source='scoped', raw_snippet=value[:200])

        if 'date_posted' in missing:
            node = document.select_one('time[datetime]')
            value = _usable(node.attr('datetime')) if node is not None else None
            if value:
                fields['date_posted'] = FieldResult(value=value, source='scoped', raw_snippet=value)

        containers = self.summary_containers(document)
        for field_name, pattern in FIELD_LABELS.items():
            if field_name not in missing or field_name in fields:
                continue
            value = self._scan_containers(containers, pattern)
            if value:
                fields[field_name] = FieldResult(value=value, source='scoped', raw_snippet=value[:200])

        return fields

    def extract_generic(self, document: Document, missing: Iterable[str]) -> Dict[str, FieldResult]:
        """Broad class-name matching anywhere in the document."""
        fields = {}
        for field_name in missing:
            selectors = GENERIC_SELECTORS.get(field_name)
            if not selectors:
                continue
            value = self._first_text(document, selectors)
            if not value and field_name in FIELD_LABELS:
                value = _from_list_items(document.root, FIELD_LABELS[field_name])
            if value:
                fields[field_name] = FieldResult(value=value, source='generic', raw_snippet=value[:200])
        return fields

    def _scan_containers(self, containers: List[Node], pattern: Pattern) -> Optional[str]:
        for strategy in SCOPED_STRATEGIES:
            for container in containers:
                value = strategy(container, pattern)
                if value:
                    logger.debug(f"[heuristics] {strategy.__name__} matched {value[:40]!r} in <{container.name}>")
                    return value
        return None

    @staticmethod
    def _first_text(document: Document, selectors: List[str]) -> Optional[str]:
        for selector in selectors:
            for node in document.select(selector):
                value = _usable(node.text())
                if value:
                    return value
        return None
