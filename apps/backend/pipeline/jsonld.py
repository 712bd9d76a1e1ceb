"""
JSON-LD extractor.

Extracts job information from structured JSON-LD data (Schema.org JobPosting).
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .document import Document
from .models import FieldResult

logger = logging.getLogger(__name__)

SOURCE = 'jsonld'


class JSONLDExtractor:
    """Extracts job data from JSON-LD structured data."""

    def extract(self, document: Document) -> Dict[str, FieldResult]:
        """
        Extract job fields from the first JobPosting node on the page.

        Malformed blocks are skipped; they never abort extraction.

        Returns:
            Dictionary mapping raw field names to FieldResult objects
        """
        for script in document.select('script[type="application/ld+json"]'):
            raw = script.raw_text().strip()
            if not raw:
                continue
            try:
                data = json.loads(raw, strict=False)
            except (json.JSONDecodeError, TypeError) as e:
                logger.debug(f"[jsonld] Failed to parse JSON-LD block: {e}")
                continue

            for item in self._flatten_jsonld(data):
                if self._is_job_posting(item):
                    return self._extract_job_posting(item)
        return {}

    def _flatten_jsonld(self, data: Any) -> List[Dict]:
        """Flatten JSON-LD structure to list of items."""
        items = []

        if isinstance(data, dict):
            items.append(data)
            if isinstance(data.get('@graph'), list):
                items.extend(item for item in data['@graph'] if isinstance(item, dict))
        elif isinstance(data, list):
            for element in data:
                items.extend(self._flatten_jsonld(element))

        return items

    def _is_job_posting(self, item: Dict) -> bool:
        """Check if JSON-LD item is a JobPosting."""
        item_type = item.get('@type', item.get('type'))
        if isinstance(item_type, str):
            return item_type == 'JobPosting'
        if isinstance(item_type, list):
            return 'JobPosting' in item_type
        return False

    def _field(self, value: Any) -> Optional[FieldResult]:
        if value is None:
            return None
        snippet = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
        return FieldResult(value=value, source=SOURCE, raw_snippet=snippet[:200])

    def _extract_job_posting(self, job_data: Dict) -> Dict[str, FieldResult]:
        """Map JobPosting properties onto raw record fields."""
        candidates = {
            'title': self._text(job_data.get('title') or job_data.get('name')),
            'company': self._organization(job_data.get('hiringOrganization')),
            'date_posted': self._text(job_data.get('datePosted')),
            'description_html': self._text(job_data.get('description')),
            'location': self._location(job_data.get('jobLocation')),
            'salary': self._salary(job_data.get('baseSalary')),
            'job_type': self._employment_type(job_data.get('employmentType')),
        }
        fields = {}
        for field_name, value in candidates.items():
            result = self._field(value)
            if result is not None and result.is_valid():
                fields[field_name] = result
        return fields

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value).strip()
            return text or None
        return None

    def _organization(self, org: Any) -> Optional[str]:
        if isinstance(org, dict):
            return self._text(org.get('name') or org.get('legalName'))
        return self._text(org)

    def _location(self, loc: Any) -> Optional[str]:
        if isinstance(loc, list):
            loc = loc[0] if loc else None
        if isinstance(loc, str):
            return self._text(loc)
        if not isinstance(loc, dict):
            return None
        address = loc.get('address')
        if isinstance(address, dict):
            return self._text(address.get('addressLocality')) or self._text(address.get('addressRegion'))
        if isinstance(address, str):
            return self._text(address)
        return self._text(loc.get('name'))

    def _salary(self, base_salary: Any) -> Any:
        """Salary value; structured values keep the currency of the outer object."""
        if isinstance(base_salary, dict):
            value = base_salary.get('value')
            if isinstance(value, dict):
                merged = dict(value)
                if base_salary.get('currency') and not merged.get('currency'):
                    merged['currency'] = base_salary['currency']
                return merged
            if value is None:
                return None
            if base_salary.get('currency') and not isinstance(value, str):
                return {'value': value, 'currency': base_salary['currency']}
            return value
        if isinstance(base_salary, (str, int, float)) and not isinstance(base_salary, bool):
            return base_salary
        return None

    def _employment_type(self, value: Any) -> Optional[str]:
        if isinstance(value, list):
            parts = [self._text(v) for v in value]
            joined = ', '.join(p for p in parts if p)
            return joined or None
        return self._text(value)
