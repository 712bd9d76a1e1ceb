"""
Data model for the crawl pipeline.

WorkItem flows through the frontier, RawRecord is the extractor output,
JobRecord is the normalized record handed to the result storage.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional

SOURCE_ID = "careerviet.vn"

RAW_FIELDS = (
    'title', 'company', 'location', 'salary',
    'job_type', 'date_posted', 'description_html',
)


class PageRole(Enum):
    """Role of a URL in the LIST -> DETAIL traversal."""
    LIST = "LIST"
    DETAIL = "DETAIL"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class WorkItem:
    """A unit of work in the frontier."""
    url: str
    role: PageRole
    page_number: int = 1
    seed: Optional[str] = None

    @classmethod
    def seed_item(cls, url: str) -> 'WorkItem':
        return cls(url=url, role=PageRole.LIST, page_number=1, seed=url)

    def next_page(self, url: str) -> 'WorkItem':
        return WorkItem(url=url, role=PageRole.LIST, page_number=self.page_number + 1, seed=self.seed)

    def detail(self, url: str) -> 'WorkItem':
        return WorkItem(url=url, role=PageRole.DETAIL, page_number=self.page_number, seed=self.seed)


class FieldResult:
    """Result for a single extracted field."""

    def __init__(self, value: Any = None, source: Optional[str] = None,
                 raw_snippet: Optional[str] = None):
        self.value = value
        self.source = source
        self.raw_snippet = raw_snippet

    def is_valid(self) -> bool:
        """Check if field has a usable value."""
        if self.value is None:
            return False
        if isinstance(self.value, str) and not self.value.strip():
            return False
        if isinstance(self.value, (list, dict)) and len(self.value) == 0:
            return False
        return True

    def __repr__(self):
        return f"FieldResult(value={self.value!r}, source={self.source})"


class RawRecord:
    """
    Partially populated job fields prior to normalization.

    Fields are explicit attributes; every one of them may stay None.
    ``salary`` may hold a string, a number or a structured salary mapping.
    """

    def __init__(self):
        self.title: Optional[str] = None
        self.company: Optional[str] = None
        self.location: Optional[str] = None
        self.salary: Any = None
        self.job_type: Optional[str] = None
        self.date_posted: Optional[str] = None
        self.description_html: Optional[str] = None
        self.sources: Dict[str, str] = {}

    def missing(self, field_name: str) -> bool:
        return getattr(self, field_name) is None

    def missing_fields(self):
        return [name for name in RAW_FIELDS if self.missing(name)]

    def set_if_missing(self, field_name: str, result: Optional[FieldResult]) -> bool:
        """Fill a field only if it is still absent. Returns True if it was filled."""
        if field_name not in RAW_FIELDS:
            raise KeyError(f"Unknown raw field: {field_name}")
        if result is None or not result.is_valid() or not self.missing(field_name):
            return False
        value = result.value.strip() if isinstance(result.value, str) else result.value
        setattr(self, field_name, value)
        self.sources[field_name] = result.source
        return True

    def merge(self, fields: Dict[str, FieldResult]) -> None:
        for field_name, result in fields.items():
            if field_name in RAW_FIELDS:
                self.set_if_missing(field_name, result)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in RAW_FIELDS}


@dataclass(frozen=True)
class JobRecord:
    """Final output unit, emitted exactly once to the result storage."""
    url: str
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    date_posted: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    source: str = field(default=SOURCE_ID)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        source = data.pop('source')
        url = data.pop('url')
        data['url'] = url
        data['_source'] = source
        return data
