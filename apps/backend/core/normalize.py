"""
Field normalization for scraped job records.

Converts raw, heterogeneous field values (salary strings or objects, free
text location and job type in English or Vietnamese) into canonical forms.

Every public function here is total: absent or unparsable input yields None,
nothing raises.
"""

import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from dateutil import parser as date_parser

MAX_FIELD_LENGTH = 120

# Words that show up when navigation or category chrome is scraped by mistake
CATEGORY_MARKER_RE = re.compile(
    r'\b(?:jobs|all\s+jobs|categor(?:y|ies)|việc\s+làm|ngành\s+nghề|tất\s+cả|tuyển\s+dụng)\b',
    re.IGNORECASE,
)

WHITESPACE_RE = re.compile(r'\s+')

# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------

VIEW_MAP_RE = re.compile(
    r'\(?\s*\b(?:view\s+(?:on\s+)?map|xem\s+bản\s+đồ|bản\s+đồ)\b\s*\)?',
    re.IGNORECASE,
)
LOCATION_LABEL_RE = re.compile(
    r'^(?:work\s+location|location|địa\s+điểm(?:\s+làm\s+việc)?|nơi\s+làm\s+việc)\s*:?\s*',
    re.IGNORECASE,
)
LOCATION_SEPARATOR_RE = re.compile(r'\s*(?:\||,|•|·|/)\s*')

# ---------------------------------------------------------------------------
# Salary
# ---------------------------------------------------------------------------

NEGOTIABLE_RE = re.compile(
    r'negotiable|negotiate|th[ỏo]a\s*thuận|thoả\s*thuận|thoa\s*thuan|thương\s*lượng',
    re.IGNORECASE,
)
UP_TO_RE = re.compile(r'\bup\s*to\b|tối\s+đa|lên\s+(?:đến|tới)|(?:^|[\s:])(?:tới|đến)\s', re.IGNORECASE)
OVER_RE = re.compile(r'\b(?:over|above)\b|(?:^|[\s:])trên\s', re.IGNORECASE)
MILLION_RE = re.compile(r'triệu|\d\s*tr(?!\w)|\btr(?!\w)|\bmillion\b', re.IGNORECASE)
VND_MILLION_RE = re.compile(r'triệu|\d\s*tr(?!\w)|\btr(?!\w)', re.IGNORECASE)

AMOUNT = r'\d(?:[\d.,]*\d)?'
CURRENCY = r'(?:US\$|\$|€|₫|USD|EUR|VNĐ|VND|đ(?!\w))'
MULTIPLIER = r'(?:triệu|tr(?!\w)|million)'
RANGE_SEPARATOR = r'(?:-|–|—|~|\bto\b|đến)'

RANGE_RE = re.compile(
    rf'(?P<c1>{CURRENCY})?\s*(?P<lo>{AMOUNT})\s*{MULTIPLIER}?\s*(?P<c2>{CURRENCY})?'
    rf'\s*{RANGE_SEPARATOR}\s*'
    rf'(?P<c3>{CURRENCY})?\s*(?P<hi>{AMOUNT})\s*{MULTIPLIER}?\s*(?P<c4>{CURRENCY})?',
    re.IGNORECASE,
)
SINGLE_RE = re.compile(
    rf'(?P<c1>{CURRENCY})\s*(?P<a1>{AMOUNT})|(?P<a2>{AMOUNT})\s*{MULTIPLIER}?\s*(?P<c2>{CURRENCY})'
    rf'|(?P<a3>{AMOUNT})\s*{MULTIPLIER}',
    re.IGNORECASE,
)
THOUSANDS_RE = re.compile(r'\d{1,3}(?:([.,])\d{3})(?:\1\d{3})*')

CURRENCY_ALIASES = {
    '$': 'USD', 'US$': 'USD', 'USD': 'USD',
    '€': 'EUR', 'EUR': 'EUR',
    '₫': 'VND', 'Đ': 'VND', 'VND': 'VND', 'VNĐ': 'VND',
}
PREFIX_SYMBOLS = {'USD': '$', 'EUR': '€'}

PERIOD_RULES = [
    ('hour', re.compile(r'/\s*(?:h|hr|hour|giờ)\b|\bper\s+hour\b|\bhourly\b|mỗi\s+giờ|theo\s+giờ', re.IGNORECASE)),
    ('month', re.compile(
        r'/\s*(?:mo|month|tháng)\b|\bper\s+month\b|\bmonthly\b|(?:mỗi|hàng)\s+tháng'
        r'|(?:triệu|\btr|usd|vnđ|vnd|đ|\$)\s*tháng\b',
        re.IGNORECASE)),
    ('year', re.compile(r'/\s*(?:yr|year|năm)\b|\bper\s+(?:year|annum)\b|\byearly\b|\bannual(?:ly)?\b|mỗi\s+năm|hàng\s+năm', re.IGNORECASE)),
]
UNIT_PERIODS = {'HOUR': 'hour', 'MONTH': 'month', 'YEAR': 'year'}

# ---------------------------------------------------------------------------
# Job type
# ---------------------------------------------------------------------------

JOB_TYPE_RULES = [
    ('Full-time', re.compile(r'full[\s_-]*time|toàn\s+thời\s+gian|nhân\s+viên\s+chính\s+thức|\bpermanent\b', re.IGNORECASE)),
    ('Part-time', re.compile(r'part[\s_-]*time|bán\s+thời\s+gian', re.IGNORECASE)),
    ('Internship', re.compile(r'\bintern(?:ship|s)?\b|thực\s+tập', re.IGNORECASE)),
    ('Contract', re.compile(r'\bcontract(?:or|ual)?\b|hợp\s+đồng', re.IGNORECASE)),
    ('Temporary', re.compile(r'\btemporary\b|\btemp\b|\bseasonal\b|tạm\s+thời|thời\s+vụ', re.IGNORECASE)),
    ('Freelance', re.compile(r'\bfreelanc\w*|tự\s+do|cộng\s+tác\s+viên', re.IGNORECASE)),
    ('Remote', re.compile(r'\bremote\b|work\s+from\s+home|từ\s+xa|làm\s+việc\s+tại\s+nhà', re.IGNORECASE)),
    ('Hybrid', re.compile(r'\bhybrid\b|kết\s+hợp', re.IGNORECASE)),
]

DAY_FIRST_RE = re.compile(r'\b\d{1,2}[/.-]\d{1,2}[/.-]\d{4}\b')


def _as_text(raw: Any) -> Optional[str]:
    """Collapse a raw scalar to clean text (NFC, single spaces)."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return str(raw)
    if not isinstance(raw, str):
        return None
    text = unicodedata.normalize('NFC', raw)
    text = WHITESPACE_RE.sub(' ', text).strip()
    return text or None


def is_noise(text: Optional[str]) -> bool:
    """True for values that look like mis-scraped navigation text."""
    if not text:
        return True
    return len(text) > MAX_FIELD_LENGTH or bool(CATEGORY_MARKER_RE.search(text))


def normalize_location(raw: Any) -> Optional[str]:
    """First meaningful segment of a location string."""
    text = _as_text(raw)
    if not text or is_noise(text):
        return None
    text = VIEW_MAP_RE.sub(' ', text)
    text = LOCATION_LABEL_RE.sub('', text.strip())
    for segment in LOCATION_SEPARATOR_RE.split(text):
        segment = WHITESPACE_RE.sub(' ', segment).strip(' -:')
        if segment:
            return segment
    return None


def parse_amount(text: Optional[str]) -> Optional[float]:
    """
    Parse a numeric amount written with either thousands convention.

    "1,000" and "1.000" are both one thousand; "1,5" is one and a half.
    """
    if not text:
        return None
    s = text.strip()
    if ',' in s and '.' in s:
        if s.rfind(',') > s.rfind('.'):
            s = s.replace('.', '').replace(',', '.')
        else:
            s = s.replace(',', '')
    elif THOUSANDS_RE.fullmatch(s):
        s = re.sub(r'[.,]', '', s)
    else:
        s = s.replace(',', '.')
    try:
        return float(s)
    except ValueError:
        return None


def format_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip('0').rstrip('.')


def _currency_code(token: Any) -> Optional[str]:
    text = _as_text(token)
    if not text:
        return None
    key = text.upper()
    if key in CURRENCY_ALIASES:
        return CURRENCY_ALIASES[key]
    if re.fullmatch(r'[A-Z]{3}', key):
        return key
    return None


def _format_single(value: float, currency: Optional[str]) -> str:
    amount = format_amount(value)
    if currency in PREFIX_SYMBOLS:
        return f"{PREFIX_SYMBOLS[currency]}{amount}"
    if currency:
        return f"{amount} {currency}"
    return amount


def _format_range(low: float, high: float, currency: Optional[str]) -> str:
    if high < low:
        low, high = high, low
    lo, hi = format_amount(low), format_amount(high)
    if currency in PREFIX_SYMBOLS:
        symbol = PREFIX_SYMBOLS[currency]
        return f"{symbol}{lo} - {symbol}{hi}"
    if currency:
        return f"{lo} - {hi} {currency}"
    return f"{lo} - {hi}"


def detect_period(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    for period, pattern in PERIOD_RULES:
        if pattern.search(text):
            return period
    return None


def _with_period(amount: str, period: Optional[str]) -> str:
    return f"{amount} / {period}" if period else amount


def _scale(value: Optional[float], multiplier: float) -> Optional[float]:
    if value is None:
        return None
    if multiplier != 1 and value < 100000:
        return value * multiplier
    return value


def _first_currency(match, groups) -> Optional[str]:
    for name in groups:
        code = _currency_code(match.group(name))
        if code:
            return code
    return None


def _currency_range(text: str, multiplier: float, default_currency: Optional[str]) -> Optional[str]:
    for match in RANGE_RE.finditer(text):
        currency = _first_currency(match, ('c1', 'c2', 'c3', 'c4'))
        if not currency:
            continue
        low = _scale(parse_amount(match.group('lo')), multiplier)
        high = _scale(parse_amount(match.group('hi')), multiplier)
        if low is not None and high is not None:
            return _format_range(low, high, currency)
    return None


def _bare_range(text: str, multiplier: float, default_currency: Optional[str]) -> Optional[str]:
    match = RANGE_RE.search(text)
    if not match:
        return None
    low = _scale(parse_amount(match.group('lo')), multiplier)
    high = _scale(parse_amount(match.group('hi')), multiplier)
    if low is None or high is None:
        return None
    return _format_range(low, high, default_currency)


def _single_amount(text: str, multiplier: float, default_currency: Optional[str]) -> Optional[str]:
    match = SINGLE_RE.search(text)
    if not match:
        return None
    currency = _first_currency(match, ('c1', 'c2')) or default_currency
    value = _scale(parse_amount(match.group('a1') or match.group('a2') or match.group('a3')), multiplier)
    if value is None:
        return None
    amount = _format_single(value, currency)
    if UP_TO_RE.search(text):
        amount = f"Up to {amount}"
    elif OVER_RE.search(text):
        amount = f"Over {amount}"
    return amount


SALARY_TEXT_RULES: List[Tuple[str, Callable[[str, float, Optional[str]], Optional[str]]]] = [
    ('currency_range', _currency_range),
    ('bare_range', _bare_range),
    ('single_currency', _single_amount),
]


def _salary_from_text(raw: str) -> Optional[str]:
    text = _as_text(raw)
    if not text:
        return None
    if NEGOTIABLE_RE.search(text):
        return 'Negotiable'
    multiplier = 1_000_000.0 if MILLION_RE.search(text) else 1.0
    default_currency = 'VND' if VND_MILLION_RE.search(text) else None
    period = detect_period(text)
    for _name, rule in SALARY_TEXT_RULES:
        amount = rule(text, multiplier, default_currency)
        if amount:
            return _with_period(amount, period)
    return text


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return parse_amount(value)
    return None


def _salary_from_mapping(data: Dict[str, Any]) -> Optional[str]:
    merged = dict(data)
    inner = merged.get('value')
    if isinstance(inner, dict):
        merged.pop('value')
        merged = {**merged, **inner}

    for value in merged.values():
        if isinstance(value, str) and NEGOTIABLE_RE.search(value):
            return 'Negotiable'

    currency = _currency_code(merged.get('currency'))
    unit = _as_text(merged.get('unitText') or merged.get('unit'))
    period = UNIT_PERIODS.get(unit.upper()) if unit else None
    if unit and not period:
        period = detect_period(unit)

    low = _to_number(merged.get('minValue', merged.get('min')))
    high = _to_number(merged.get('maxValue', merged.get('max')))
    single = _to_number(merged.get('value'))

    if low is not None and high is not None:
        amount = _format_range(low, high, currency)
    elif low is not None or high is not None or single is not None:
        value = single if single is not None else (low if low is not None else high)
        amount = _format_single(value, currency)
        if single is None and low is None:
            amount = f"Up to {amount}"
    elif isinstance(merged.get('value'), str):
        return _salary_from_text(merged['value'])
    else:
        return None
    return _with_period(amount, period)


def normalize_salary(raw: Any) -> Optional[str]:
    """
    Canonical salary string.

    Accepts free text in English or Vietnamese, a bare number, or a
    structured salary mapping ({currency, min/minValue, max/maxValue,
    value, unit/unitText}, schema.org MonetaryAmount shape included).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        result = format_amount(float(raw))
    elif isinstance(raw, dict):
        result = _salary_from_mapping(raw)
    elif isinstance(raw, str):
        result = _salary_from_text(raw)
    else:
        return None
    if not result or is_noise(result):
        return None
    return result


def normalize_job_type(raw: Any) -> Optional[str]:
    """Map job type text onto the canonical vocabulary."""
    if isinstance(raw, (list, tuple)):
        raw = ', '.join(str(v) for v in raw if v)
    text = _as_text(raw)
    if not text:
        return None
    for canonical, pattern in JOB_TYPE_RULES:
        if pattern.search(text):
            return canonical
    if is_noise(text):
        return None
    return text


def parse_posted_date(raw: Any) -> Optional[datetime]:
    """
    Parse a posting date. ISO strings and day-first dd/mm/yyyy dates are
    understood; naive results are taken as UTC.
    """
    text = _as_text(raw)
    if not text:
        return None
    try:
        day_first = DAY_FIRST_RE.search(text)
        if day_first:
            parsed = date_parser.parse(day_first.group(0), dayfirst=True)
        else:
            parsed = date_parser.parse(text)
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def age_in_days(posted: datetime, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    return (now - posted).total_seconds() / 86400.0


def clean_field(raw: Any) -> Optional[str]:
    """Whitespace-collapsed text or None."""
    return _as_text(raw)
