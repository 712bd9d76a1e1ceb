"""
Document model.

Thin query surface over a parsed page so the link resolver and the
extractors only depend on select / text / inner markup / attribute lookups.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

WHITESPACE_RE = re.compile(r'\s+')

# Elements that never contribute to visible description text
INVISIBLE_SELECTORS = 'script, style, noscript, iframe, .hidden, [style*="display:none"], [style*="display: none"]'


def collapse_whitespace(text: Optional[str]) -> str:
    if not text:
        return ''
    return WHITESPACE_RE.sub(' ', text).strip()


def html_to_text(html: Optional[str]) -> str:
    """Plain text of an HTML fragment with invisible content dropped."""
    if not html:
        return ''
    soup = BeautifulSoup(html, 'lxml')
    for element in soup.select(INVISIBLE_SELECTORS):
        element.decompose()
    return collapse_whitespace(soup.get_text(' '))


class Node:
    """A single element of a Document."""

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def name(self) -> str:
        return self._tag.name

    def select(self, css: str) -> List['Node']:
        return [Node(t) for t in self._tag.select(css)]

    def select_one(self, css: str) -> Optional['Node']:
        tag = self._tag.select_one(css)
        return Node(tag) if tag is not None else None

    def text(self) -> str:
        return collapse_whitespace(self._tag.get_text(' '))

    def lines(self) -> List[str]:
        """Non-empty visible text lines, whitespace collapsed."""
        lines = (collapse_whitespace(line) for line in self._tag.get_text('\n').split('\n'))
        return [line for line in lines if line]

    def raw_text(self) -> str:
        """Text content exactly as it appears in the page."""
        return self._tag.get_text()

    def html(self) -> str:
        """Inner markup."""
        return self._tag.decode_contents().strip()

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return ' '.join(value)
        return str(value)

    def classes(self) -> List[str]:
        return list(self._tag.get('class') or [])

    def next_sibling_element(self) -> Optional['Node']:
        sibling = self._tag.find_next_sibling()
        return Node(sibling) if sibling is not None else None

    def parent(self) -> Optional['Node']:
        parent = self._tag.parent
        if parent is None or not isinstance(parent, Tag) or parent.name == '[document]':
            return None
        return Node(parent)

    def __eq__(self, other):
        return isinstance(other, Node) and other._tag is self._tag

    def __hash__(self):
        return id(self._tag)

    def __repr__(self):
        return f"<Node {self.name} {self.text()[:40]!r}>"


class Document:
    """A parsed page."""

    def __init__(self, html: str, url: Optional[str] = None, parser: str = 'lxml',
                 session_id: Optional[str] = None):
        self.url = url
        self.session_id = session_id
        self.soup = BeautifulSoup(html or '', parser)

    @property
    def root(self) -> Node:
        return Node(self.soup)

    def select(self, css: str) -> List[Node]:
        return [Node(t) for t in self.soup.select(css)]

    def select_one(self, css: str) -> Optional[Node]:
        tag = self.soup.select_one(css)
        return Node(tag) if tag is not None else None

    def text(self) -> str:
        return collapse_whitespace(self.soup.get_text(' '))

    def html(self) -> str:
        return str(self.soup)
