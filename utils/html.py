"""HTML helpers shared by the provider parsers."""

from typing import Iterable, List, Optional
from urllib.parse import urlparse

from bs4 import Comment, NavigableString, Tag

from utils.text import clean_text, normalize_paragraph

_RUBY_ANNOTATION_TAGS = ["rt", "rp"]


def text_with_breaks(node: Optional[Tag]) -> str:
    """Text of a node with ``<br>`` rendered as newlines."""
    if node is None:
        return ""
    parts: List[str] = []
    for element in node.descendants:
        if isinstance(element, Tag) and element.name == "br":
            parts.append("\n")
        elif isinstance(element, NavigableString) and not isinstance(element, Comment):
            if element.parent is not None and element.parent.name in _RUBY_ANNOTATION_TAGS:
                continue
            parts.append(str(element))
    lines = [line.strip() for line in "".join(parts).split("\n")]
    return "\n".join(lines).strip()


def paragraph_text(node: Tag) -> str:
    """Paragraph text with ruby readings removed."""
    for annotation in node.find_all(_RUBY_ANNOTATION_TAGS):
        annotation.decompose()
    return normalize_paragraph(node.get_text())


def paragraph_texts(nodes: Iterable[Tag]) -> List[str]:
    return [paragraph_text(node) for node in nodes]


def node_text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text(" ", strip=True))


def last_path_segment(href: Optional[str]) -> Optional[str]:
    """``/n1234ab/5/`` -> ``5``; ``./12.html`` -> ``12``."""
    if not href:
        return None
    path = urlparse(href).path.rstrip("/")
    if not path:
        return None
    segment = path.rsplit("/", 1)[-1]
    if segment.endswith(".html"):
        segment = segment[: -len(".html")]
    return segment or None
