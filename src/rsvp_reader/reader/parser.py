"""Split HTML or Markdown-flavoured text into typed segments.

Headings set the section title carried by every following segment until
the next heading. Malformed markup never raises: at worst it is read as
plain text.
"""

import re

import structlog
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .segments import Segment, SegmentType

log = structlog.get_logger()

# Inputs beyond this size skip structured parsing.
MAX_STRUCTURED_CHARS = 1024 * 1024

ALLOWED_TAGS = frozenset(
    {"h1", "h2", "h3", "h4", "h5", "h6", "p", "ul", "ol", "li", "blockquote", "code", "pre", "br"}
)

# Dropped together with their content rather than unwrapped.
DROPPED_TAGS = ["script", "style", "noscript", "template", "iframe", "object", "embed"]

_HTML_TAG_RE = re.compile(r"</?[a-zA-Z][a-zA-Z0-9]*(\s[^<>]*)?/?>")

_MD_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_MD_LIST_ITEM_RE = re.compile(r"^[-*+]\s+(.+)$")
_MD_BLOCKQUOTE_RE = re.compile(r"^>\s*(.+)$")
_MD_RULE_RE = re.compile(r"^([-*_])(\s*\1){2,}$")

_INLINE_MARKDOWN = [
    (re.compile(r"!\[([^\]]*)\]\([^)]*\)"), r"\1"),  # images keep alt text
    (re.compile(r"\[([^\]]+)\]\([^)]*\)"), r"\1"),  # links keep their text
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"\*\*\*([^*]+)\*\*\*"), r"\1"),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"(?<!\w)__([^_]+)__(?!\w)"), r"\1"),
    (re.compile(r"(?<!\w)_([^_]+)_(?!\w)"), r"\1"),
    (re.compile(r"~~([^~]+)~~"), r"\1"),
]


def is_html(text: str) -> bool:
    """Whether the text contains tag syntax."""
    return _HTML_TAG_RE.search(text) is not None


def parse(text: str) -> list[Segment]:
    """Parse text into typed segments.

    Args:
        text: HTML or Markdown-flavoured input.

    Returns:
        Ordered segments. Oversized input comes back as one plain segment.
    """
    text = text.strip()
    if not text:
        return []

    if len(text) > MAX_STRUCTURED_CHARS:
        log.warning("structured_parse_skipped", chars=len(text))
        return [Segment(text)]

    if is_html(text):
        return parse_html(text)
    return parse_markdown(text)


def sanitize_html(html: str) -> BeautifulSoup:
    """Reduce markup to the structural allow-list.

    Disallowed tags are unwrapped so their text survives; script-like tags
    are removed with their content; every attribute is dropped.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(DROPPED_TAGS):
        tag.decompose()

    for tag in soup.find_all(True):
        if tag.name in ALLOWED_TAGS:
            tag.attrs = {}
        else:
            tag.unwrap()

    return soup


def _tag_type(tag: Tag, inherited: SegmentType) -> SegmentType:
    name = tag.name
    if name in ("h1", "h2", "h3", "h4", "h5", "h6"):
        return SegmentType(name)
    if name == "li":
        return SegmentType.LIST_ITEM
    if name in ("code", "pre"):
        return SegmentType.CODE
    if name == "blockquote":
        return SegmentType.BLOCKQUOTE
    return inherited


def _children(node: Tag) -> list[str | Tag]:
    """Child tags and text nodes in document order.

    Each text node stays separate so text from neighbouring elements never
    fuses into one word. Comments and doctypes are dropped.
    """
    children: list[str | Tag] = []
    for child in node.contents:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, NavigableString):
            children.append(str(child))
        elif isinstance(child, Tag):
            children.append(child)
    return children


def parse_html(html: str) -> list[Segment]:
    """Emit one segment per text node, typed by its nearest structural tag."""
    soup = sanitize_html(html)
    segments: list[Segment] = []
    section_title: str | None = None

    # Iterative walk: deeply nested input must not hit the recursion limit.
    stack: list[tuple[str | Tag, SegmentType]] = [
        (child, SegmentType.NORMAL) for child in reversed(_children(soup))
    ]
    while stack:
        node, inherited = stack.pop()

        if isinstance(node, str):
            text = node.strip()
            if text:
                segments.append(Segment(text, inherited, section_title))
            continue

        node_type = _tag_type(node, inherited)
        if node_type.is_heading and node.name == node_type.value:
            section_title = node.get_text(" ", strip=True) or section_title
        stack.extend((child, node_type) for child in reversed(_children(node)))

    return segments


def clean_inline_markdown(text: str) -> str:
    """Strip emphasis, code and link markup, keeping the visible text."""
    for pattern, replacement in _INLINE_MARKDOWN:
        text = pattern.sub(replacement, text)
    return text


def parse_markdown(markdown: str) -> list[Segment]:
    """Line-oriented parse of Markdown-flavoured text."""
    segments: list[Segment] = []
    section_title: str | None = None

    for line in markdown.splitlines():
        line = line.strip()
        if not line:
            continue

        if _MD_RULE_RE.match(line):
            continue

        match = _MD_HEADING_RE.match(line)
        if match:
            text = clean_inline_markdown(match.group(2)).strip()
            if text:
                section_title = text
                segments.append(
                    Segment(text, SegmentType.heading(len(match.group(1))), section_title)
                )
            continue

        match = _MD_LIST_ITEM_RE.match(line)
        if match:
            segments.append(
                Segment(clean_inline_markdown(match.group(1)), SegmentType.LIST_ITEM, section_title)
            )
            continue

        match = _MD_BLOCKQUOTE_RE.match(line)
        if match:
            segments.append(
                Segment(clean_inline_markdown(match.group(1)), SegmentType.BLOCKQUOTE, section_title)
            )
            continue

        segments.append(Segment(clean_inline_markdown(line), SegmentType.NORMAL, section_title))

    return segments
