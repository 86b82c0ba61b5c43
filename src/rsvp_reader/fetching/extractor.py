"""Turn a fetched HTML page into readable article text."""

import html as html_lib
import re
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup
from lxml import etree
from readability import Document
from readability.readability import Unparseable

from ..errors import Unextractable
from .base import FetchResult

log = structlog.get_logger()

# Readability returns this marker when a page has no usable <title>.
_NO_TITLE = "[no-title]"

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_INLINE_WS_RE = re.compile(r"[^\S\n]+")
_WS_RE = re.compile(r"\s+")

BLOCK_TAGS = [
    "p", "div", "section", "article", "li", "ul", "ol", "blockquote", "pre",
    "h1", "h2", "h3", "h4", "h5", "h6", "br", "tr", "table", "figure", "header",
    "footer",
]


class ReadableTextExtractor:
    """Extract title, body, excerpt and byline from an HTML page.

    The readability pass favours completeness (book-length pages are a
    supported source). When it fails or finds nothing, a tag-stripping
    fallback with a smaller character cap takes over.
    """

    # Common title selectors
    TITLE_SELECTORS = [
        "h1.post-title",
        "h1.entry-title",
        "h1.article-title",
        "article h1",
        "main h1",
        "h1",
    ]

    # Common author selectors
    AUTHOR_SELECTORS = [
        '[rel="author"]',
        ".author",
        ".byline",
        ".post-author",
    ]

    PRIMARY_MAX_CHARS = 500_000
    FALLBACK_MAX_CHARS = 50_000
    MIN_FALLBACK_CHARS = 100
    EXCERPT_CHARS = 200

    def extract(self, html: str, source_url: str) -> FetchResult:
        """Extract readable text from a page.

        Args:
            html: Decoded page body.
            source_url: URL the page was fetched from.

        Returns:
            FetchResult with truncated content.

        Raises:
            Unextractable: Neither path produced enough text.
        """
        soup = BeautifulSoup(html, "lxml")

        primary = self._readability(html, source_url)
        if primary is not None:
            title, content = primary
            content = content[: self.PRIMARY_MAX_CHARS]
            method = "readability"
        else:
            title, content = self._fallback(html, soup)
            if len(content) < self.MIN_FALLBACK_CHARS:
                log.info("extraction_failed", url=source_url, chars=len(content))
                raise Unextractable()
            content = content[: self.FALLBACK_MAX_CHARS]
            method = "fallback"
            log.info("extraction_fallback_used", url=source_url)

        if not title:
            title = self._extract_title(soup, source_url)

        result = FetchResult(
            title=title,
            content=content,
            excerpt=self._extract_excerpt(soup, content),
            byline=self._extract_byline(soup),
            length=len(content.split()),
        )
        log.info(
            "extraction_succeeded",
            url=source_url,
            method=method,
            title=result.title,
            words=result.length,
        )
        return result

    def _readability(self, html: str, source_url: str) -> tuple[str, str] | None:
        """Run the readability pass.

        Returns:
            (title, text) or None when it fails or yields no text.
        """
        try:
            document = Document(html, url=source_url)
            summary = document.summary(html_partial=True)
            title = document.short_title() or document.title()
        except (Unparseable, ValueError, etree.LxmlError) as e:
            log.debug("readability_failed", url=source_url, error_type=type(e).__name__)
            return None

        text = html_to_text(summary)
        if not text:
            return None

        title = "" if title == _NO_TITLE else _WS_RE.sub(" ", title).strip()
        return title, text

    def _fallback(self, html: str, soup: BeautifulSoup) -> tuple[str, str]:
        """Strip scripts, styles and tags from the parsed page, then collapse whitespace."""
        title = ""
        match = _TITLE_RE.search(html)
        if match:
            title = _WS_RE.sub(" ", html_lib.unescape(match.group(1))).strip()

        for tag in soup.find_all(["script", "style", "noscript", "template"]):
            tag.decompose()
        text = _WS_RE.sub(" ", soup.get_text(" ")).strip()
        return title, text

    def _extract_title(self, soup: BeautifulSoup, url: str) -> str:
        """Title from meta tags and headings, then the host name."""
        og_title = soup.find("meta", property="og:title")
        if og_title and og_title.get("content"):
            return og_title["content"].strip()

        for selector in self.TITLE_SELECTORS:
            element = soup.select_one(selector)
            if element and element.get_text(strip=True):
                return element.get_text(strip=True)

        if soup.title and soup.title.string:
            return soup.title.string.strip()

        return urlparse(url).netloc

    def _extract_byline(self, soup: BeautifulSoup) -> str:
        """Author name from meta tags or common byline elements, else ''."""
        meta_author = soup.find("meta", attrs={"name": "author"})
        if meta_author and meta_author.get("content"):
            return meta_author["content"].strip()

        for selector in self.AUTHOR_SELECTORS:
            element = soup.select_one(selector)
            if element:
                text = element.get_text(" ", strip=True)
                if text:
                    return re.sub(r"^(by|author:?)\s*", "", text, flags=re.IGNORECASE)

        return ""

    def _extract_excerpt(self, soup: BeautifulSoup, content: str) -> str:
        for attrs in ({"name": "description"}, {"property": "og:description"}):
            meta = soup.find("meta", attrs=attrs)
            if meta and meta.get("content", "").strip():
                return meta["content"].strip()

        flat = _WS_RE.sub(" ", content).strip()
        if len(flat) <= self.EXCERPT_CHARS:
            return flat
        cut = flat[: self.EXCERPT_CHARS].rsplit(" ", 1)[0]
        return cut + "…"


def html_to_text(fragment: str) -> str:
    """Plain text of an HTML fragment with one blank line between blocks."""
    soup = BeautifulSoup(fragment, "lxml")
    for tag in soup.find_all(["script", "style", "noscript"]):
        tag.decompose()
    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before("\n")
        tag.append("\n")

    lines = (_INLINE_WS_RE.sub(" ", line).strip() for line in soup.get_text().split("\n"))
    return "\n\n".join(line for line in lines if line)
