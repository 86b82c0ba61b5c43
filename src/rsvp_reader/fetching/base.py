"""Data types shared by the fetch pipeline."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import quote


@dataclass
class FetchResult:
    """Readable text extracted from a remote page."""

    title: str
    content: str  # plain text, paragraphs separated by blank lines
    excerpt: str
    byline: str
    length: int  # whitespace token count of content
    success: bool = True

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "byline": self.byline,
            "length": self.length,
            "success": self.success,
        }


@dataclass
class RawResponse:
    """A size-checked response body from the primary or fallback path."""

    url: str
    status_code: int
    text: str
    content_type: str = ""
    via_fallback: bool = False


@runtime_checkable
class FallbackTransport(Protocol):
    """Secondary route to a page when the direct request fails.

    The fetcher issues the request itself, so the same timeout and size
    limits apply; a transport only decides where that request goes.
    """

    name: str

    def proxied_url(self, url: str) -> str:
        """Return the URL that retrieves ``url`` through this transport."""
        ...


class ProxyTransport:
    """Passthrough proxy addressed by a URL template containing ``{url}``."""

    def __init__(self, template: str, name: str = "proxy") -> None:
        """Initialize the transport.

        Args:
            template: e.g. ``https://api.allorigins.win/raw?url={url}``.
            name: Label used in logs.

        Raises:
            ValueError: If the template has no ``{url}`` placeholder.
        """
        if "{url}" not in template:
            raise ValueError("Proxy template must contain '{url}'")
        self._template = template
        self.name = name

    def proxied_url(self, url: str) -> str:
        return self._template.replace("{url}", quote(url, safe=""))
