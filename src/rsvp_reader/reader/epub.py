"""Plain-text extraction from EPUB books."""

import io
import os
import posixpath
import zipfile
import zlib
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import BinaryIO
from urllib.parse import unquote

import structlog
from bs4 import BeautifulSoup

from ..fetching.extractor import html_to_text

log = structlog.get_logger()

CONTAINER_PATH = "META-INF/container.xml"
CHAPTER_MEDIA_TYPES = ("application/xhtml+xml", "text/html")

# Refuse single archive members that would inflate past this size.
MAX_ENTRY_BYTES = 50 * 1024 * 1024

UNTITLED_BOOK = "Untitled"
UNTITLED_CHAPTER = "Untitled chapter"

ProgressCallback = Callable[[int, str], None]


class EpubError(ValueError):
    """The file is not a readable EPUB."""


@dataclass
class EpubMetadata:
    title: str = UNTITLED_BOOK
    author: str | None = None
    publisher: str | None = None
    date: str | None = None
    description: str | None = None
    language: str | None = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "publisher": self.publisher,
            "date": self.date,
            "description": self.description,
            "language": self.language,
        }


@dataclass
class EpubChapter:
    title: str
    content: str
    index: int


@dataclass
class EpubBook:
    metadata: EpubMetadata
    chapters: list[EpubChapter] = field(default_factory=list)
    full_text: str = ""


def is_epub_file(filename: str) -> bool:
    return filename.lower().endswith(".epub")


def _read_member(archive: zipfile.ZipFile, name: str) -> str:
    try:
        info = archive.getinfo(name)
    except KeyError as e:
        raise EpubError(f"Missing {name} in EPUB") from e
    if info.file_size > MAX_ENTRY_BYTES:
        raise EpubError(f"{name} is too large")
    try:
        data = archive.read(info)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise EpubError(f"{name} is corrupted") from e
    return data.decode("utf-8", errors="replace")


def _find_opf_path(archive: zipfile.ZipFile) -> str:
    container = BeautifulSoup(_read_member(archive, CONTAINER_PATH), "xml")
    rootfile = container.find("rootfile")
    if rootfile is None or not rootfile.get("full-path"):
        raise EpubError("Could not locate the package document")
    return rootfile["full-path"]


def _text_of(parent, name: str) -> str | None:
    element = parent.find(name) if parent is not None else None
    if element is None:
        return None
    text = element.get_text(strip=True)
    return text or None


def _parse_metadata(opf: BeautifulSoup) -> EpubMetadata:
    metadata = opf.find("metadata")
    description = _text_of(metadata, "description")
    if description is None and metadata is not None:
        abstract = metadata.find("meta", attrs={"property": "dcterms:abstract"})
        if abstract is not None:
            description = abstract.get_text(strip=True) or None

    return EpubMetadata(
        title=_text_of(metadata, "title") or UNTITLED_BOOK,
        author=_text_of(metadata, "creator"),
        publisher=_text_of(metadata, "publisher"),
        date=_text_of(metadata, "date"),
        description=description,
        language=_text_of(metadata, "language"),
    )


def _spine_paths(opf: BeautifulSoup, opf_path: str) -> list[str]:
    """Archive paths of the chapter documents in reading order."""
    base_dir = posixpath.dirname(opf_path)

    manifest: dict[str, str] = {}
    for item in opf.find_all("item"):
        if item.get("media-type") in CHAPTER_MEDIA_TYPES and item.get("id") and item.get("href"):
            manifest[item["id"]] = item["href"]

    paths = []
    for itemref in opf.find_all("itemref"):
        href = manifest.get(itemref.get("idref", ""))
        if href:
            paths.append(posixpath.normpath(posixpath.join(base_dir, unquote(href))))
    return paths


def _chapter_title(soup: BeautifulSoup) -> str:
    for name in ("title", "h1", "h2"):
        element = soup.find(name)
        if element is not None:
            text = element.get_text(" ", strip=True)
            if text:
                return text
    return UNTITLED_CHAPTER


def extract_epub_text(
    source: str | os.PathLike | bytes | BinaryIO,
    on_progress: ProgressCallback | None = None,
) -> EpubBook:
    """Extract metadata and chapter text from an EPUB.

    Args:
        source: Path, raw bytes or binary file object.
        on_progress: Optional callback receiving (percent, status).

    Returns:
        EpubBook with chapters in spine order.

    Raises:
        EpubError: The archive is invalid or contains no text.
    """
    report = on_progress or (lambda percent, status: None)
    report(0, "Reading EPUB file")

    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        archive = zipfile.ZipFile(source)
    except (zipfile.BadZipFile, OSError) as e:
        raise EpubError("Not a valid EPUB archive") from e

    with archive:
        report(20, "Locating content")
        opf_path = _find_opf_path(archive)
        opf = BeautifulSoup(_read_member(archive, opf_path), "xml")

        report(30, "Reading metadata")
        metadata = _parse_metadata(opf)
        paths = _spine_paths(opf, opf_path)
        if not paths:
            raise EpubError("No chapters found in EPUB")

        chapters: list[EpubChapter] = []
        for position, path in enumerate(paths):
            try:
                markup = _read_member(archive, path)
            except EpubError:
                log.warning("epub_chapter_skipped", path=path)
                continue

            soup = BeautifulSoup(markup, "lxml")
            body = soup.body or soup
            chapters.append(
                EpubChapter(
                    title=_chapter_title(soup),
                    content=html_to_text(str(body)),
                    index=len(chapters),
                )
            )
            report(40 + (position + 1) * 50 // len(paths), f"Processing chapter {position + 1}/{len(paths)}")

    full_text = "\n\n".join(chapter.content for chapter in chapters if chapter.content).strip()
    if not full_text:
        raise EpubError("No text could be extracted from EPUB")

    log.info("epub_extracted", title=metadata.title, chapters=len(chapters), chars=len(full_text))
    report(100, "Done")
    return EpubBook(metadata=metadata, chapters=chapters, full_text=full_text)
