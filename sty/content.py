"""Content processing for Sty.

This module turns content files (Markdown with a leading metadata block) into
ContentItem records.

Key classes:
- ContentItem: One parsed content file.
- ContentReadError: Raised when a content file cannot be read.

Key functions:
- parse_meta: Parse the flat ``key: value`` metadata block.
- parse_entry: Strip the metadata block and convert the Markdown body to HTML.
- parse_content_file: Build a ContentItem from a file on disk.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import mistune

from .changes import CONTENT_SUFFIXES, strip_suffix
from .fields import FieldAccessor

META_BLOCK_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^(?:---|\.\.\.)[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE
)

WORDS_PER_MINUTE = 225


class ContentReadError(Exception):
    """Error raised when a content file cannot be read or decoded.

    Attributes:
        source_path: Path to the content file.
        original_error: The underlying exception.
    """

    def __init__(self, source_path: Path, original_error: Exception):
        self.source_path = source_path
        self.original_error = original_error
        super().__init__(f"{source_path}: could not read content file ({original_error})")


@dataclass(frozen=True)
class ContentItem:
    """One parsed content file.

    Items are rebuilt from disk on every parse pass and never modified.

    Attributes:
        path: Absolute source path.
        slug: Root-relative path without the content suffix, e.g. ``/posts/hello``.
        meta: Flat metadata parsed from the leading ``---`` block.
        entry: Rendered HTML body.
        time_to_read: Reading time estimate in minutes.
    """

    path: str
    slug: str
    meta: dict[str, str] = field(default_factory=dict)
    entry: str = ""
    time_to_read: int = 0


content_item_fields: FieldAccessor[ContentItem] = FieldAccessor(
    {
        "path": lambda item: item.path,
        "slug": lambda item: item.slug,
        "meta": lambda item: item.meta,
        "entry": lambda item: item.entry,
        "time_to_read": lambda item: item.time_to_read,
    }
)


def parse_meta(text: str) -> dict[str, str]:
    """Parse the metadata block at the start of ``text``.

    Each line is split on its first colon; keys and values are trimmed.
    Lines without a colon are ignored.

    Args:
        text: Raw file content.

    Returns:
        Metadata mapping, empty when there is no block.
    """
    match = META_BLOCK_RE.match(text)
    if not match:
        return {}
    meta: dict[str, str] = {}
    for line in match.group(1).splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        meta[key] = value.strip()
    return meta


def render_markdown(text: str) -> str:
    """Convert Markdown to HTML, passing raw HTML through."""
    markdown = mistune.create_markdown(
        renderer=mistune.HTMLRenderer(escape=False),
        plugins=["strikethrough", "footnotes", "table", "url"],
    )
    return markdown(text)


def parse_entry(text: str) -> str:
    """Render the body of ``text`` (metadata block removed) to HTML."""
    body = META_BLOCK_RE.sub("", text, count=1)
    return render_markdown(body)


def time_to_read(html: str) -> int:
    return len(html.split()) // WORDS_PER_MINUTE


def slug_for(path: Path, root: Path) -> str:
    rel = path.relative_to(root).as_posix()
    return "/" + strip_suffix(rel, CONTENT_SUFFIXES)


def parse_content(text: str, path: Path, root: Path) -> ContentItem:
    """Build a ContentItem from already-read file content.

    Args:
        text: Raw file content.
        path: Absolute path of the file.
        root: Project root, stripped from the slug.
    """
    entry = parse_entry(text)
    return ContentItem(
        path=str(path),
        slug=slug_for(path, root),
        meta=parse_meta(text),
        entry=entry,
        time_to_read=time_to_read(entry),
    )


def parse_content_file(path: Path, root: Path) -> ContentItem:
    """Read and parse one content file.

    Raises:
        ContentReadError: If the file is missing, unreadable or not UTF-8.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ContentReadError(path, exc) from exc
    return parse_content(text, path, root)


def parse_content_files(files: Iterable[Path], root: Path) -> list[ContentItem]:
    return [parse_content_file(path, root) for path in files]
