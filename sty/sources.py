"""Content sources for Sty.

A manifest entry reads its records from one of three places: a single content
file, a directory of content files, or a remote JSON endpoint. The resolver
picks the source and wraps what it finds in exactly one result variant.

Key classes:
- NormalResult, GroupedResult, SingleResult, PulledResult: The result variants.
- ContentSourceResolver: Resolves manifest entries to results.

Key functions:
- load_manifest: Read ``content.json`` into ContentQuery objects.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import httpx

from .cache import MemoCache
from .changes import CONTENT_SUFFIXES, FileKind, find_files, has_suffix
from .content import ContentItem, ContentReadError, parse_content_file, parse_content_files
from .query import ContentQuery, ManifestEntryError, group_items, sort_order_limit

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "content.json"


@dataclass(frozen=True)
class NormalResult:
    """Flat, ordered list of items."""

    items: list[ContentItem]

    @property
    def payload(self) -> list[ContentItem]:
        return self.items


@dataclass(frozen=True)
class GroupedResult:
    """Ordered mapping of group key to items."""

    groups: dict[str, list[ContentItem]]

    @property
    def payload(self) -> dict[str, list[ContentItem]]:
        return self.groups


@dataclass(frozen=True)
class SingleResult:
    """Exactly one item, for entries pointing at one file."""

    item: ContentItem

    @property
    def payload(self) -> ContentItem:
        return self.item


@dataclass(frozen=True)
class PulledResult:
    """Decoded JSON from a remote source, left unshaped."""

    data: Any

    @property
    def payload(self) -> Any:
        return self.data


ContentResult = Union[NormalResult, GroupedResult, SingleResult, PulledResult]


def template_payloads(results: dict[str, ContentResult]) -> dict[str, Any]:
    """Strip the variant wrappers so templates see bare payloads."""
    return {name: result.payload for name, result in results.items()}


def load_manifest(path: Path) -> list[ContentQuery]:
    """Read the content manifest.

    Args:
        path: Path to ``content.json``.

    Returns:
        The parsed queries. A missing, unreadable or malformed manifest
        yields an empty list so the site still builds without content sets.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
        return []
    if not isinstance(raw, list):
        logger.warning("Ignoring manifest %s: expected a JSON array", path)
        return []
    try:
        return [ContentQuery.from_dict(entry) for entry in raw]
    except ManifestEntryError as exc:
        logger.warning("Ignoring malformed manifest %s: %s", path, exc)
        return []


class ContentSourceResolver:
    """Resolves manifest entries into content results.

    Attributes:
        root_dir: Project root, the base of relative sources.
        output_dir_name: Output directory name, skipped when scanning.
        cache: Optional memoization window for scans and parses.
        timeout: Timeout for remote requests, in seconds.
    """

    def __init__(
        self,
        root_dir: Path,
        output_dir_name: str = "public",
        cache: MemoCache | None = None,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        """Initialize the resolver.

        Args:
            root_dir: Project root directory.
            output_dir_name: Output directory name.
            cache: Optional cache shared with the rest of the build.
            client: Optional HTTP client; a short-lived one is created per
                request when omitted.
            timeout: Timeout for requests made without an injected client.
        """
        self.root_dir = root_dir
        self.output_dir_name = output_dir_name
        self.cache = cache
        self.timeout = timeout
        self._client = client

    def _memo(self, key, compute):
        if self.cache is None:
            return compute()
        return self.cache.get_or_compute(key, compute)

    def content_files(self, directory: Path) -> list[Path]:
        """Content files under ``directory``, memoized for the cache window."""
        return self._memo(
            ("files", FileKind.CONTENT, str(directory)),
            lambda: find_files(directory, FileKind.CONTENT, self.root_dir, self.output_dir_name),
        )

    def content_items(self, directory: Path) -> list[ContentItem]:
        files = self.content_files(directory)
        return self._memo(
            ("items", tuple(str(f) for f in files)),
            lambda: parse_content_files(files, self.root_dir),
        )

    def resolve(self, query: ContentQuery) -> ContentResult | None:
        """Resolve one manifest entry.

        Returns:
            One result variant, or None when the entry is absent: a remote
            fetch failed, or a single-file source is missing or unreadable.

        Raises:
            FieldAccessError: If the entry sorts or groups by an unknown field.
            ContentReadError: If a file in a directory source cannot be read.
        """
        if query.is_remote:
            return self._pull(query)
        path = self.root_dir / query.source.lstrip("/")
        if has_suffix(query.source, CONTENT_SUFFIXES):
            return self._single(path)
        return self._collect(query, path)

    def _pull(self, query: ContentQuery) -> PulledResult | None:
        try:
            if self._client is not None:
                response = self._client.get(query.source, headers=query.headers)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(query.source, headers=query.headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning("Skipping '%s': could not pull %s (%s)", query.name, query.source, exc)
            return None
        return PulledResult(data)

    def _single(self, path: Path) -> SingleResult | None:
        try:
            item = self._memo(("item", str(path)), lambda: parse_content_file(path, self.root_dir))
        except ContentReadError as exc:
            logger.info("Skipping single-file source %s: %s", path, exc.original_error)
            return None
        return SingleResult(item)

    def _collect(self, query: ContentQuery, directory: Path) -> NormalResult | GroupedResult:
        items = sort_order_limit(query, self.content_items(directory))
        if query.group_by is None:
            return NormalResult(items)
        groups = group_items(items, query.group_by, query.group_by_order, query.group_by_limit)
        if not query.group_by:
            # empty grouper: flat shape
            return NormalResult(items)
        return GroupedResult(groups)

    def compose(self, manifest_path: Path | None = None) -> dict[str, ContentResult]:
        """Resolve every entry of the manifest.

        Args:
            manifest_path: Manifest location, ``<root>/content.json`` by default.

        Returns:
            Mapping of entry name to result, in manifest order. Absent
            entries are left out.
        """
        manifest_path = manifest_path or self.root_dir / MANIFEST_FILENAME
        composed: dict[str, ContentResult] = {}
        for query in load_manifest(manifest_path):
            result = self.resolve(query)
            if result is not None:
                composed[query.name] = result
        return composed
