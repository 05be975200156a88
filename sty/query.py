"""Content query DSL for Sty.

Each entry of the content manifest is a ContentQuery: where to read records
from and how to shape them. Shaping always runs in the same order:
sort, order, limit, then group, group order, group limit.

Paths name either a top-level ContentItem field (``slug``, ``path``) or a
metadata key (``meta.date``). Grouping by ``meta.date`` also accepts a
``|year``, ``|month`` or ``|day`` modifier that picks one part of a
``YYYY-MM-DD`` value.

Key classes:
- ContentQuery: One declarative manifest entry.

Key functions:
- sort_order_limit: Apply sort, order and limit to a list of items.
- group_items: Group items by a path, then order and limit the groups.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .content import ContentItem, content_item_fields

META_PREFIX = "meta."
DATE_MODIFIERS = {"year": 0, "month": 1, "day": 2}
DEFAULT_ORDER = "desc"


class ManifestEntryError(ValueError):
    """Error raised when a manifest entry has the wrong shape."""


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ManifestEntryError(f"'{key}' must be a string, got {value!r}")
    return value


def _optional_limit(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ManifestEntryError(f"'{key}' must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class ContentQuery:
    """One entry of the content manifest.

    Attributes:
        name: Key the resulting content set is exposed under in templates.
        source: Relative file or directory path, or an http(s) URL
            (``from`` in the manifest).
        sort_by: Field path to sort by.
        order: ``asc`` or ``desc``; anything but ``desc`` sorts ascending.
        limit: Maximum number of items kept after sorting.
        group_by: Field path to group by. Its presence selects the grouped shape.
        group_by_order: Order of group keys, ``desc`` unless set.
        group_by_limit: Maximum number of groups kept.
        headers: Request headers for remote sources.
    """

    name: str
    source: str
    sort_by: str | None = None
    order: str | None = None
    limit: int | None = None
    group_by: str | None = None
    group_by_order: str | None = None
    group_by_limit: int | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContentQuery:
        """Build a query from one decoded manifest object.

        Raises:
            ManifestEntryError: If required keys are missing or values have
                the wrong type.
        """
        if not isinstance(data, Mapping):
            raise ManifestEntryError(f"Manifest entries must be objects, got {data!r}")
        name = _optional_str(data, "name")
        source = _optional_str(data, "from")
        if not name or source is None:
            raise ManifestEntryError(f"Manifest entry needs 'name' and 'from': {dict(data)!r}")
        headers = data.get("headers") or {}
        if not isinstance(headers, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
        ):
            raise ManifestEntryError(f"'headers' must map strings to strings in '{name}'")
        return cls(
            name=name,
            source=source,
            sort_by=_optional_str(data, "sort_by"),
            order=_optional_str(data, "order"),
            limit=_optional_limit(data, "limit"),
            group_by=_optional_str(data, "group_by"),
            group_by_order=_optional_str(data, "group_by_order"),
            group_by_limit=_optional_limit(data, "group_by_limit"),
            headers=dict(headers),
        )

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))


def sort_value(item: ContentItem, by: str) -> str:
    """Return the string ``item`` is compared by for path ``by``.

    A missing metadata key compares as an empty string; an unknown top-level
    field raises NoSuchFieldError.
    """
    if by.startswith(META_PREFIX):
        return item.meta.get(by[len(META_PREFIX) :], "")
    return content_item_fields.get(item, by, str)


def sort_items(items: Iterable[ContentItem], by: str, order: str | None = None) -> list[ContentItem]:
    """Stable sort of ``items`` by path ``by``.

    ``desc`` reverses the comparison; items that compare equal keep their
    original relative order in both directions.
    """
    if not by.startswith(META_PREFIX):
        content_item_fields.check(by)
    reverse = (order or DEFAULT_ORDER) == "desc"
    return sorted(items, key=lambda item: sort_value(item, by), reverse=reverse)


def limit_items(items: list[ContentItem], limit: int | None) -> list[ContentItem]:
    if limit is None:
        return list(items)
    return items[:limit]


def sort_order_limit(query: ContentQuery, items: Iterable[ContentItem]) -> list[ContentItem]:
    """Apply the query's sort, order and limit to ``items``."""
    shaped = list(items)
    if query.sort_by:
        shaped = sort_items(shaped, query.sort_by, query.order)
    return limit_items(shaped, query.limit)


def _split_meta_path(by: str) -> tuple[str, str]:
    key, _, modifier = by[len(META_PREFIX) :].partition("|")
    return key, modifier


def group_key(item: ContentItem, by: str) -> str:
    """Derive the group key (grouper) of ``item`` for path ``by``.

    ``meta.date|year`` on ``2023-06-01`` gives ``2023``, ``|month`` gives
    ``06`` and ``|day`` gives ``01``. A modifier on any other key, or an
    unknown modifier, leaves the raw value. A date too short for the
    requested part groups under an empty key.
    """
    if not by.startswith(META_PREFIX):
        return content_item_fields.get(item, by, str)
    key, modifier = _split_meta_path(by)
    value = item.meta.get(key, "")
    if key == "date" and modifier in DATE_MODIFIERS:
        parts = value.split("-")
        index = DATE_MODIFIERS[modifier]
        return parts[index] if index < len(parts) else ""
    return value


def order_limit_groups(
    groups: dict[str, list[ContentItem]],
    order: str | None = None,
    limit: int | None = None,
) -> dict[str, list[ContentItem]]:
    """Order group keys lexicographically and keep at most ``limit`` groups.

    Only the keys are reordered; each group's items stay as they were.
    """
    keys = sorted(groups)
    if (order or DEFAULT_ORDER) == "desc":
        keys.reverse()
    if limit is not None:
        keys = keys[:limit]
    return {key: groups[key] for key in keys}


def group_items(
    items: Iterable[ContentItem],
    by: str,
    order: str | None = None,
    limit: int | None = None,
) -> dict[str, list[ContentItem]]:
    """Group ``items`` by path ``by``, then order and limit the groups.

    Items keep their arrival order inside each group. An empty ``by`` returns
    an empty mapping without looking at the items; the resolver reads that
    as "use the flat shape".
    """
    if not by:
        return {}
    if not by.startswith(META_PREFIX):
        content_item_fields.check(by)
    groups: dict[str, list[ContentItem]] = {}
    for item in items:
        groups.setdefault(group_key(item, by), []).append(item)
    return order_limit_groups(groups, order, limit)
