"""File classification for Sty.

Every path under the project root belongs to zero or more kinds, decided by
relative-path prefix and suffix rules. The same predicates drive file discovery
for a build and the choice of reaction when a watched file changes.

Key functions:
- classify: Return every kind a path matches.
- find_files: Recursively list the files of one kind under a directory.
"""

from __future__ import annotations

import enum
import os
from pathlib import Path, PurePosixPath

from .config import CONFIG_FILENAME

CONTENT_SUFFIXES = (".md", ".markdown")
TEMPLATE_SUFFIXES = (".jinja", ".j2")
DATA_FILES = ("site.json", "content.json")

LAYOUTS_DIR = "_layouts"
PARTIALS_DIR = "_partials"
NODE_MODULES_DIR = "node_modules"


class FileKind(enum.Enum):
    """Categories a changed or discovered file can fall into."""

    DATA = "data"
    TEMPLATE = "template"
    PAGE_TEMPLATE = "page_template"
    CONTENT = "content"
    ASSET = "asset"


def relative_parts(path: Path | str, root: Path, output_dir_name: str = "public") -> tuple[str, ...] | None:
    """Split ``path`` into components relative to ``root``.

    Returns:
        The relative components, or None when the path lies outside the root,
        is the root itself, or sits in a directory that is never scanned
        (the output directory, node_modules, or any dot-prefixed component).
    """
    try:
        rel = Path(os.path.abspath(path)).relative_to(os.path.abspath(root))
    except ValueError:
        return None
    parts = PurePosixPath(rel.as_posix()).parts
    if not parts:
        return None
    if parts[0] in (output_dir_name, NODE_MODULES_DIR):
        return None
    if any(part.startswith(".") for part in parts):
        return None
    return parts


def has_suffix(name: str, suffixes: tuple[str, ...]) -> bool:
    return name.endswith(suffixes)


def strip_suffix(name: str, suffixes: tuple[str, ...]) -> str:
    """Remove the first matching suffix from ``name``."""
    for suffix in suffixes:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def is_data_file(parts: tuple[str, ...]) -> bool:
    return len(parts) == 1 and parts[0] in DATA_FILES


def is_template_file(parts: tuple[str, ...]) -> bool:
    """Any template, layouts and partials included."""
    return has_suffix(parts[-1], TEMPLATE_SUFFIXES)


def _in_template_dirs(parts: tuple[str, ...]) -> bool:
    return parts[0] in (LAYOUTS_DIR, PARTIALS_DIR)


def is_page_template_file(parts: tuple[str, ...]) -> bool:
    return is_template_file(parts) and not _in_template_dirs(parts)


def is_content_file(parts: tuple[str, ...]) -> bool:
    return has_suffix(parts[-1], CONTENT_SUFFIXES) and not _in_template_dirs(parts)


def is_asset_file(parts: tuple[str, ...]) -> bool:
    name = parts[-1]
    if has_suffix(name, TEMPLATE_SUFFIXES) or has_suffix(name, CONTENT_SUFFIXES):
        return False
    if is_data_file(parts) or parts == (CONFIG_FILENAME,):
        return False
    return not _in_template_dirs(parts)


_PREDICATES = {
    FileKind.DATA: is_data_file,
    FileKind.TEMPLATE: is_template_file,
    FileKind.PAGE_TEMPLATE: is_page_template_file,
    FileKind.CONTENT: is_content_file,
    FileKind.ASSET: is_asset_file,
}


def classify(path: Path | str, root: Path, output_dir_name: str = "public") -> set[FileKind]:
    """Return every kind ``path`` belongs to.

    Each predicate is evaluated on its own, so a page template is reported as
    both TEMPLATE and PAGE_TEMPLATE.

    Args:
        path: Changed or discovered path, absolute or relative to the cwd.
        root: Project root directory.
        output_dir_name: Output directory name, always excluded.

    Returns:
        Set of matching kinds, empty for paths outside the project.
    """
    parts = relative_parts(path, root, output_dir_name)
    if parts is None:
        return set()
    return {kind for kind, predicate in _PREDICATES.items() if predicate(parts)}


def find_files(directory: Path, kind: FileKind, root: Path, output_dir_name: str = "public") -> list[Path]:
    """Recursively find files of ``kind`` under ``directory``.

    Args:
        directory: Directory to scan, usually the root or a subfolder of it.
        kind: Kind of file to collect.
        root: Project root the classification rules are relative to.
        output_dir_name: Output directory name, never descended into.

    Returns:
        Sorted list of absolute paths. A missing directory yields an empty list.
    """
    if not directory.is_dir():
        return []
    predicate = _PREDICATES[kind]
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        current = Path(dirpath)
        kept = []
        for name in dirnames:
            if relative_parts(current / name, root, output_dir_name) is not None:
                kept.append(name)
        dirnames[:] = sorted(kept)
        for name in sorted(filenames):
            path = current / name
            parts = relative_parts(path, root, output_dir_name)
            if parts is not None and predicate(parts):
                files.append(path)
    return files
