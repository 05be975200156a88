"""Site building functionality for Sty.

This module compiles a project into its output directory. Content items and
page templates are rendered in waves: the file list is cut into fixed-size
chunks, each chunk is handled by one worker thread, and a wave returns only
after every worker has finished.

Key classes:
- SiteCompiler: Composes global data and runs compilation waves.
- BuildError: Fatal build failure tied to a source file.

Key functions:
- load_site_info: Loads site metadata from site.json.
- run_wave: Run a function over chunks of items behind a completion barrier.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import httpx

from .cache import MemoCache
from .changes import LAYOUTS_DIR, TEMPLATE_SUFFIXES, FileKind, find_files, strip_suffix
from .config import Config
from .content import ContentItem, ContentReadError
from .fields import FieldAccessError
from .sources import MANIFEST_FILENAME, ContentSourceResolver, template_payloads
from .templates import RenderError, TemplateEngine, find_partials

logger = logging.getLogger(__name__)

SITE_FILENAME = "site.json"
LAYOUT_SUFFIXES = (".html.jinja", ".jinja", ".j2")

T = TypeVar("T")
R = TypeVar("R")


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a full compilation.

    Attributes:
        content_items: Number of content items written.
        template_pages: Number of page templates written.
        assets: Number of assets copied.
        output_dir: Directory the site was written to.
    """

    content_items: int
    template_pages: int
    assets: int
    output_dir: Path


def load_site_info(root_dir: Path) -> dict[str, Any]:
    """Load site metadata from site.json.

    Args:
        root_dir: Root directory of the project.

    Returns:
        The decoded JSON object, or an empty dict when the file is missing,
        unreadable or not a JSON object.
    """
    path = root_dir / SITE_FILENAME
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a JSON object", path)
        return {}
    return data


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def run_wave(
    items: Sequence[T],
    work: Callable[[list[T]], R],
    chunk_size: int = 50,
    max_workers: int = 8,
) -> list[R]:
    """Process ``items`` in chunks on worker threads and wait for all of them.

    Each worker handles one chunk in list order. The pool is created for this
    wave only and joined before returning, so waves never overlap. If a
    worker fails, the remaining workers still finish before the first error
    (in chunk order) is raised.

    Args:
        items: Items to process.
        work: Function called once per chunk.
        chunk_size: Items per chunk.
        max_workers: Upper bound on concurrent workers.

    Returns:
        Each chunk's result, in chunk order.
    """
    chunks = chunked(items, chunk_size)
    if not chunks:
        return []
    with ThreadPoolExecutor(
        max_workers=min(len(chunks), max_workers), thread_name_prefix="sty-wave"
    ) as pool:
        futures = [pool.submit(work, chunk) for chunk in chunks]
        wait(futures)
    return [future.result() for future in futures]


def write_to_path(path: Path, contents: str) -> None:
    """Write ``contents`` to ``path``, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents, encoding="utf-8")
    except OSError as exc:
        raise BuildError(path, f"Could not write file: {exc}", exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"
    if error_type == "ValueError":
        return f"Value error: {error_msg}"

    return f"{error_type}: {error_msg}"


class SiteCompiler:
    """Compiles a project into its output directory.

    Attributes:
        config: Resolved runtime configuration.
        root_dir: Project root directory.
        output_dir: Directory rendered files are written to.
        cache: Memoization window shared by every derivation of a build.
        resolver: Content source resolver for the manifest.
    """

    def __init__(
        self,
        config: Config,
        cache: MemoCache | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize the compiler.

        Args:
            config: Resolved runtime configuration.
            cache: Optional cache; one with the configured window is created
                when omitted.
            client: Optional HTTP client for remote content sources.
        """
        self.config = config
        self.root_dir = config.root_dir
        self.output_dir = config.output_dir
        self.cache = cache or MemoCache(config.cache_seconds)
        self.resolver = ContentSourceResolver(
            self.root_dir,
            config.output_dir_name,
            cache=self.cache,
            client=client,
            timeout=config.request_timeout,
        )
        self._copied_assets: set[Path] = set()

    def find(self, kind: FileKind) -> list[Path]:
        """Files of ``kind`` anywhere under the root, memoized."""
        return self.cache.get_or_compute(
            ("files", kind, str(self.root_dir)),
            lambda: find_files(self.root_dir, kind, self.root_dir, self.config.output_dir_name),
        )

    def site_info(self) -> dict[str, Any]:
        return self.cache.get_or_compute("site", lambda: load_site_info(self.root_dir))

    def global_data(self, refresh: bool = False) -> dict[str, Any]:
        """Compose the data every template sees.

        Args:
            refresh: Drop everything memoized first, so files changed since
                the last composition are read again.

        Returns:
            Mapping with ``site`` (site.json) and ``content`` (manifest
            results as bare payloads).

        Raises:
            BuildError: If the manifest names an unknown field or a content
                file cannot be read.
        """
        if refresh:
            self.cache.clear()
        return self.cache.get_or_compute("global", self._compose_global_data)

    def _compose_global_data(self) -> dict[str, Any]:
        try:
            content = self.resolver.compose()
        except FieldAccessError as exc:
            raise BuildError(
                self.root_dir / MANIFEST_FILENAME, f"Invalid content query: {exc}", exc
            ) from exc
        except ContentReadError as exc:
            raise BuildError(exc.source_path, str(exc.original_error), exc) from exc
        return {
            "site": self.site_info(),
            "content": template_payloads(content),
        }

    def content_items(self) -> list[ContentItem]:
        try:
            return self.resolver.content_items(self.root_dir)
        except ContentReadError as exc:
            raise BuildError(exc.source_path, str(exc.original_error), exc) from exc

    def engine(self) -> TemplateEngine:
        partials = self.cache.get_or_compute(
            "partials", lambda: find_partials(self.root_dir, self.config.output_dir_name)
        )
        try:
            return TemplateEngine(self.root_dir, partials, utc_offset=self.config.utc_offset)
        except RenderError as exc:
            raise BuildError(
                exc.source_path or self.root_dir,
                f"Something went wrong within your partial, {exc.template_name}: {exc.message}",
                exc,
            ) from exc

    def _render(self, engine: TemplateEngine, template_path: Path, data: dict[str, Any]) -> str:
        try:
            return engine.render(template_path, data)
        except RenderError as exc:
            raise BuildError(exc.source_path or template_path, exc.message, exc) from exc
        except Exception as exc:
            raise BuildError(template_path, _format_error_message(exc), exc) from exc

    def layout_path(self, layout: str) -> Path | None:
        """Find the layout template for a ``layout`` metadata value."""
        for suffix in LAYOUT_SUFFIXES:
            candidate = self.root_dir / LAYOUTS_DIR / f"{layout}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def compile_content_items(self, data: dict[str, Any]) -> int:
        """Render every content item through its layout.

        Items without a ``layout`` are skipped with a warning.

        Returns:
            Number of pages written.
        """
        items = self.content_items()
        engine = self.engine()
        counts = run_wave(
            items,
            lambda chunk: self._compile_content_chunk(engine, data, chunk),
            self.config.chunk_size,
            self.config.max_workers,
        )
        return sum(counts)

    def _compile_content_chunk(
        self, engine: TemplateEngine, data: dict[str, Any], chunk: list[ContentItem]
    ) -> int:
        written = 0
        for item in chunk:
            layout = item.meta.get("layout")
            if not layout:
                logger.warning("Skipping %s: no layout in metadata", item.slug)
                continue
            logger.info("Building %s", item.slug)
            template_path = self.layout_path(layout)
            if template_path is None:
                raise BuildError(
                    Path(item.path), f"Layout '{layout}' not found in {LAYOUTS_DIR}/"
                )
            item_data = {
                **data,
                "path": item.path,
                "slug": item.slug,
                "meta": item.meta,
                "entry": item.entry,
                "time_to_read": item.time_to_read,
            }
            html = self._render(engine, template_path, item_data)
            write_to_path(self.output_dir / item.slug.lstrip("/") / "index.html", html)
            written += 1
        return written

    def compile_template_items(self, data: dict[str, Any]) -> int:
        """Render every page template (templates outside layouts and partials).

        Returns:
            Number of pages written.
        """
        files = self.find(FileKind.PAGE_TEMPLATE)
        engine = self.engine()
        counts = run_wave(
            files,
            lambda chunk: self._compile_template_chunk(engine, data, chunk),
            self.config.chunk_size,
            self.config.max_workers,
        )
        return sum(counts)

    def _compile_template_chunk(
        self, engine: TemplateEngine, data: dict[str, Any], chunk: list[Path]
    ) -> int:
        for path in chunk:
            rel = path.relative_to(self.root_dir).as_posix()
            slug = "/" + strip_suffix(rel, TEMPLATE_SUFFIXES)
            logger.info("Building %s", slug)
            html = self._render(engine, path, {**data, "slug": slug})
            write_to_path(self.output_dir / slug.lstrip("/"), html)
        return len(chunk)

    def empty_output_dir(self) -> None:
        """Delete everything inside the output directory."""
        if not self.output_dir.is_dir():
            return
        for child in self.output_dir.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            except OSError as exc:
                raise BuildError(child, f"Could not remove: {exc}", exc) from exc
        self._copied_assets.clear()

    def copy_assets(self) -> int:
        """Copy every asset file to the same relative path in the output.

        Returns:
            Number of files copied.
        """
        assets = self.find(FileKind.ASSET)
        for asset in assets:
            rel = asset.relative_to(self.root_dir)
            logger.info("Copying /%s", rel.as_posix())
            target = self.output_dir / rel
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(asset, target)
            except OSError as exc:
                raise BuildError(asset, f"Could not copy file /{rel.as_posix()}: {exc}", exc) from exc
            self._copied_assets.add(target)
        return len(assets)

    def delete_assets(self) -> None:
        """Remove previously copied assets and the copies of current assets."""
        targets = set(self._copied_assets)
        targets.update(self.output_dir / asset.relative_to(self.root_dir) for asset in self.find(FileKind.ASSET))
        for target in sorted(targets):
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not delete %s: %s", target, exc)
        self._copied_assets.clear()

    def compile(self) -> BuildResult:
        """Compile the whole site from scratch.

        The output directory is emptied first; content items, page
        templates and assets are then written into it in that order.
        """
        logger.info("Thinking ...")
        self.empty_output_dir()
        data = self.global_data(refresh=True)
        content_count = self.compile_content_items(data)
        template_count = self.compile_template_items(data)
        asset_count = self.copy_assets()
        return BuildResult(
            content_items=content_count,
            template_pages=template_count,
            assets=asset_count,
            output_dir=self.output_dir,
        )
