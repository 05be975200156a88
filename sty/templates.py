"""Template rendering engine for Sty.

This module uses Jinja2 to render page templates and content layouts.
Partials from ``_partials`` are registered by name so templates can
``{% include "header" %}`` them; everything else is loaded from the project
root by relative path.

Key classes:
- TemplateEngine: Renders one template with a data record.
- TemplatePartial: A named partial template file.
- RenderError: Raised for template registration or render failures.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateSyntaxError,
    pass_context,
    select_autoescape,
)

from .changes import PARTIALS_DIR, TEMPLATE_SUFFIXES, FileKind, find_files, strip_suffix


class RenderError(Exception):
    """Error raised when a template cannot be registered or rendered.

    Attributes:
        template_name: Name or path of the offending template.
        message: Human-readable error detail.
        original_error: The original exception, when there is one.
        source_path: File the template was read from, when known.
    """

    def __init__(
        self,
        template_name: str,
        message: str,
        original_error: Exception | None = None,
        source_path: Path | None = None,
    ):
        self.template_name = template_name
        self.message = message
        self.original_error = original_error
        self.source_path = source_path
        super().__init__(f"{template_name}: {message}")


@dataclass(frozen=True)
class TemplatePartial:
    name: str
    path: Path


def find_partials(root_dir: Path, output_dir_name: str = "public") -> list[TemplatePartial]:
    """Collect the partial templates under ``_partials``.

    A partial is named after its file with the template suffix removed,
    so ``_partials/header.jinja`` is included as ``header``.
    """
    return [
        TemplatePartial(name=strip_suffix(path.name, TEMPLATE_SUFFIXES), path=path)
        for path in find_files(root_dir / PARTIALS_DIR, FileKind.TEMPLATE, root_dir, output_dir_name)
    ]


def _describe(exc: TemplateError) -> str:
    if isinstance(exc, TemplateSyntaxError):
        return f"Template syntax error on line {exc.lineno}: {exc.message}"
    return f"{type(exc).__name__}: {exc}"


_escape_by_extension = select_autoescape(["html", "xml"])


class TemplateEngine:
    """Jinja2 environment with Sty's partials and helpers installed.

    One engine is built per rebuild wave and shared by its workers.

    Attributes:
        root_dir: Directory templates are loaded from.
        utc_offset: Hours east of UTC for the date helpers.
        env: The Jinja2 environment.
    """

    def __init__(
        self,
        root_dir: Path,
        partials: list[TemplatePartial] | None = None,
        utc_offset: int = 0,
    ):
        """Initialize the engine and register partials.

        Args:
            root_dir: Project root directory.
            partials: Partial templates to register by name.
            utc_offset: Hours east of UTC for the date helpers.

        Raises:
            RenderError: If a partial cannot be read or does not compile.
        """
        self.root_dir = root_dir
        self.utc_offset = utc_offset
        partials = partials or []
        sources: dict[str, str] = {}
        for partial in partials:
            try:
                sources[partial.name] = partial.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise RenderError(
                    partial.name, f"Could not read partial: {exc}", exc, partial.path
                ) from exc
        # partials are escaped by their file name, not the name they are included by
        self._partial_files = {partial.name: partial.path.name for partial in partials}
        self.env = Environment(
            loader=ChoiceLoader([DictLoader(sources), FileSystemLoader(str(root_dir))]),
            autoescape=self._autoescape,
            enable_async=False,
        )
        self._install_globals()
        for partial in partials:
            try:
                self.env.get_template(partial.name)
            except TemplateError as exc:
                raise RenderError(partial.name, _describe(exc), exc, partial.path) from exc

    def _autoescape(self, template_name: str | None) -> bool:
        return _escape_by_extension(self._partial_files.get(template_name, template_name))

    def _install_globals(self) -> None:
        """Install helper functions and filters in the Jinja environment."""
        self.env.globals["date"] = self._date
        self.env.globals["is_slug"] = _is_slug
        self.env.globals["unless_slug"] = _unless_slug
        self.env.filters["format_date"] = self._format_date

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(hours=self.utc_offset))

    def _date(self, fmt: str) -> str:
        """Format the current time, shifted to the configured offset."""
        return datetime.now(self.tz).strftime(fmt)

    def _format_date(self, value: str, fmt: str) -> str:
        """Format a ``YYYY-MM-DD`` string, read as UTC midnight.

        Args:
            value: Date string such as ``2023-06-01``.
            fmt: strftime format.

        Returns:
            The formatted date in the configured offset.
        """
        year, month, day = (int(part) for part in str(value).split("-")[:3])
        moment = datetime(year, month, day, tzinfo=timezone.utc)
        return moment.astimezone(self.tz).strftime(fmt)

    def template_name(self, template_path: Path) -> str:
        return template_path.relative_to(self.root_dir).as_posix()

    def render(self, template_path: Path, data: dict[str, Any]) -> str:
        """Render the template at ``template_path`` with ``data``.

        Args:
            template_path: Absolute path of a template under the root.
            data: Template context.

        Returns:
            Rendered text.

        Raises:
            RenderError: If the template is missing, does not compile or
                fails while rendering.
        """
        try:
            name = self.template_name(template_path)
        except ValueError as exc:
            raise RenderError(str(template_path), "Template is outside the project root", exc) from exc
        try:
            template = self.env.get_template(name)
            return template.render(**data)
        except TemplateError as exc:
            raise RenderError(name, _describe(exc), exc, template_path) from exc


def _slug_matches(context, pattern: str) -> bool | None:
    slug = context.get("slug")
    if not slug:
        return None
    try:
        return re.search(pattern, slug) is not None
    except re.error:
        return None


@pass_context
def _is_slug(context, pattern: str) -> bool:
    """True when the current slug matches ``pattern``."""
    return _slug_matches(context, pattern) is True


@pass_context
def _unless_slug(context, pattern: str) -> bool:
    """True when there is a slug and it does not match ``pattern``."""
    return _slug_matches(context, pattern) is False
