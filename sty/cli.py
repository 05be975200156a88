"""Command-line interface for Sty.

This module defines the CLI commands using Click framework.

Commands:
- build: Compile the site into the output directory.
- watch: Compile, then recompile selectively whenever files change.
- md: Create a new content file interactively.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import click
import questionary

from . import __version__
from .changes import LAYOUTS_DIR, NODE_MODULES_DIR, TEMPLATE_SUFFIXES, strip_suffix
from .config import Config, ConfigError, load_config


@click.group()
@click.version_option(version=__version__, prog_name="sty")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Sty static site generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
    )


def _load_config() -> Config:
    try:
        return load_config(Path.cwd())
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None


def _report_build_error(exc, root_dir: Path) -> None:
    """Display a user-friendly build error and exit non-zero."""
    try:
        shown = exc.source_path.relative_to(root_dir)
    except ValueError:
        shown = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {shown}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    raise SystemExit(1)


@cli.command()
def build():
    """Compile the site into the output directory."""
    config = _load_config()
    from .build import BuildError, SiteCompiler

    try:
        result = SiteCompiler(config).compile()
    except BuildError as exc:
        _report_build_error(exc, config.root_dir)
    click.echo(
        f"Built {result.content_items} content items and {result.template_pages} pages, "
        f"copied {result.assets} assets into {result.output_dir}"
    )


@cli.command()
def watch():
    """Compile the site, then rebuild on changes."""
    config = _load_config()
    from .build import BuildError, SiteCompiler
    from .scheduler import RebuildScheduler
    from .watcher import SiteWatcher

    compiler = SiteCompiler(config)
    try:
        compiler.compile()
        SiteWatcher(RebuildScheduler(compiler)).run()
    except BuildError as exc:
        _report_build_error(exc, config.root_dir)


@cli.command()
def md():
    """Create a new content file interactively."""
    config = _load_config()
    root_dir = config.root_dir

    folders = _get_content_folders(root_dir, config.output_dir_name)
    folder = questionary.select(
        "Select folder:",
        choices=folders,
        style=_questionary_style(),
    ).ask()

    if folder is None:
        raise click.Abort()

    name = questionary.text(
        "Filename (without .md extension):",
        validate=lambda x: len(x.strip()) > 0 or "Filename cannot be empty",
        style=_questionary_style(),
    ).ask()

    if name is None:
        raise click.Abort()

    name = name.strip()

    layouts = _get_layouts(root_dir)
    layout = ""
    if layouts:
        layout = questionary.select(
            "Layout:",
            choices=layouts,
            style=_questionary_style(),
        ).ask()
        if layout is None:
            raise click.Abort()

    target_dir = root_dir if folder == ". (root)" else root_dir / folder
    target_path = target_dir / f"{name}.md"

    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {target_path.relative_to(root_dir)}"
        )

    today = datetime.now(timezone(timedelta(hours=config.utc_offset))).strftime("%Y-%m-%d")
    lines = ["---", f"title: {_titleize(name)}", f"date: {today}"]
    if layout:
        lines.append(f"layout: {layout}")
    lines.extend(["---", "", ""])

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text("\n".join(lines), encoding="utf-8")
    click.echo(f"Created {target_path.relative_to(root_dir)}")


def _get_content_folders(root_dir: Path, output_dir_name: str) -> list[str]:
    """Get list of folders content files can be created in.

    Excludes _ prefixed folders (_layouts, _partials), hidden folders,
    node_modules and the output directory.
    """
    folders = []
    for path in root_dir.iterdir():
        if not path.is_dir() or path.name.startswith(("_", ".")):
            continue
        if path.name in (output_dir_name, NODE_MODULES_DIR):
            continue
        folders.append(path.name)
    folders.sort()
    folders.insert(0, ". (root)")
    return folders


def _get_layouts(root_dir: Path) -> list[str]:
    layouts_dir = root_dir / LAYOUTS_DIR
    if not layouts_dir.is_dir():
        return []
    names = {
        strip_suffix(strip_suffix(path.name, TEMPLATE_SUFFIXES), (".html",))
        for path in layouts_dir.iterdir()
        if path.is_file() and path.name.endswith(TEMPLATE_SUFFIXES)
    }
    return sorted(names)


def _titleize(name: str) -> str:
    """Convert filename to title case."""
    words = name.replace("-", " ").replace("_", " ").split()
    return " ".join(word.capitalize() for word in words)


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
