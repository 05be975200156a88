"""Sty static site generator.

Sty reads Markdown content files and Jinja2 templates, composes named content
sets from a declarative manifest (``content.json``) and renders everything into
the ``public`` directory. In watch mode it classifies filesystem changes and
recompiles only what a change can affect.

The main entry point is the CLI module, which provides commands for building
the site once, watching it for changes, and scaffolding new content files.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
