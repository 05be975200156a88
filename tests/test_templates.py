from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sty.templates import RenderError, TemplateEngine, TemplatePartial, find_partials


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_find_partials_strips_template_suffix(tmp_path):
    write(tmp_path / "_partials" / "header.jinja", "H")
    write(tmp_path / "_partials" / "nav.html.jinja", "N")
    write(tmp_path / "_partials" / "notes.txt", "ignored")
    partials = find_partials(tmp_path)
    assert [p.name for p in partials] == ["header", "nav.html"]
    assert partials[0].path == tmp_path / "_partials" / "header.jinja"


def test_render_with_partials_and_data(tmp_path):
    write(tmp_path / "_partials" / "header.jinja", "<h1>{{ site.title }}</h1>")
    page = write(
        tmp_path / "index.html.jinja",
        '{% include "header" %}{% for post in content.posts %}[{{ post.slug }}]{% endfor %}',
    )
    engine = TemplateEngine(tmp_path, find_partials(tmp_path))

    class Post:
        def __init__(self, slug):
            self.slug = slug

    html = engine.render(page, {"site": {"title": "Sty"}, "content": {"posts": [Post("/a"), Post("/b")]}})
    assert html == "<h1>Sty</h1>[/a][/b]"


def test_layouts_can_extend_each_other(tmp_path):
    write(tmp_path / "_layouts" / "base.jinja", "<main>{% block body %}{% endblock %}</main>")
    layout = write(
        tmp_path / "_layouts" / "post.jinja",
        '{% extends "_layouts/base.jinja" %}{% block body %}{{ entry }}{% endblock %}',
    )
    engine = TemplateEngine(tmp_path)
    assert engine.render(layout, {"entry": "<p>x</p>"}) == "<main><p>x</p></main>"


def test_partial_syntax_error_names_partial(tmp_path):
    write(tmp_path / "_partials" / "broken.jinja", "{% if %}")
    with pytest.raises(RenderError) as excinfo:
        TemplateEngine(tmp_path, find_partials(tmp_path))
    assert excinfo.value.template_name == "broken"
    assert excinfo.value.source_path == tmp_path / "_partials" / "broken.jinja"
    assert "syntax error" in excinfo.value.message


def test_unreadable_partial(tmp_path):
    partial = TemplatePartial(name="ghost", path=tmp_path / "_partials" / "ghost.jinja")
    with pytest.raises(RenderError) as excinfo:
        TemplateEngine(tmp_path, [partial])
    assert excinfo.value.template_name == "ghost"


def test_render_errors_carry_template_name(tmp_path):
    page = write(tmp_path / "page.jinja", "{{ missing.attribute }}")
    engine = TemplateEngine(tmp_path)
    with pytest.raises(RenderError) as excinfo:
        engine.render(page, {})
    assert excinfo.value.template_name == "page.jinja"
    assert excinfo.value.source_path == page

    with pytest.raises(RenderError):
        engine.render(tmp_path / "absent.jinja", {})


def test_template_outside_root(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    outside = write(tmp_path / "outside.jinja", "x")
    with pytest.raises(RenderError):
        TemplateEngine(root).render(outside, {})


def test_format_date_applies_offset(tmp_path):
    page = write(tmp_path / "d.jinja", '{{ "2023-06-01" | format_date("%Y/%m/%d %H:%M") }}')
    assert TemplateEngine(tmp_path).render(page, {}) == "2023/06/01 00:00"
    assert TemplateEngine(tmp_path, utc_offset=2).render(page, {}) == "2023/06/01 02:00"
    assert TemplateEngine(tmp_path, utc_offset=-3).render(page, {}) == "2023/05/31 21:00"


def test_date_helper_uses_offset(tmp_path):
    page = write(tmp_path / "now.jinja", '{{ date("%Y") }}')
    expected = datetime.now(timezone(timedelta(hours=5))).strftime("%Y")
    assert TemplateEngine(tmp_path, utc_offset=5).render(page, {}) == expected


def test_slug_helpers(tmp_path):
    page = write(
        tmp_path / "nav.jinja",
        '{% if is_slug("^/archive") %}on{% endif %}|{% if unless_slug("^/archive") %}off{% endif %}',
    )
    engine = TemplateEngine(tmp_path)
    assert engine.render(page, {"slug": "/archive/index.html"}) == "on|"
    assert engine.render(page, {"slug": "/posts/a"}) == "|off"
    assert engine.render(page, {}) == "|"


def test_invalid_slug_pattern_is_false(tmp_path):
    page = write(
        tmp_path / "bad.jinja",
        '{% if is_slug("(") %}a{% endif %}{% if unless_slug("(") %}b{% endif %}',
    )
    assert TemplateEngine(tmp_path).render(page, {"slug": "/x"}) == ""


def test_html_templates_autoescape_by_extension(tmp_path):
    escaped = write(tmp_path / "page.html", "{{ entry }}")
    raw = write(tmp_path / "page.jinja", "{{ entry }}")
    engine = TemplateEngine(tmp_path)
    assert engine.render(escaped, {"entry": "<b>x</b>"}) == "&lt;b&gt;x&lt;/b&gt;"
    assert engine.render(raw, {"entry": "<b>x</b>"}) == "<b>x</b>"


def test_partials_escape_by_their_file_name(tmp_path):
    write(tmp_path / "_partials" / "body.html.jinja", "{{ entry }}")
    write(tmp_path / "_partials" / "plain.jinja", "{{ entry }}")
    page = write(
        tmp_path / "page.html.jinja",
        '{% include "body.html" %}|{% include "plain" %}|{{ entry }}',
    )
    engine = TemplateEngine(tmp_path, find_partials(tmp_path))
    assert engine.render(page, {"entry": "<p>x</p>"}) == "<p>x</p>|<p>x</p>|<p>x</p>"
