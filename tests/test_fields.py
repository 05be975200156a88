import pytest

from sty.content import ContentItem, content_item_fields
from sty.fields import FieldAccessor, NoSuchFieldError, TypeMismatchError


def make_item(**overrides):
    values = {
        "path": "/site/posts/a.md",
        "slug": "/posts/a",
        "meta": {"title": "A"},
        "entry": "<p>a</p>",
        "time_to_read": 3,
    }
    values.update(overrides)
    return ContentItem(**values)


def test_get_string_fields():
    item = make_item()
    assert content_item_fields.get(item, "path") == "/site/posts/a.md"
    assert content_item_fields.get(item, "slug") == "/posts/a"
    assert content_item_fields.get(item, "entry") == "<p>a</p>"


def test_get_coerces_scalars():
    item = make_item(time_to_read=12)
    assert content_item_fields.get(item, "time_to_read") == "12"
    assert content_item_fields.get(item, "time_to_read", int) == 12


def test_unknown_field_raises():
    with pytest.raises(NoSuchFieldError) as excinfo:
        content_item_fields.get(make_item(), "doesnt_exist")
    assert excinfo.value.field == "doesnt_exist"
    assert "slug" in excinfo.value.known


def test_container_cannot_be_read_as_string():
    with pytest.raises(TypeMismatchError) as excinfo:
        content_item_fields.get(make_item(), "meta")
    assert excinfo.value.expected is str


def test_failed_conversion_is_type_mismatch():
    with pytest.raises(TypeMismatchError):
        content_item_fields.get(make_item(slug="/posts/a"), "slug", int)


def test_register_and_check():
    accessor = FieldAccessor()
    accessor.register("upper", lambda s: s.upper())
    assert "upper" in accessor
    assert accessor.names == ["upper"]
    assert accessor.get("abc", "upper") == "ABC"
    accessor.check("upper")
    with pytest.raises(NoSuchFieldError):
        accessor.check("lower")
