"""Field access by name for Sty records.

Query paths in the content manifest name record fields as plain strings
(``"slug"``, ``"time_to_read"``). This module maps those names to accessor
functions for a record type, so a string chosen at configuration time resolves
to a typed value without inspecting the object at runtime.

Key classes:
- FieldAccessor: Per-record-type table of field name to getter.
- NoSuchFieldError: Raised for a name the table does not know.
- TypeMismatchError: Raised when a value cannot be coerced to the requested type.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class FieldAccessError(Exception):
    """Base class for field resolution failures.

    Attributes:
        field: The requested field name.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class NoSuchFieldError(FieldAccessError):
    """Error raised when a record type has no field with the given name."""

    def __init__(self, field: str, known: Iterable[str]):
        self.known = sorted(known)
        super().__init__(
            field,
            f"Unknown field '{field}'. Known fields: {', '.join(self.known)}",
        )


class TypeMismatchError(FieldAccessError):
    """Error raised when a field value cannot be coerced to the requested type."""

    def __init__(self, field: str, value: Any, expected: type):
        self.value = value
        self.expected = expected
        super().__init__(
            field,
            f"Field '{field}' holds {type(value).__name__}, "
            f"which cannot be read as {expected.__name__}",
        )


# Types a scalar field value may be coerced into.
_SCALARS = (str, int, float, bool)


class FieldAccessor(Generic[T]):
    """Resolves field names to values on one record type.

    Getters are registered once, usually at import time next to the record
    class, and looked up by name on every call.
    """

    def __init__(self, getters: dict[str, Callable[[T], Any]] | None = None):
        self._getters: dict[str, Callable[[T], Any]] = dict(getters or {})

    def register(self, name: str, getter: Callable[[T], Any]) -> None:
        self._getters[name] = getter

    @property
    def names(self) -> list[str]:
        return sorted(self._getters)

    def __contains__(self, name: object) -> bool:
        return name in self._getters

    def get(self, record: T, name: str, as_type: type = str) -> Any:
        """Return the named field of ``record`` coerced to ``as_type``.

        Args:
            record: The record to read from.
            name: Field name, as written in the manifest.
            as_type: Target type. Scalars are converted between each other,
                containers are never flattened.

        Returns:
            The coerced field value.

        Raises:
            NoSuchFieldError: If ``name`` is not a registered field.
            TypeMismatchError: If the value cannot be converted.
        """
        getter = self._getters.get(name)
        if getter is None:
            raise NoSuchFieldError(name, self._getters)
        value = getter(record)
        if isinstance(value, as_type) and not (
            as_type is int and isinstance(value, bool)
        ):
            return value
        if not isinstance(value, _SCALARS) or as_type not in _SCALARS:
            raise TypeMismatchError(name, value, as_type)
        try:
            return as_type(value)
        except (TypeError, ValueError) as exc:
            raise TypeMismatchError(name, value, as_type) from exc

    def check(self, name: str) -> None:
        """Raise NoSuchFieldError unless ``name`` is a registered field."""
        if name not in self._getters:
            raise NoSuchFieldError(name, self._getters)
