from __future__ import annotations

import operator
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

# Operators accepted by where(field, operator, value)
WHERE_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "is": operator.is_,
    "is not": operator.is_not,
}

# Separators used by to_json() unless the caller passes their own
JSON_SEPARATORS = (",", ":")

MISSING: Any = object()


def data_get(target: Any, field: str | int | None, default: Any = None) -> Any:
    """Look up a (possibly dotted) field on a record-like value.

    Each path segment is tried as a mapping key first, then as an attribute.

    Args:
        target: Mapping, object, or sequence to read from
        field: Field name, dotted path such as ``"owner.name"``, or None for the target itself
        default: Value returned when any segment is missing (called if callable)

    Returns:
        The field value, or the resolved default
    """
    if field is None:
        return target

    segments = field.split(".") if isinstance(field, str) else [field]
    for segment in segments:
        if isinstance(target, Mapping):
            if segment in target:
                target = target[segment]
                continue
            return resolve_default(default)

        if isinstance(segment, str) and hasattr(target, segment):
            target = getattr(target, segment)
            continue

        # Numeric segment into a plain sequence
        if isinstance(target, (list, tuple)) and isinstance(segment, (str, int)):
            try:
                target = target[int(segment)]
                continue
            except (ValueError, IndexError):
                pass

        return resolve_default(default)

    return target


def value_retriever(field: Callable[[Any], Any] | str | int | None) -> Callable[[Any], Any]:
    """Turn a field name or callable into a one-argument accessor."""
    if callable(field):
        return field
    return lambda item: data_get(item, field)


def values_of(items: Any) -> list[Any]:
    """Return the values of a mapping, collection, or iterable as a list.

    None gives an empty list; strings, bytes, and other non-iterables are
    treated as a single item.
    """
    if items is None:
        return []
    if isinstance(items, Mapping):
        return list(items.values())
    if isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
        return [items]
    return list(items)


def keys_of(keys: Any) -> list[Any]:
    """Normalize a single key, an iterable of keys, or a mapping of keys into a list."""
    return values_of(keys)


def resolve_default(default: Any) -> Any:
    """Return default, invoking it first when it is a zero-argument callable."""
    return default() if callable(default) else default


def where_predicate(field: str, operator_or_value: Any, value: Any = MISSING) -> Callable[[Any], bool]:
    """Build the predicate used by where().

    Args:
        field: Field to compare
        operator_or_value: Comparison operator, or the value to compare for equality
        value: Value to compare against when an operator was given

    Raises:
        ValueError: If the operator is not recognised
    """
    if value is MISSING:
        compare, expected = operator.eq, operator_or_value
    else:
        try:
            compare = WHERE_OPERATORS[operator_or_value]
        except (KeyError, TypeError):
            raise ValueError(f"unsupported where() operator: {operator_or_value!r}") from None
        expected = value

    def predicate(item: Any) -> bool:
        actual = data_get(item, field)
        try:
            return bool(compare(actual, expected))
        except TypeError:
            # Ordering None or mixed types never matches
            return False

    return predicate
