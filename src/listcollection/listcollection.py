from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from operator import index as op_index
from typing import TYPE_CHECKING, Any, NoReturn, TypeVar, overload

from listcollection._support import data_get, keys_of, resolve_default, values_of
from listcollection.collection import BaseCollection
from listcollection.exceptions import UnsupportedOperationError

if TYPE_CHECKING:
    import sys
    from collections.abc import Callable, Iterator
    from typing import SupportsIndex

    if sys.version_info < (3, 11):
        from typing_extensions import Self
    else:
        from typing import Self

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _position(key: Any) -> int | None:
    """Return key as a list position, or None when it cannot address one.

    Booleans are rejected even though they are ints.
    """
    if key is None or isinstance(key, bool):
        return None
    try:
        return op_index(key)
    except TypeError:
        return None


def _unsupported(operation: str) -> Callable[..., NoReturn]:
    """Build a method that rejects operation without running it."""

    def method(self: ListCollection[Any], *args: Any, **kwargs: Any) -> NoReturn:
        self._reject(operation)

    method.__name__ = operation
    method.__qualname__ = f"ListCollection.{operation}"
    method.__doc__ = (
        f"Not supported: ``{operation}()`` would produce associative keys.\n\n"
        "Raises:\n    UnsupportedOperationError: Always, before doing any work"
    )
    return method


class ListCollection(BaseCollection[int, T]):
    """An ordered collection whose keys are always exactly ``0..n-1``.

    Every constructor path discards source keys, every mutator renumbers the
    remaining items, and operations whose natural result is keyed by
    something other than position raise :class:`UnsupportedOperationError`.
    """

    _items: list[T]

    def __init__(self, items: Mapping[Any, T] | Iterable[T] | None = None) -> None:
        """Initialize a ListCollection from items.

        Args:
            items: Initial items (optional, defaults to empty)
                  - None: creates an empty list
                  - mapping: values are taken in order, keys are discarded
                  - collection: values are taken in order, keys are discarded
                  - iterable: elements populate positions 0, 1, 2, etc.
                  - string, bytes, or any other value: becomes the only item
        """
        self._items = values_of(items)

    def _pairs(self) -> Iterator[tuple[int, T]]:
        return enumerate(list(self._items))

    @classmethod
    def _from_pairs(cls, pairs: Iterable[tuple[Any, Any]]) -> Self:
        # Keys are dropped here, so every derived list is renumbered
        return cls(value for _, value in pairs)

    def _valid_position(self, key: Any) -> int | None:
        """Return key as an existing position, or None."""
        position = _position(key)
        if position is None or not 0 <= position < len(self._items):
            return None
        return position

    def _reject(self, operation: str, detail: str | None = None) -> NoReturn:
        collection_name = type(self).__name__
        logger.debug("Rejected %s() on %s", operation, collection_name)
        raise UnsupportedOperationError(operation, collection_name, detail)

    # ---------------------
    # Python protocols
    # ---------------------
    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __eq__(self, other: object) -> bool:
        """Compare items with another ListCollection, list, or tuple."""
        if isinstance(other, ListCollection):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return self._items == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._items!r})"

    def __copy__(self) -> Self:
        return type(self)(self._items)

    def copy(self) -> Self:
        """Return a shallow copy with its own backing list."""
        return self.__copy__()

    @overload
    def __getitem__(self, key: SupportsIndex) -> T: ...

    @overload
    def __getitem__(self, key: slice) -> ListCollection[T]: ...

    def __getitem__(self, key: SupportsIndex | slice) -> T | ListCollection[T]:
        """Get an item by position, or a new ListCollection by slice.

        Args:
            key: Position in ``0..n-1`` or slice

        Raises:
            TypeError: If key is not an integer or slice
            IndexError: If the position is negative or out of range
        """
        if isinstance(key, slice):
            return type(self)(self._items[key])

        position = _position(key)
        if position is None:
            raise TypeError(f"list indices must be integers or slices, not {type(key).__name__}")
        if not 0 <= position < len(self._items):
            raise IndexError("list index out of range")
        return self._items[position]

    def __setitem__(self, key: Any, value: Any) -> None:
        """Set an item by position.

        An existing position is overwritten. Any key that cannot address an
        existing position (None, a negative or too-large integer, a string,
        a bool) appends value instead. Slices are assigned as with list.
        """
        if isinstance(key, slice):
            self._items[key] = list(value)
            return
        self._set_at(key, value)

    def __delitem__(self, key: Any) -> None:
        """Delete an item by position (or slice); missing positions are ignored."""
        if isinstance(key, slice):
            del self._items[key]
            return

        position = self._valid_position(key)
        if position is not None:
            del self._items[position]

    def _set_at(self, key: Any, value: T) -> None:
        position = self._valid_position(key)
        if position is None:
            self._items.append(value)
        else:
            self._items[position] = value

    # ---------------------
    # Reading
    # ---------------------
    def all(self) -> list[T]:
        """Return the items as a new list."""
        return list(self._items)

    def to_array(self) -> list[Any]:
        return [self._convert(item) for item in self._items]

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the item at key, or the resolved default when key is not a valid position."""
        position = self._valid_position(key)
        if position is None:
            return resolve_default(default)
        return self._items[position]

    def has(self, *keys: Any) -> bool:
        """Return True if every key is an existing position."""
        return bool(keys) and all(self._valid_position(key) is not None for key in keys)

    # ---------------------
    # In-place mutation
    # ---------------------
    def put(self, key: Any, value: T) -> Self:
        """Set value at key (see __setitem__ for how invalid keys append)."""
        self._set_at(key, value)
        return self

    def push(self, *values: T) -> Self:
        self._items.extend(values)
        return self

    def prepend(self, value: T, key: Any = None) -> Self:
        """Insert value at position 0.

        Args:
            value: Value to insert
            key: Accepted for compatibility with Collection.prepend(); ignored
        """
        self._items.insert(0, value)
        return self

    def forget(self, keys: Any) -> Self:
        """Remove the items at one or more positions.

        All positions refer to the list as it was before the call, so
        ``forget([0, 2])`` on ``[a, b, c, d]`` leaves ``[b, d]``. Positions
        that do not exist are ignored. A mapping contributes its values.
        """
        doomed = {position for position in map(self._valid_position, keys_of(keys)) if position is not None}
        if doomed:
            self._items = [item for i, item in enumerate(self._items) if i not in doomed]
        return self

    def pull(self, key: Any, default: Any = None) -> Any:
        """Remove and return the item at key.

        Args:
            key: Position to remove
            default: Returned when key is not a valid position; called first
                if it is callable. The list is left unchanged in that case.
        """
        position = self._valid_position(key)
        if position is None:
            return resolve_default(default)
        return self._items.pop(position)

    def pop(self, count: int = 1) -> Any:
        """Remove and return the last item.

        Args:
            count: Number of items to remove

        Returns:
            The last item (None if empty) when count is 1, otherwise a
            ListCollection of the removed items, last item first

        Raises:
            ValueError: If count is negative
        """
        if count == 1:
            return self._items.pop() if self._items else None
        if count < 0:
            raise ValueError("number of items to pop must be non-negative")
        popped = [self._items.pop() for _ in range(min(count, len(self._items)))]
        return type(self)(popped)

    def shift(self, count: int = 1) -> Any:
        """Remove and return the first item.

        Returns:
            The first item (None if empty) when count is 1, otherwise a
            ListCollection of the removed items in their original order

        Raises:
            ValueError: If count is negative
        """
        if count == 1:
            return self._items.pop(0) if self._items else None
        if count < 0:
            raise ValueError("number of items to shift must be non-negative")
        shifted = self._items[:count]
        del self._items[:count]
        return type(self)(shifted)

    def splice(self, offset: int, length: int | None = None, replacement: Iterable[T] = ()) -> Self:
        """Remove a run of items, optionally inserting replacement in its place.

        Args:
            offset: Start position; negative counts from the end
            length: Number of items to remove; negative leaves that many
                items at the end; None removes everything after offset
            replacement: Items to insert at offset

        Returns:
            ListCollection of the removed items
        """
        size = len(self._items)
        start = min(offset, size) if offset >= 0 else max(size + offset, 0)
        if length is None:
            stop = size
        elif length >= 0:
            stop = min(start + length, size)
        else:
            stop = max(size + length, start)

        removed = self._items[start:stop]
        self._items[start:stop] = values_of(replacement)
        return type(self)(removed)

    def transform(self, fn: Callable[[T], Any]) -> Self:
        """Replace every item with fn(item), in place."""
        self._items = [fn(item) for item in self._items]
        return self

    # ---------------------
    # Projection
    # ---------------------
    def pluck(self, field: str | int, key: str | int | None = None) -> ListCollection[Any]:
        """Return a ListCollection of one field from every record-like item.

        Args:
            field: Field to read (dot notation allowed)
            key: Must be None; a key would produce an associative result

        Raises:
            UnsupportedOperationError: If key is given
        """
        if key is not None:
            self._reject("pluck", "with a key argument")
        return type(self)(data_get(item, field) for item in self._items)

    # ---------------------
    # Associative results are not supported
    # ---------------------
    flip = _unsupported("flip")  # type: ignore[assignment]
    combine = _unsupported("combine")  # type: ignore[assignment]
    group_by = _unsupported("group_by")  # type: ignore[assignment]
    key_by = _unsupported("key_by")  # type: ignore[assignment]
    count_by = _unsupported("count_by")  # type: ignore[assignment]
    map_with_keys = _unsupported("map_with_keys")  # type: ignore[assignment]
    map_to_dictionary = _unsupported("map_to_dictionary")  # type: ignore[assignment]
    map_to_groups = _unsupported("map_to_groups")  # type: ignore[assignment]
