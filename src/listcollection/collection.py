from __future__ import annotations

import functools
import itertools
import json
import random
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from listcollection._support import (
    JSON_SEPARATORS,
    MISSING,
    data_get,
    keys_of,
    resolve_default,
    value_retriever,
    values_of,
    where_predicate,
)

if TYPE_CHECKING:
    import sys
    from collections.abc import Callable, Hashable, Iterator

    if sys.version_info < (3, 11):
        from typing_extensions import Self
    else:
        from typing import Self

K = TypeVar("K")
T = TypeVar("T")

# Types whose contents flatten()/collapse() descend into
_NESTED_TYPES: tuple[type, ...] = (list, tuple, Mapping)


def _pairs_of(items: Any) -> Iterable[tuple[Any, Any]]:
    """Return (key, value) pairs for any collection, mapping, or iterable."""
    if isinstance(items, BaseCollection):
        return items._pairs()
    if isinstance(items, Mapping):
        return items.items()
    return enumerate(values_of(items))


def _is_index_key(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def _is_nested(value: Any) -> bool:
    return isinstance(value, (BaseCollection, *_NESTED_TYPES))


def _flatten(values: Iterable[Any], depth: int | None) -> Iterator[Any]:
    for value in values:
        if not _is_nested(value):
            yield value
            continue
        inner = values_of(value)
        if depth is None or depth > 1:
            yield from _flatten(inner, None if depth is None else depth - 1)
        else:
            yield from inner


def _unique_pairs(pairs: Iterable[tuple[K, T]], retrieve: Callable[[T], Any]) -> Iterator[tuple[K, T]]:
    seen_hashable: set[Any] = set()
    seen_other: list[Any] = []
    for key, value in pairs:
        marker = retrieve(value)
        try:
            if marker in seen_hashable:
                continue
            seen_hashable.add(marker)
        except TypeError:
            # Unhashable markers fall back to equality scanning
            if marker in seen_other:
                continue
            seen_other.append(marker)
        yield key, value


class BaseCollection(ABC, Generic[K, T]):
    """Fluent, ordered collection API shared by every collection type.

    Subclasses provide storage through two hooks: ``_pairs()`` yields
    ``(key, value)`` in iteration order and ``_from_pairs()`` builds a new
    instance. Every derived operation goes through ``_from_pairs()``, so the
    subclass decides what happens to keys.
    """

    __hash__ = None  # type: ignore[assignment]

    @abstractmethod
    def _pairs(self) -> Iterator[tuple[K, T]]:
        """Yield (key, value) pairs in iteration order."""

    @classmethod
    @abstractmethod
    def _from_pairs(cls, pairs: Iterable[tuple[Any, Any]]) -> Self:
        """Build a new instance from (key, value) pairs."""

    @abstractmethod
    def __len__(self) -> int: ...

    @abstractmethod
    def all(self) -> Any:
        """Return the underlying items as a plain Python container."""

    @abstractmethod
    def to_array(self) -> Any:
        """Return the items as plain Python data, converting nested collections."""

    @classmethod
    def _from_values(cls, values: Iterable[Any]) -> Self:
        return cls._from_pairs(enumerate(values))

    @staticmethod
    def _convert(value: Any) -> Any:
        """Convert collections to plain data, descending into lists, tuples, and mappings."""
        if isinstance(value, BaseCollection):
            return value.to_array()
        if isinstance(value, Mapping):
            return {key: BaseCollection._convert(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            converted = [BaseCollection._convert(item) for item in value]
            return tuple(converted) if isinstance(value, tuple) else converted
        return value

    # ---------------------
    # Factories
    # ---------------------
    @classmethod
    def make(cls, items: Any = None) -> Self:
        """Create a new collection from items."""
        return cls(items)  # type: ignore[call-arg]

    @classmethod
    def wrap(cls, value: Any) -> Self:
        """Wrap value in a collection unless it already is one.

        Collections, lists, tuples, and mappings are used as-is; ``None``
        gives an empty collection; anything else (strings included) becomes
        a single item.
        """
        if value is None:
            return cls()  # type: ignore[call-arg]
        if isinstance(value, (BaseCollection, list, tuple, Mapping)):
            return cls(value)  # type: ignore[call-arg]
        return cls([value])  # type: ignore[call-arg]

    @classmethod
    def times(cls, count: int, fn: Callable[[int], Any] | None = None) -> Self:
        """Create a collection by calling fn for each number from 1 to count.

        Args:
            count: How many items to create (nothing is created if below 1)
            fn: Called with each number; the numbers themselves are used if omitted
        """
        numbers = range(1, count + 1)
        return cls(fn(i) for i in numbers) if fn is not None else cls(numbers)  # type: ignore[call-arg]

    # ---------------------
    # Python protocols
    # ---------------------
    def __iter__(self) -> Iterator[T]:
        for _, value in self._pairs():
            yield value

    def __contains__(self, value: object) -> bool:
        return any(item == value for item in self)

    # ---------------------
    # Derived collections
    # ---------------------
    def map(self, fn: Callable[[T], Any]) -> Self:
        """Return a new collection with fn applied to every value."""
        return self._from_pairs((key, fn(value)) for key, value in self._pairs())

    def filter(self, fn: Callable[[T], Any] | None = None) -> Self:
        """Return the items for which fn is truthy (or the truthy items if fn is omitted)."""
        test = fn if fn is not None else bool
        return self._from_pairs((key, value) for key, value in self._pairs() if test(value))

    def reject(self, fn: Callable[[T], Any]) -> Self:
        """Return the items for which fn is falsy."""
        return self._from_pairs((key, value) for key, value in self._pairs() if not fn(value))

    def where(self, field: str, operator_or_value: Any, value: Any = MISSING) -> Self:
        """Filter record-like items by comparing a field.

        ``where("active", True)`` compares for equality;
        ``where("age", ">=", 18)`` uses the given operator.

        Raises:
            ValueError: If the operator is not recognised
        """
        return self.filter(where_predicate(field, operator_or_value, value))

    def where_in(self, field: str, values: Iterable[Any]) -> Self:
        """Keep items whose field value is one of values."""
        allowed = values_of(values)
        return self.filter(lambda item: data_get(item, field) in allowed)

    def where_not_in(self, field: str, values: Iterable[Any]) -> Self:
        """Keep items whose field value is not one of values."""
        excluded = values_of(values)
        return self.reject(lambda item: data_get(item, field) in excluded)

    def sort(self, key: Callable[[T], Any] | None = None, *, reverse: bool = False) -> Self:
        """Return a stably sorted collection.

        Args:
            key: Optional function computing the sort key of each value
            reverse: Sort in descending order
        """
        retrieve = key if key is not None else (lambda value: value)
        return self._from_pairs(sorted(self._pairs(), key=lambda pair: retrieve(pair[1]), reverse=reverse))

    def sort_desc(self, key: Callable[[T], Any] | None = None) -> Self:
        return self.sort(key, reverse=True)

    def sort_by(self, field: Callable[[T], Any] | str, *, reverse: bool = False) -> Self:
        """Sort by a field name (dot notation allowed) or a key function."""
        return self.sort(value_retriever(field), reverse=reverse)

    def sort_by_desc(self, field: Callable[[T], Any] | str) -> Self:
        return self.sort_by(field, reverse=True)

    def reverse(self) -> Self:
        return self._from_pairs(reversed(list(self._pairs())))

    def unique(self, field: Callable[[T], Any] | str | None = None) -> Self:
        """Return the first occurrence of each distinct value (or field value)."""
        return self._from_pairs(_unique_pairs(self._pairs(), value_retriever(field)))

    def diff(self, values: Iterable[Any]) -> Self:
        """Return the items that are not present in values."""
        other = values_of(values)
        return self.reject(lambda item: item in other)

    def intersect(self, values: Iterable[Any]) -> Self:
        """Return the items that are also present in values."""
        other = values_of(values)
        return self.filter(lambda item: item in other)

    def except_(self, keys: Any) -> Self:
        """Return all items except those at the given key(s)."""
        excluded = keys_of(keys)
        return self._from_pairs((key, value) for key, value in self._pairs() if key not in excluded)

    def only(self, keys: Any) -> Self:
        """Return only the items at the given key(s)."""
        wanted = keys_of(keys)
        return self._from_pairs((key, value) for key, value in self._pairs() if key in wanted)

    def slice(self, offset: int, length: int | None = None) -> Self:
        """Return a slice of the collection.

        Args:
            offset: Starting position; negative counts from the end
            length: Number of items to keep; negative stops that many items
                before the end; None keeps everything after offset
        """
        pairs = list(self._pairs())[offset:]
        if length is not None:
            pairs = pairs[:length]
        return self._from_pairs(pairs)

    def take(self, limit: int) -> Self:
        """Return the first limit items, or the last -limit items when negative."""
        if limit < 0:
            return self.slice(limit)
        return self.slice(0, limit)

    def skip(self, count: int) -> Self:
        return self.slice(count)

    def take_while(self, fn: Callable[[T], Any]) -> Self:
        return self._from_pairs(itertools.takewhile(lambda pair: fn(pair[1]), self._pairs()))

    def take_until(self, fn: Callable[[T], Any]) -> Self:
        return self._from_pairs(itertools.takewhile(lambda pair: not fn(pair[1]), self._pairs()))

    def skip_while(self, fn: Callable[[T], Any]) -> Self:
        return self._from_pairs(itertools.dropwhile(lambda pair: fn(pair[1]), self._pairs()))

    def skip_until(self, fn: Callable[[T], Any]) -> Self:
        return self._from_pairs(itertools.dropwhile(lambda pair: not fn(pair[1]), self._pairs()))

    def merge(self, items: Any) -> Self:
        """Merge items into a new collection.

        Integer-keyed entries of items are appended after the existing ones;
        entries with any other key overwrite the value stored under that key.
        """
        merged: dict[Any, Any] = dict(self._pairs())
        next_index = max((key + 1 for key in merged if _is_index_key(key)), default=0)
        for key, value in _pairs_of(items):
            if _is_index_key(key):
                merged[next_index] = value
                next_index += 1
            else:
                merged[key] = value
        return self._from_pairs(merged.items())

    def replace(self, items: Any) -> Self:
        """Overwrite values key by key; keys that do not exist yet are added at the end."""
        replaced: dict[Any, Any] = dict(self._pairs())
        replaced.update(_pairs_of(items))
        return self._from_pairs(replaced.items())

    def keys(self) -> Self:
        return self._from_values(key for key, _ in self._pairs())

    def values(self) -> Self:
        """Return the values re-keyed by position."""
        return self._from_values(self)

    def chunk(self, size: int) -> Self:
        """Split into chunks of at most size items.

        The outer collection is keyed by position; each chunk is a collection
        of the same type as the receiver.

        Raises:
            ValueError: If size is not positive
        """
        if size <= 0:
            raise ValueError("chunk size must be positive")
        pairs = list(self._pairs())
        return self._from_values(self._from_pairs(pairs[i : i + size]) for i in range(0, len(pairs), size))

    def flatten(self, depth: int | None = None) -> Self:
        """Flatten nested lists, tuples, mappings, and collections.

        Args:
            depth: Number of levels to flatten; None flattens completely
        """
        return self._from_values(_flatten(self, depth))

    def collapse(self) -> Self:
        """Merge a collection of collections into one level; non-nested items are dropped."""
        return self._from_values(value for item in self if _is_nested(item) for value in values_of(item))

    def flat_map(self, fn: Callable[[T], Any]) -> Self:
        return self._from_values(value for item in self for value in values_of(fn(item)))

    def pad(self, size: int, value: Any) -> Self:
        """Pad with value until there are abs(size) items; negative size pads on the left."""
        items = list(self)
        fill = [value] * max(abs(size) - len(items), 0)
        return self._from_values(items + fill if size >= 0 else fill + items)

    def zip(self, *iterables: Iterable[Any]) -> Self:
        """Pair up values by position; shorter inputs are padded with None."""
        return self._from_values(itertools.zip_longest(self, *iterables))

    def shuffle(self, seed: int | None = None) -> Self:
        items = list(self)
        random.Random(seed).shuffle(items)
        return self._from_values(items)

    def random(self, count: int | None = None) -> Any:
        """Pick random items.

        Args:
            count: Number of items to pick; None returns a single item

        Returns:
            A single item when count is None, otherwise a collection of
            count items in their original relative order

        Raises:
            ValueError: If more items are requested than are available
        """
        items = list(self)
        wanted = 1 if count is None else count
        if wanted > len(items):
            raise ValueError(f"you requested {wanted} items, but there are only {len(items)} items available")
        if count is None:
            return random.choice(items)
        picked = sorted(random.sample(range(len(items)), count))
        return self._from_values(items[i] for i in picked)

    def pluck(self, field: str | int, key: str | int | None = None) -> BaseCollection[Any, Any]:
        """Project one field out of every record-like item.

        Args:
            field: Field to read (dot notation allowed)
            key: Optional field whose value keys the result

        Returns:
            Collection of field values keyed by position, or a keyed
            Collection when key is given
        """
        if key is None:
            return self._from_values(data_get(item, field) for item in self)
        return Collection._from_pairs((data_get(item, key), data_get(item, field)) for item in self)

    # ---------------------
    # Associative results
    # ---------------------
    def flip(self) -> Collection[Any, Any]:
        """Swap keys and values."""
        return Collection._from_pairs((value, key) for key, value in self._pairs())

    def combine(self, values: Iterable[Any]) -> Collection[Any, Any]:
        """Use this collection's values as keys for values.

        Raises:
            ValueError: If the two sides differ in length
        """
        return Collection._from_pairs(zip(self, values_of(values), strict=True))

    def group_by(self, field: Callable[[T], Hashable] | str) -> Collection[Any, Any]:
        """Group items by a field value; each group is a collection of the receiver's type."""
        retrieve = value_retriever(field)
        groups: dict[Any, list[T]] = {}
        for item in self:
            groups.setdefault(retrieve(item), []).append(item)
        return Collection._from_pairs((group, self._from_values(items)) for group, items in groups.items())

    def key_by(self, field: Callable[[T], Hashable] | str) -> Collection[Any, Any]:
        """Key items by a field value; later items win on duplicate keys."""
        retrieve = value_retriever(field)
        return Collection._from_pairs((retrieve(item), item) for item in self)

    def count_by(self, field: Callable[[T], Hashable] | str | None = None) -> Collection[Any, int]:
        """Count occurrences of each distinct value (or field value)."""
        retrieve = value_retriever(field)
        return Collection(dict(Counter(retrieve(item) for item in self)))

    def map_with_keys(self, fn: Callable[[T], Any]) -> Collection[Any, Any]:
        """Build a keyed collection from fn, which returns a (key, value) pair or a mapping."""
        return Collection._from_pairs(pair for item in self for pair in self._callback_pairs(fn(item)))

    def map_to_dictionary(self, fn: Callable[[T], Any]) -> Collection[Any, list[Any]]:
        """Group the values fn returns under the keys fn returns."""
        groups: dict[Any, list[Any]] = {}
        for item in self:
            for key, value in self._callback_pairs(fn(item)):
                groups.setdefault(key, []).append(value)
        return Collection(groups)

    def map_to_groups(self, fn: Callable[[T], Any]) -> Collection[Any, Any]:
        """Like map_to_dictionary(), but each group is a collection of the receiver's type."""
        groups = self.map_to_dictionary(fn)
        return Collection._from_pairs((key, self._from_values(values)) for key, values in groups._pairs())

    @staticmethod
    def _callback_pairs(result: Any) -> Iterable[tuple[Any, Any]]:
        if isinstance(result, Mapping):
            return result.items()
        key, value = result
        return [(key, value)]

    # ---------------------
    # Reading
    # ---------------------
    def count(self) -> int:
        return len(self)

    def is_empty(self) -> bool:
        return len(self) == 0

    def is_not_empty(self) -> bool:
        return len(self) > 0

    def first(self, fn: Callable[[T], Any] | None = None, default: Any = None) -> Any:
        """Return the first item (passing fn, if given), or the resolved default."""
        for item in self:
            if fn is None or fn(item):
                return item
        return resolve_default(default)

    def last(self, fn: Callable[[T], Any] | None = None, default: Any = None) -> Any:
        """Return the last item (passing fn, if given), or the resolved default."""
        for item in reversed(list(self)):
            if fn is None or fn(item):
                return item
        return resolve_default(default)

    def contains(self, value: Any) -> bool:
        """Return True if value is present, or if any item passes value when it is callable."""
        if callable(value):
            return any(value(item) for item in self)
        return value in self

    def reduce(self, fn: Callable[[Any, T], Any], initial: Any = None) -> Any:
        return functools.reduce(fn, self, initial)

    def sum(self, field: Callable[[T], Any] | str | None = None) -> Any:
        retrieve = value_retriever(field)
        return sum(retrieve(item) for item in self)

    def avg(self, field: Callable[[T], Any] | str | None = None) -> float | None:
        """Return the mean of the values (or field values), or None when empty."""
        if not len(self):
            return None
        return self.sum(field) / len(self)

    def min(self, field: Callable[[T], Any] | str | None = None) -> Any:
        """Return the smallest non-None value (or field value), or None."""
        retrieve = value_retriever(field)
        return min((v for v in map(retrieve, self) if v is not None), default=None)

    def max(self, field: Callable[[T], Any] | str | None = None) -> Any:
        """Return the largest non-None value (or field value), or None."""
        retrieve = value_retriever(field)
        return max((v for v in map(retrieve, self) if v is not None), default=None)

    def implode(self, glue: str, field: Callable[[T], Any] | str | None = None) -> str:
        retrieve = value_retriever(field)
        return glue.join(str(retrieve(item)) for item in self)

    def each(self, fn: Callable[[T], Any]) -> Self:
        """Call fn on every item, stopping early when it returns False."""
        for item in self:
            if fn(item) is False:
                break
        return self

    def to_json(self, **kwargs: Any) -> str:
        """Serialize to JSON; keyword arguments are passed to json.dumps."""
        kwargs.setdefault("separators", JSON_SEPARATORS)
        return json.dumps(self.to_array(), **kwargs)


class Collection(BaseCollection[K, T]):
    """An ordered collection that keeps whatever keys its items carry.

    Derived collections preserve keys, so ``Collection([1, 2, 3]).filter(...)``
    can leave gaps. Use :class:`~listcollection.ListCollection` when keys
    must stay ``0..n-1``.
    """

    _items: dict[K, T]

    def __init__(self, items: Mapping[K, T] | Iterable[T] | None = None) -> None:
        """Initialize from a mapping (keys kept), another collection (keys kept), or an iterable.

        Strings, bytes, and other non-iterable values become a single item under key 0.

        Args:
            items: Initial items (optional, defaults to empty)
        """
        self._items = dict(_pairs_of(items)) if items is not None else {}

    def _pairs(self) -> Iterator[tuple[K, T]]:
        return iter(list(self._items.items()))

    @classmethod
    def _from_pairs(cls, pairs: Iterable[tuple[Any, Any]]) -> Self:
        return cls(dict(pairs))

    def _next_index(self) -> int:
        return max((key + 1 for key in self._items if _is_index_key(key)), default=0)  # type: ignore[operator]

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Collection):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self._items == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._items!r})"

    def __copy__(self) -> Self:
        return type(self)(self._items)

    def copy(self) -> Self:
        return self.__copy__()

    def __getitem__(self, key: K) -> T:
        return self._items[key]

    def __setitem__(self, key: K | None, value: T) -> None:
        if key is None:
            self.push(value)
        else:
            self._items[key] = value

    def __delitem__(self, key: K) -> None:
        self._items.pop(key, None)

    def all(self) -> dict[K, T]:
        return dict(self._items)

    def to_array(self) -> dict[K, Any]:
        return {key: self._convert(value) for key, value in self._items.items()}

    def get(self, key: K, default: Any = None) -> Any:
        if key in self._items:
            return self._items[key]
        return resolve_default(default)

    def has(self, *keys: K) -> bool:
        return bool(keys) and all(key in self._items for key in keys)

    def put(self, key: K, value: T) -> Self:
        self._items[key] = value
        return self

    def push(self, *values: T) -> Self:
        """Append values under the next free integer keys."""
        next_index = self._next_index()
        for offset, value in enumerate(values):
            self._items[next_index + offset] = value  # type: ignore[index]
        return self

    def prepend(self, value: T, key: K | None = None) -> Self:
        """Put value first; integer keys are renumbered when no key is given."""
        if key is not None:
            rest = {k: v for k, v in self._items.items() if k != key}
            self._items = {key: value, **rest}
            return self

        renumbered: dict[Any, T] = {0: value}
        next_index = 1
        for k, v in self._items.items():
            if _is_index_key(k):
                renumbered[next_index] = v
                next_index += 1
            else:
                renumbered[k] = v
        self._items = renumbered
        return self

    def forget(self, keys: Any) -> Self:
        for key in keys_of(keys):
            self._items.pop(key, None)
        return self

    def pull(self, key: K, default: Any = None) -> Any:
        if key in self._items:
            return self._items.pop(key)
        return resolve_default(default)

    def pop(self, count: int = 1) -> Any:
        """Remove and return the last item, or a collection of the last count items."""
        if count == 1:
            return self._items.popitem()[1] if self._items else None
        if count < 0:
            raise ValueError("number of items to pop must be non-negative")
        popped = [self._items.popitem()[1] for _ in range(min(count, len(self._items)))]
        return type(self)(popped)

    def shift(self, count: int = 1) -> Any:
        """Remove and return the first item, or a collection of the first count items."""
        if count < 0:
            raise ValueError("number of items to shift must be non-negative")
        taken = list(itertools.islice(self._items, count))
        shifted = [self._items.pop(key) for key in taken]
        if count == 1:
            return shifted[0] if shifted else None
        return type(self)(shifted)

    def transform(self, fn: Callable[[T], T]) -> Self:
        """Apply fn to every value in place, keeping the keys."""
        self._items = {key: fn(value) for key, value in self._items.items()}
        return self
