import random
import threading
from abc import ABC, abstractmethod
from bisect import bisect_left, bisect_right, insort
from collections.abc import Mapping, MutableMapping, MutableSequence
from enum import Enum
from functools import total_ordering

from errors import IntegerTooLongError
from utils import clamp_int, compare_keys, key_order, rand_int

# Byte strings are treated as single-byte text whenever a str is involved
TEXT_ENCODING = 'latin-1'

# Widest integer, in decimal digits (the interpreter's int/str conversion limit)
MAX_INTEGER_DIGITS = 4300
_INTEGER_BOUND = 10 ** MAX_INTEGER_DIGITS


class AtomKind(Enum):
    INTEGER = 'integer'
    STRING = 'string'
    LIST = 'list'
    DICTIONARY = 'dictionary'


def is_atom(obj) -> bool:
    return isinstance(obj, Atom)


def require_atom(obj, message=None):
    """Returns 'obj' if it is an Atom, otherwise raises TypeError."""
    if not is_atom(obj):
        raise TypeError(message or f"Expected an Atom, got {type(obj).__name__}")
    return obj


class Atom(ABC):
    """
    Base of the four Bencode value variants.
    Every atom knows its tag ('kind') and how many bytes its canonical
    encoding takes, without having to encode itself.
    """
    kind = None

    @abstractmethod
    def canonical_length(self) -> int:
        pass

    def copy(self):
        """Deep copy. Nothing mutable is shared with the source."""
        return copy_atom(self)

    def __deepcopy__(self, memo):
        return copy_atom(self)


@total_ordering
class AtomInteger(Atom):
    kind = AtomKind.INTEGER

    def __init__(self, value=0):
        if isinstance(value, AtomInteger):
            value = value.value
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"AtomInteger requires an int, not {type(value).__name__}")
        if abs(value) >= _INTEGER_BOUND:
            raise IntegerTooLongError(
                f"AtomInteger is limited to {MAX_INTEGER_DIGITS} decimal digits")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def canonical_length(self) -> int:
        # 'i' + digits (and sign) + 'e'
        return len(str(self._value)) + 2

    def __int__(self):
        return self._value

    def __index__(self):
        return self._value

    def __eq__(self, other):
        if isinstance(other, AtomInteger):
            return self._value == other._value
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, AtomInteger):
            return self._value < other._value
        return NotImplemented

    def __hash__(self):
        return hash((AtomKind.INTEGER, self._value))

    def __str__(self):
        return str(self._value)

    def __repr__(self):
        return f"AtomInteger({self._value})"


@total_ordering
class AtomString(Atom):
    """
    A Bencode byte string. The payload is raw bytes and is not assumed to be
    valid text; lengths are always byte lengths.
    """
    kind = AtomKind.STRING

    def __init__(self, value=b""):
        if isinstance(value, AtomString):
            value = value.value
        elif isinstance(value, str):
            value = value.encode(TEXT_ENCODING)
        elif isinstance(value, (bytearray, memoryview)):
            value = bytes(value)
        if not isinstance(value, bytes):
            raise TypeError(f"AtomString requires bytes or str, not {type(value).__name__}")
        self._value = value

    @property
    def value(self) -> bytes:
        return self._value

    def canonical_length(self) -> int:
        size = len(self._value)
        return len(str(size)) + 1 + size

    def compare_to(self, other) -> int:
        return compare_keys(self, other)

    def __len__(self):
        return len(self._value)

    def __bytes__(self):
        return self._value

    def __str__(self):
        return self._value.decode(TEXT_ENCODING)

    def __eq__(self, other):
        if isinstance(other, AtomString):
            return self._value == other._value
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, AtomString):
            return key_order(self) < key_order(other)
        return NotImplemented

    def __hash__(self):
        return hash((AtomKind.STRING, self._value))

    def __repr__(self):
        return f"AtomString({self._value!r})"


class AtomList(Atom, MutableSequence):
    """
    Ordered list of atoms. Insertion order is encoding order.

    Every structural change happens under the list's own lock and readers
    iterate over a snapshot, so one list can be shared between threads.
    """
    kind = AtomKind.LIST

    def __init__(self, atoms=()):
        self._lock = threading.RLock()
        self._items = []
        if atoms is not None:
            self.extend(atoms)

    @staticmethod
    def _check_index(index, upper):
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"list indices must be integers, not {type(index).__name__}")
        if not 0 <= index < upper:
            raise IndexError(f"index {index} out of range [0, {upper})")

    def __getitem__(self, index):
        with self._lock:
            self._check_index(index, len(self._items))
            return self._items[index]

    def __setitem__(self, index, atom):
        require_atom(atom, "AtomList cannot hold a non-Atom value")
        with self._lock:
            self._check_index(index, len(self._items))
            self._items[index] = atom

    def __delitem__(self, index):
        with self._lock:
            self._check_index(index, len(self._items))
            del self._items[index]

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        with self._lock:
            snapshot = list(self._items)
        return iter(snapshot)

    def insert(self, index, atom):
        require_atom(atom, "AtomList cannot hold a non-Atom value")
        with self._lock:
            # Inserting at size appends
            self._check_index(index, len(self._items) + 1)
            self._items.insert(index, atom)

    def append(self, atom):
        require_atom(atom, "AtomList cannot hold a non-Atom value")
        with self._lock:
            self._items.append(atom)

    def extend(self, atoms):
        atoms = list(atoms)
        for atom in atoms:
            require_atom(atom, "AtomList cannot hold a non-Atom value")
        with self._lock:
            self._items.extend(atoms)

    def pop(self, index=None):
        with self._lock:
            if index is None:
                index = len(self._items) - 1
            self._check_index(index, len(self._items))
            return self._items.pop(index)

    def remove(self, atom):
        with self._lock:
            self._items.remove(atom)

    def clear(self):
        with self._lock:
            self._items.clear()

    def reverse(self):
        with self._lock:
            self._items.reverse()

    def index_of(self, atom, start=0) -> int:
        """Index of the first occurrence at or after 'start', or -1."""
        with self._lock:
            for index in range(max(start, 0), len(self._items)):
                if self._items[index] == atom:
                    return index
        return -1

    def last_index_of(self, atom, start=None) -> int:
        """Index of the last occurrence at or before 'start', or -1."""
        with self._lock:
            if start is None:
                start = len(self._items) - 1
            for index in range(min(start, len(self._items) - 1), -1, -1):
                if self._items[index] == atom:
                    return index
        return -1

    def add_if_absent(self, atom) -> bool:
        require_atom(atom, "AtomList cannot hold a non-Atom value")
        with self._lock:
            if atom in self._items:
                return False
            self._items.append(atom)
            return True

    def add_all_absent(self, atoms) -> int:
        """Appends each atom not already present; returns how many were added."""
        with self._lock:
            return sum(1 for atom in list(atoms) if self.add_if_absent(atom))

    def random_slice(self, how_many: int):
        """
        Picks 'how_many' elements at random (with replacement).
        The count is clamped to [0, len(self)] and the picks are deep copies.
        """
        with self._lock:
            snapshot = list(self._items)
        size = len(snapshot)
        count = clamp_int(how_many, 0, size)
        return AtomList(snapshot[rand_int(0, size)].copy() for _ in range(count))

    def randomise(self):
        """Shuffles the list in place."""
        with self._lock:
            random.shuffle(self._items)

    def canonical_length(self) -> int:
        return 2 + sum(atom.canonical_length() for atom in self)

    def __eq__(self, other):
        if isinstance(other, AtomList):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None

    def __copy__(self):
        return AtomList(self)

    def __repr__(self):
        return f"AtomList({list(self)!r})"


class AtomDictionary(Atom, MutableMapping):
    """
    Mapping from AtomString keys to atoms.

    Keys are kept in ascending byte-wise order at all times (not just when
    encoding), so iteration always sees the canonical order. Keys are never
    coerced: anything that is not an AtomString raises TypeError.
    """
    kind = AtomKind.DICTIONARY

    def __init__(self, mapping=None):
        self._lock = threading.RLock()
        self._values = {}
        self._keys = []
        if mapping is not None:
            self.update(mapping)

    @staticmethod
    def _require_key(key):
        if not isinstance(key, AtomString):
            raise TypeError(f"AtomDictionary keys must be AtomString, not {type(key).__name__}")
        return key

    def __getitem__(self, key):
        self._require_key(key)
        with self._lock:
            return self._values[key]

    def __setitem__(self, key, atom):
        self._require_key(key)
        require_atom(atom, "AtomDictionary cannot hold a non-Atom value")
        with self._lock:
            if key not in self._values:
                insort(self._keys, key)
            self._values[key] = atom

    def __delitem__(self, key):
        self._require_key(key)
        with self._lock:
            del self._values[key]
            del self._keys[bisect_left(self._keys, key)]

    def __iter__(self):
        with self._lock:
            snapshot = list(self._keys)
        return iter(snapshot)

    def __len__(self):
        return len(self._keys)

    def __contains__(self, key):
        self._require_key(key)
        with self._lock:
            return key in self._values

    def put(self, key, atom):
        """Stores 'atom' under 'key' and returns the value it replaced, if any."""
        with self._lock:
            previous = self._values.get(self._require_key(key))
            self[key] = atom
            return previous

    def entries(self):
        """Snapshot of (key, value) pairs in key order."""
        with self._lock:
            return [(key, self._values[key]) for key in self._keys]

    def clear(self):
        with self._lock:
            self._values.clear()
            self._keys.clear()

    # Sorted-map navigation
    def first_key(self):
        with self._lock:
            return self._keys[0] if self._keys else None

    def last_key(self):
        with self._lock:
            return self._keys[-1] if self._keys else None

    def ceiling_key(self, key):
        """Smallest key >= 'key', or None."""
        self._require_key(key)
        with self._lock:
            index = bisect_left(self._keys, key)
            return self._keys[index] if index < len(self._keys) else None

    def floor_key(self, key):
        """Largest key <= 'key', or None."""
        self._require_key(key)
        with self._lock:
            index = bisect_right(self._keys, key)
            return self._keys[index - 1] if index > 0 else None

    def higher_key(self, key):
        """Smallest key > 'key', or None."""
        self._require_key(key)
        with self._lock:
            index = bisect_right(self._keys, key)
            return self._keys[index] if index < len(self._keys) else None

    def lower_key(self, key):
        """Largest key < 'key', or None."""
        self._require_key(key)
        with self._lock:
            index = bisect_left(self._keys, key)
            return self._keys[index - 1] if index > 0 else None

    def descending_keys(self):
        with self._lock:
            return list(reversed(self._keys))

    def canonical_length(self) -> int:
        return 2 + sum(
            key.canonical_length() + atom.canonical_length()
            for key, atom in self.entries()
        )

    def __eq__(self, other):
        if isinstance(other, AtomDictionary):
            return self.entries() == other.entries()
        return NotImplemented

    __hash__ = None

    def __copy__(self):
        return AtomDictionary(self)

    def __repr__(self):
        body = ", ".join(f"{key!r}: {atom!r}" for key, atom in self.entries())
        return f"AtomDictionary({{{body}}})"


def copy_atom(atom):
    """Deep copy of an atom tree, one structural recursion on the tag."""
    kind = getattr(atom, 'kind', None)
    if kind is AtomKind.INTEGER:
        return AtomInteger(atom.value)
    if kind is AtomKind.STRING:
        return AtomString(atom.value)
    if kind is AtomKind.LIST:
        result = AtomList()
        for child in atom:
            result.append(copy_atom(child))
        return result
    if kind is AtomKind.DICTIONARY:
        result = AtomDictionary()
        for key, child in atom.entries():
            result[copy_atom(key)] = copy_atom(child)
        return result
    raise TypeError(f"Cannot copy type: {type(atom).__name__}")


def to_atom(obj):
    """
    Builds an atom tree from plain Python values.

    str keys are Latin-1 encoded, so a str key and a bytes key with the same
    bytes ('a' and b'a') become one key and the later value wins.
    """
    if is_atom(obj):
        return obj
    if isinstance(obj, bool):
        raise TypeError("Cannot encode type: bool")
    if isinstance(obj, int):
        return AtomInteger(obj)
    if isinstance(obj, (bytes, bytearray, memoryview, str)):
        return AtomString(obj)
    if isinstance(obj, (list, tuple)):
        result = AtomList()
        for item in obj:
            result.append(to_atom(item))
        return result
    if isinstance(obj, Mapping):
        result = AtomDictionary()
        for key, value in obj.items():
            if not isinstance(key, (bytes, bytearray, str, AtomString)):
                raise TypeError(f"Dictionary keys must be strings, not {type(key).__name__}")
            result[AtomString(key)] = to_atom(value)
        return result
    raise TypeError(f"Cannot encode type: {type(obj).__name__}")


def to_python(atom):
    """Plain Python view of an atom tree: int, bytes, list and dict."""
    kind = getattr(atom, 'kind', None)
    if kind is AtomKind.INTEGER:
        return atom.value
    if kind is AtomKind.STRING:
        return atom.value
    if kind is AtomKind.LIST:
        return [to_python(child) for child in atom]
    if kind is AtomKind.DICTIONARY:
        return {key.value: to_python(child) for key, child in atom.entries()}
    raise TypeError(f"Cannot convert type: {type(atom).__name__}")
