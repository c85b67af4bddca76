import copy
import threading

import pytest
from atoms import (
    MAX_INTEGER_DIGITS,
    Atom,
    AtomDictionary,
    AtomInteger,
    AtomKind,
    AtomList,
    AtomString,
    copy_atom,
    to_atom,
    to_python,
)
from errors import IntegerTooLongError


def s(value):
    return AtomString(value)


# --- AtomInteger ---

def test_integer_canonical_length():
    assert AtomInteger(0).canonical_length() == 3
    assert AtomInteger(5).canonical_length() == 3
    assert AtomInteger(-42).canonical_length() == 5
    assert AtomInteger(50000000).canonical_length() == 10


def test_integer_defaults_to_zero():
    assert AtomInteger() == AtomInteger(0)


def test_integer_is_arbitrary_precision():
    big = 2 ** 80
    assert AtomInteger(big).value == big
    assert AtomInteger(big).canonical_length() == len(str(big)) + 2


def test_integer_rejects_non_int():
    with pytest.raises(TypeError):
        AtomInteger(None)
    with pytest.raises(TypeError):
        AtomInteger("5")
    with pytest.raises(TypeError):
        AtomInteger(True)


def test_integer_ordering_and_hash():
    assert AtomInteger(1) < AtomInteger(2)
    assert AtomInteger(3) >= AtomInteger(3)
    assert hash(AtomInteger(7)) == hash(AtomInteger(7))
    assert int(AtomInteger(9)) == 9
    assert AtomInteger(1) != AtomString(b"1")


# --- AtomString ---

def test_string_canonical_length_counts_bytes():
    assert s(b"Hello").canonical_length() == 7
    assert s(b"").canonical_length() == 2
    assert s(b"x" * 10).canonical_length() == 13
    assert s(b"\xff\x00\xfe").canonical_length() == 5


def test_string_accepts_latin1_text():
    atom = s("café")
    assert atom.value == b"caf\xe9"
    assert len(atom) == 4
    assert str(atom) == "café"
    assert bytes(atom) == b"caf\xe9"


def test_string_rejects_none():
    with pytest.raises(TypeError):
        AtomString(None)


def test_string_orders_byte_wise():
    assert s("100") < s("90")
    assert s("90") < s("ABC100")
    assert s("ABC") < s("abc")
    assert s("bar").compare_to(s("foo")) == -1
    assert s("foo").compare_to(s("foo")) == 0


# --- AtomList ---

def test_list_equality_is_ordered_and_deep():
    a = AtomList([AtomInteger(5), s("Hello")])
    b = AtomList([AtomInteger(5), s("Hello")])
    c = AtomList([s("Hello"), AtomInteger(5)])
    assert a == b
    assert a != c
    assert a != AtomList([AtomInteger(5)])


def test_list_canonical_length():
    atom = AtomList([AtomInteger(5), s("Hello")])
    assert atom.canonical_length() == len(b"li5e5:Helloe")
    assert AtomList().canonical_length() == 2


def test_list_rejects_absent_values():
    atom = AtomList([AtomInteger(1)])
    with pytest.raises(TypeError):
        atom.append(None)
    with pytest.raises(TypeError):
        atom.insert(0, None)
    with pytest.raises(TypeError):
        atom[0] = None
    with pytest.raises(TypeError):
        atom.append(5)
    assert atom == AtomList([AtomInteger(1)])


def test_list_index_out_of_range():
    atom = AtomList([AtomInteger(1), AtomInteger(2)])
    with pytest.raises(IndexError):
        atom[2]
    with pytest.raises(IndexError):
        atom[-1]
    with pytest.raises(IndexError):
        atom[5] = AtomInteger(0)
    with pytest.raises(IndexError):
        del atom[2]
    with pytest.raises(IndexError):
        atom.insert(3, AtomInteger(0))
    with pytest.raises(IndexError):
        AtomList().pop()


def test_list_insert_at_size_appends():
    atom = AtomList([AtomInteger(1)])
    atom.insert(1, AtomInteger(2))
    atom.insert(0, AtomInteger(0))
    assert to_python(atom) == [0, 1, 2]


def test_list_mutations():
    atom = AtomList()
    atom.append(AtomInteger(1))
    atom.extend([AtomInteger(2), AtomInteger(3)])
    atom[0] = s("one")
    assert atom.pop() == AtomInteger(3)
    atom.remove(AtomInteger(2))
    assert to_python(atom) == [b"one"]
    atom.clear()
    assert len(atom) == 0


def test_list_search_helpers():
    atom = AtomList([AtomInteger(1), AtomInteger(2), AtomInteger(1)])
    assert atom.index_of(AtomInteger(1)) == 0
    assert atom.index_of(AtomInteger(1), 1) == 2
    assert atom.index_of(AtomInteger(9)) == -1
    assert atom.last_index_of(AtomInteger(1)) == 2
    assert atom.last_index_of(AtomInteger(1), 1) == 0
    assert AtomInteger(2) in atom


def test_list_add_if_absent():
    atom = AtomList([AtomInteger(1)])
    assert not atom.add_if_absent(AtomInteger(1))
    assert atom.add_if_absent(AtomInteger(2))
    added = atom.add_all_absent([AtomInteger(2), AtomInteger(3), AtomInteger(3)])
    assert added == 1
    assert to_python(atom) == [1, 2, 3]


def test_list_random_slice():
    atom = AtomList([AtomInteger(i) for i in range(5)])
    sample = atom.random_slice(3)
    assert len(sample) == 3
    for item in sample:
        assert item in atom
    assert len(atom.random_slice(50)) == 5
    assert len(atom.random_slice(-1)) == 0
    assert len(AtomList().random_slice(3)) == 0


def test_list_random_slice_copies_children():
    inner = AtomList([AtomInteger(1)])
    sample = AtomList([inner]).random_slice(1)
    sample[0].append(AtomInteger(2))
    assert len(inner) == 1


def test_list_randomise_keeps_elements():
    atom = AtomList([AtomInteger(i) for i in range(20)])
    atom.randomise()
    assert sorted(to_python(atom)) == list(range(20))


def test_list_is_unhashable():
    with pytest.raises(TypeError):
        hash(AtomList())


def test_list_concurrent_appends():
    atom = AtomList()

    def worker():
        for i in range(200):
            atom.append(AtomInteger(i))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(atom) == 1600


# --- AtomDictionary ---

def test_dictionary_keys_are_sorted_regardless_of_insertion_order():
    atom = AtomDictionary()
    for key in ["foo", "bar", "boo", "90", "100", "ABC90", "ABC100"]:
        atom[s(key)] = AtomInteger(0)
    assert [str(key) for key in atom] == ["100", "90", "ABC100", "ABC90", "bar", "boo", "foo"]
    assert [str(key) for key in atom.keys()] == ["100", "90", "ABC100", "ABC90", "bar", "boo", "foo"]


def test_dictionary_get_remove_contains():
    atom = AtomDictionary()
    atom[s("a")] = AtomInteger(1)
    assert s("a") in atom
    assert s("b") not in atom
    assert atom[s("a")] == AtomInteger(1)
    assert atom.get(s("b")) is None
    assert atom.pop(s("a")) == AtomInteger(1)
    assert len(atom) == 0
    with pytest.raises(KeyError):
        del atom[s("a")]


def test_dictionary_does_not_coerce_keys():
    atom = AtomDictionary()
    with pytest.raises(TypeError):
        atom[b"a"] = AtomInteger(1)
    with pytest.raises(TypeError):
        atom["a"]
    with pytest.raises(TypeError):
        b"a" in atom


def test_dictionary_rejects_absent_values():
    atom = AtomDictionary()
    with pytest.raises(TypeError):
        atom[s("a")] = None
    with pytest.raises(TypeError):
        atom.put(s("a"), None)
    assert len(atom) == 0


def test_dictionary_put_returns_previous_and_overwrites():
    atom = AtomDictionary()
    assert atom.put(s("a"), AtomInteger(1)) is None
    assert atom.put(s("a"), AtomInteger(2)) == AtomInteger(1)
    assert len(atom) == 1
    assert atom[s("a")] == AtomInteger(2)


def test_dictionary_equality_ignores_insertion_order():
    a = AtomDictionary()
    a[s("x")] = AtomInteger(1)
    a[s("y")] = s("two")
    b = AtomDictionary()
    b[s("y")] = s("two")
    b[s("x")] = AtomInteger(1)
    assert a == b
    b[s("x")] = AtomInteger(2)
    assert a != b


def test_dictionary_canonical_length():
    atom = AtomDictionary()
    atom[s("foo")] = AtomList([AtomInteger(5), s("Hello")])
    atom[s("bar")] = AtomList([AtomInteger(50000000), s("Hello World")])
    assert atom.canonical_length() == len(b"d3:barli50000000e11:Hello Worlde3:fooli5e5:Helloee")
    assert AtomDictionary().canonical_length() == 2


def test_dictionary_navigation():
    atom = AtomDictionary()
    for key in ["b", "d", "f"]:
        atom[s(key)] = AtomInteger(0)
    assert atom.first_key() == s("b")
    assert atom.last_key() == s("f")
    assert atom.ceiling_key(s("c")) == s("d")
    assert atom.ceiling_key(s("d")) == s("d")
    assert atom.floor_key(s("c")) == s("b")
    assert atom.higher_key(s("d")) == s("f")
    assert atom.lower_key(s("d")) == s("b")
    assert atom.higher_key(s("f")) is None
    assert atom.lower_key(s("b")) is None
    assert atom.descending_keys() == [s("f"), s("d"), s("b")]
    assert AtomDictionary().first_key() is None


def test_dictionary_delete_keeps_order():
    atom = AtomDictionary()
    for key in ["c", "a", "b"]:
        atom[s(key)] = AtomInteger(0)
    del atom[s("b")]
    assert list(atom) == [s("a"), s("c")]


# --- Deep copy ---

def test_copy_is_deep_and_preserves_variants():
    inner = AtomList([AtomInteger(1)])
    source = AtomDictionary()
    source[s("list")] = inner
    source[s("dict")] = AtomDictionary({s("k"): s("v")})

    clone = source.copy()
    assert clone == source
    assert isinstance(clone, AtomDictionary)
    assert isinstance(clone[s("list")], AtomList)
    assert isinstance(clone[s("dict")], AtomDictionary)
    assert clone[s("list")] is not inner

    clone[s("list")].append(AtomInteger(2))
    clone[s("dict")][s("k")] = s("changed")
    assert len(inner) == 1
    assert source[s("dict")][s("k")] == s("v")


def test_copy_module_uses_structural_copy():
    source = AtomList([AtomList([AtomInteger(1)])])
    clone = copy.deepcopy(source)
    clone[0].append(AtomInteger(2))
    assert source == AtomList([AtomList([AtomInteger(1)])])


def test_copy_atom_rejects_unknown_types():
    with pytest.raises(TypeError):
        copy_atom(object())


# --- Conversions ---

def test_to_atom_and_back():
    native = {"announce": "http://tracker", b"info": {"length": 3, "parts": [b"a", 1]}}
    atom = to_atom(native)
    assert atom.kind is AtomKind.DICTIONARY
    assert to_python(atom) == {
        b"announce": b"http://tracker",
        b"info": {b"length": 3, b"parts": [b"a", 1]},
    }


def test_to_atom_rejects_unsupported_types():
    with pytest.raises(TypeError):
        to_atom(1.5)
    with pytest.raises(TypeError):
        to_atom({1: 2})
    with pytest.raises(TypeError):
        to_atom([None])


def test_atom_base_is_abstract():
    with pytest.raises(TypeError):
        Atom()


def test_integer_digit_limit():
    widest = 10 ** MAX_INTEGER_DIGITS - 1
    assert AtomInteger(widest).canonical_length() == MAX_INTEGER_DIGITS + 2
    assert AtomInteger(-widest).canonical_length() == MAX_INTEGER_DIGITS + 3
    with pytest.raises(IntegerTooLongError):
        AtomInteger(10 ** MAX_INTEGER_DIGITS)
    with pytest.raises(IntegerTooLongError):
        AtomInteger(-10 ** 5000)


def test_to_atom_merges_equal_str_and_bytes_keys():
    atom = to_atom({"a": 1, b"a": 2})
    assert len(atom) == 1
    assert atom[s("a")] == AtomInteger(2)
