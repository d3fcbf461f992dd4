import hashlib

import pytest

from hashdag.cake import Cake
from hashdag.dag import DagObject, Link, LinkKind, encode_blob, encode_tree
from hashdag.hashing import Hasher
from hashdag.store import MemoryStore


def test_blob_format():
    store = MemoryStore()
    cake = encode_blob(store, b"hello", Hasher())
    value = store[cake]
    assert value == b"\x80\x85hello"
    assert bytes(cake) == hashlib.sha256(value).digest()


def test_tree_format():
    store = MemoryStore()
    hasher = Hasher()
    blob = encode_blob(store, b"hello", hasher)
    cake = encode_tree(store, [Link("a.txt", blob, 5)], hasher, [LinkKind.BLOB])
    value = store[cake]
    expected = (
        b"\x81"  # one link
        + b"\x85a.txt"
        + b"\xa0" + bytes(blob)  # 32 byte digest
        + b"\x85"  # size
        + b"\x81\x00"  # kind markers
    )
    assert value == expected
    assert bytes(cake) == hashlib.sha256(value).digest()
    obj = DagObject.from_bytes(value)
    assert obj.links == (Link("a.txt", blob, 5),)
    assert obj.link_kinds() == [LinkKind.BLOB]
    assert not obj.is_blob()


def test_large_size_and_unicode_name():
    cake = Cake(Hasher().digest())
    link = Link("päth ✓", cake, 2 ** 40)
    obj = DagObject.tree([link])
    assert obj.data == b""
    assert obj.link_kinds() == []
    assert DagObject.from_bytes(bytes(obj)) == obj


def test_kinds_mismatch():
    cake = Cake(Hasher().digest())
    with pytest.raises(ValueError, match="1 kinds for 2 links"):
        DagObject.tree([Link("a", cake, 0), Link("b", cake, 0)], [LinkKind.BLOB])


def test_hasher_reset_between_objects():
    hasher = Hasher()
    hasher.update(b"garbage from earlier use")
    store = MemoryStore()
    cake = encode_blob(store, b"x", hasher)
    assert cake == DagObject.blob(b"x").cake()
    assert cake == Cake.from_bytes(store[cake])


def test_other_algo():
    store = MemoryStore()
    cake = encode_blob(store, b"x", Hasher("sha1"))
    assert len(cake) == 20
    assert bytes(cake) == hashlib.sha1(store[cake]).digest()


def test_to_json():
    obj = DagObject.tree([Link("a", Cake(b"\x01"), 3)], [LinkKind.TREE])
    assert obj.__to_json__() == {
        "links": [{"name": "a", "cake": "1", "size": 3}],
        "data": "02",
    }


def test_from_bytes_one_encoding_per_object():
    assert DagObject.from_bytes(b"\x80\x80") == DagObject.blob(b"")
    for padded in (b"\x00\x80\x80", b"\x80\x05\x80hello"):
        with pytest.raises(ValueError, match="Non-minimal encoding"):
            DagObject.from_bytes(padded)
