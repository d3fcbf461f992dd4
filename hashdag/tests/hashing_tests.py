import hashlib
from io import BytesIO

import pytest

from hashdag.cake import Cake
from hashdag.hashing import HASH_ALGOS, Hasher, shard_based_on_two_bites, shard_name_int
from hashdag.tests import rand_bytes


@pytest.mark.parametrize("algo", sorted(HASH_ALGOS))
def test_hasher_matches_hashlib(algo):
    data = rand_bytes(1, 1000)
    h = Hasher(algo)
    assert h.update(data[:10]).update(data[10:]).digest() == hashlib.new(algo, data).digest()
    assert h.size == hashlib.new(algo).digest_size
    assert h.reset().digest() == hashlib.new(algo).digest()


def test_reset_isolates_objects():
    h = Hasher()
    first = h.update(b"a").digest()
    h.update(b"b")
    assert h.reset().update(b"a").digest() == first


def test_on_update():
    seen = []
    h = Hasher(on_update=seen.append)
    h.update_from_stream(BytesIO(b"x" * 10), chunk_size=4)
    assert seen == [b"xxxx", b"xxxx", b"xx"]
    assert h.digest() == hashlib.sha256(b"x" * 10).digest()


def test_unknown_algo():
    with pytest.raises(ValueError, match="Unknown hash algorithm"):
        Hasher("md4")


def test_cake():
    data = rand_bytes(2, 100)
    c = Cake.from_bytes(data)
    assert bytes(c) == hashlib.sha256(data).digest()
    assert Cake(str(c)) == c
    assert Cake.ensure_it(str(c)) == c
    assert Cake.ensure_it(c) is c
    assert repr(c) == f"Cake({str(c)!r})"
    assert c != bytes(c)
    assert hash(c) == hash(Cake(bytes(c)))
    sha1 = Cake.from_bytes(data, Hasher("sha1"))
    assert len(sha1) == 20
    assert sorted([c, sha1]) == sorted([sha1, c])


def test_cake_leading_zeros():
    c = Cake(b"\0\0\1")
    assert str(c) == "001"
    assert bytes(Cake(str(c))) == b"\0\0\1"


def test_shard_names():
    assert [shard_name_int(i) for i in (0, 35, 36, 8191)] == ["0", "z", "10", "6bj"]
    assert shard_based_on_two_bites(b"\xff\xff", 8192) == 8191
