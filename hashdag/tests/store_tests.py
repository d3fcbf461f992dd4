from pathlib import Path

import pytest
from hs_build_tools import LogTestOut

from hashdag.cake import Cake
from hashdag.store import DirectoryStore, MemoryStore, StoreError

log, out = LogTestOut.get(__name__)


def test_memory_store():
    store = MemoryStore()
    key = Cake.from_bytes(b"v")
    store.put(key, b"v")
    store.put(bytes(key), b"v")
    assert len(store) == 1
    assert store.puts == 2
    assert key in store
    assert store[bytes(key)] == b"v"


def test_directory_store():
    root = Path(out.child_dir("dir_store"))
    store = DirectoryStore(root, num_of_shards=16)
    key = Cake.from_bytes(b"value")
    store.put(key, b"value")
    path = store.path(key)
    assert path.parent.parent == root
    assert path.name == str(key)
    assert path.read_bytes() == b"value"
    assert key in store
    store.put(key, b"value")
    assert path.read_bytes() == b"value"
    assert [p.name for p in path.parent.iterdir()] == [path.name]


def test_directory_store_failure():
    root = Path(out.child_dir("dir_store_fail"))
    blocker = root / "file"
    blocker.write_bytes(b"")
    store = DirectoryStore(blocker)
    with pytest.raises(StoreError, match="cannot write") as e:
        store.put(Cake.from_bytes(b"x"), b"x")
    assert isinstance(e.value.__cause__, OSError)


@pytest.mark.parametrize("num_of_shards", [0, -1, 8193])
def test_directory_store_shards_out_of_range(num_of_shards):
    with pytest.raises(ValueError, match="num_of_shards"):
        DirectoryStore(Path(out.child_dir("dir_store_shards")), num_of_shards)
    assert DirectoryStore(Path("nowhere"), 1).num_of_shards == 1
