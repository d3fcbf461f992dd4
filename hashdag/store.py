import abc
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

from hashdag.base_x import base_x
from hashdag.files import ensure_path
from hashdag.hashing import shard_based_on_two_bites, shard_name_int

log = logging.getLogger(__name__)

B62 = base_x(62)

MAX_NUM_OF_SHARDS = 8192


class DagError(Exception):
    """
    Base for all errors raised while building DAG
    """

    pass


class StoreError(DagError):
    """
    Store could not persist value
    """

    pass


class KVStore(metaclass=abc.ABCMeta):
    """
    Write side of key-value store. `key` is anything that
    supports `bytes()`: raw digest or `Cake`.
    """

    @abc.abstractmethod
    def put(self, key: Any, value: bytes) -> None:
        raise NotImplementedError("subclasses must override")


class MemoryStore(KVStore):
    """
    >>> store = MemoryStore()
    >>> store.put(b'k', b'v')
    >>> store.put(b'k', b'v')
    >>> store.data
    {b'k': b'v'}
    >>> store.puts
    2
    """

    data: Dict[bytes, bytes]

    def __init__(self):
        self.data = {}
        self.puts = 0

    def put(self, key: Any, value: bytes) -> None:
        k = bytes(key)
        self.puts += 1
        self.data[k] = value

    def __contains__(self, key: Any) -> bool:
        return bytes(key) in self.data

    def __getitem__(self, key: Any) -> bytes:
        return self.data[bytes(key)]

    def __len__(self):
        return len(self.data)


class DirectoryStore(KVStore):
    """
    Keeps every value in its own file: `root/<shard>/<base62 key>`.
    Shard is derived from first two bytes of the key.
    """

    root: Path
    num_of_shards: int

    def __init__(
        self, root: Union[str, Path], num_of_shards: int = MAX_NUM_OF_SHARDS
    ):
        if not 0 < num_of_shards <= MAX_NUM_OF_SHARDS:
            raise ValueError(
                f"num_of_shards has to be in 1..{MAX_NUM_OF_SHARDS}: {num_of_shards}"
            )
        self.root = ensure_path(root)
        self.num_of_shards = num_of_shards

    def path(self, key: Any) -> Path:
        digest = bytes(key)
        shard_num = shard_based_on_two_bites(digest.rjust(2, b"\0"), self.num_of_shards)
        return self.root / shard_name_int(shard_num) / B62.encode(digest)

    def __contains__(self, key: Any) -> bool:
        return self.path(key).exists()

    def put(self, key: Any, value: bytes) -> None:
        path = self.path(key)
        if path.exists():
            log.debug("already stored: %s", path.name)
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".put_")
            try:
                with os.fdopen(fd, "wb") as fp:
                    fp.write(value)
                os.replace(tmp_name, str(path))
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StoreError(f"cannot write {path}: {e}") from e
        log.debug("stored: %s %d bytes", path.name, len(value))
