import hashlib
from functools import total_ordering
from typing import IO, Any, Callable, Dict, Optional

from hashdag.base_x import base_x

B36 = base_x(36)

HashAlgo = Callable[..., Any]

HASH_ALGOS: Dict[str, HashAlgo] = {
    "sha256": hashlib.sha256,
    "sha1": hashlib.sha1,
    "sha512": hashlib.sha512,
    "sha3_256": hashlib.sha3_256,
    "blake2b": hashlib.blake2b,
    "blake2s": hashlib.blake2s,
}

DEFAULT_ALGO = "sha256"


def hash_algo(name: str) -> HashAlgo:
    """
    >>> hash_algo('sha1')().digest_size
    20
    >>> hash_algo('md4')
    Traceback (most recent call last):
    ...
    ValueError: Unknown hash algorithm: 'md4'
    """
    try:
        return HASH_ALGOS[name]
    except KeyError:
        raise ValueError(f"Unknown hash algorithm: {name!r}") from None


class Hasher:
    """
    Stateful digest. Everything passed to `update()` since creation
    or last `reset()` contributes to `digest()`.

    >>> Hasher().digest().hex()[:16]
    'e3b0c44298fc1c14'
    >>> h = Hasher().update(b"Hello")
    >>> h.digest().hex()[:16]
    '185f8db32271fe25'
    >>> h.reset().digest() == Hasher().digest()
    True
    >>> Hasher().size
    32
    >>> Hasher('sha1').size
    20
    """

    def __init__(
        self,
        algo: Any = DEFAULT_ALGO,
        on_update: Optional[Callable[[bytes], None]] = None,
    ) -> None:
        self.algo = hash_algo(algo) if isinstance(algo, str) else algo
        self.on_update = on_update
        self.sha = self.algo()

    @property
    def size(self) -> int:
        return self.sha.digest_size

    def update(self, b: bytes) -> "Hasher":
        self.sha.update(b)
        if self.on_update is not None:
            self.on_update(b)
        return self

    def update_from_stream(self, fd: IO[bytes], chunk_size: int = 65536) -> "Hasher":
        while True:
            chunk = fd.read(chunk_size)
            if len(chunk) <= 0:
                break
            self.update(chunk)
        fd.close()
        return self

    def digest(self) -> bytes:
        return self.sha.digest()

    def reset(self) -> "Hasher":
        self.sha = self.algo()
        return self


@total_ordering
class BytesOrderingMixin:
    def __eq__(self, other) -> bool:
        if type(self) != type(other):
            return False
        return bytes(self) == bytes(other)

    def __ne__(self, other) -> bool:
        return not self.__eq__(other)

    def __lt__(self, other) -> bool:
        return bytes(self) < bytes(other)


def shard_name_int(num: int):
    """
    >>> shard_name_int(0)
    '0'
    >>> shard_name_int(1)
    '1'
    >>> shard_name_int(8000)
    '668'
    """
    return B36.encode_int(num)


def shard_based_on_two_bites(digest: bytes, base: int) -> int:
    """
    >>> shard_based_on_two_bites(b'ab', 7)
    3
    """
    b1, b2 = digest[:2]
    return (b1 * 256 + b2) % base
