from functools import total_ordering
from io import BytesIO
from typing import IO, ClassVar, Optional, Union

from hashdag import EnsureIt, Stringable
from hashdag.base_x import base_x
from hashdag.hashing import BytesOrderingMixin, Hasher
from hashdag.packer import SIZED_BYTES, Packer, ProxyPacker

B62 = base_x(62)


@total_ordering
class Cake(Stringable, EnsureIt, BytesOrderingMixin):
    """
    Stands for Content Address KEy.

    Wraps digest produced by `Hasher`. Digest length follows the
    algorithm, so `Cake` does not assume sha256. Base62 encoding is
    used for text representation.

    >>> c = Cake(Hasher().update(b'hello'))
    >>> c.hex()[:16]
    '2cf24dba5fb0a30e'
    >>> Cake(str(c)) == c
    True
    >>> Cake(bytes(c)) == c
    True
    >>> len(c)
    32
    >>> Cake(b'')
    Traceback (most recent call last):
    ...
    AttributeError: digest is empty
    """

    digest: bytes

    __packer__: ClassVar[Packer]

    def __init__(self, s: Union[str, bytes, Hasher]):
        if isinstance(s, Hasher):
            self.digest = s.digest()
        elif isinstance(s, str):
            self.digest = B62.decode(s)
        elif isinstance(s, bytes):
            self.digest = s
        else:
            raise AttributeError(f"cannot construct from: {s!r}")
        if not self.digest:
            raise AttributeError("digest is empty")

    def __str__(self):
        return B62.encode(self.digest)

    def __bytes__(self):
        return self.digest

    def __len__(self):
        return len(self.digest)

    def __hash__(self) -> int:
        if not (hasattr(self, "_hash")):
            self._hash = hash(self.digest)
        return self._hash

    def hex(self) -> str:
        return self.digest.hex()

    @staticmethod
    def from_stream(fd: IO[bytes], hasher: Optional[Hasher] = None) -> "Cake":
        if hasher is None:
            hasher = Hasher()
        return Cake(hasher.reset().update_from_stream(fd))

    @staticmethod
    def from_bytes(s: bytes, hasher: Optional[Hasher] = None) -> "Cake":
        return Cake.from_stream(BytesIO(s), hasher)


Cake.__packer__ = ProxyPacker(Cake, SIZED_BYTES)
