"""
Binary packers used for canonical form of DAG objects.

Every packer turns value into bytes and reads it back from buffer at
given offset, returning value together with offset right after it.
"""
import abc
from typing import Any, Callable, List, Optional, Tuple

from hashdag import BitMask, utf8_decode, utf8_encode


class NeedMoreBytes(Exception):
    """
    Buffer ended before value did. `how_much` is number of missing
    bytes, when known.
    """

    def __init__(self, how_much: Optional[int] = None):
        self.how_much = how_much

    @classmethod
    def check_buffer(cls, buff_len: int, fragment_end: int) -> int:
        missing = fragment_end - buff_len
        if missing > 0:
            raise cls(missing)
        return fragment_end


class SkipMoreBytes(NeedMoreBytes):
    """ Same as `NeedMoreBytes`, raised by `skip()` """


MARK_BIT = BitMask(7)
SEVEN_BITS = BitMask(0, 7)


class Packer(metaclass=abc.ABCMeta):
    cls: type
    size: Optional[int] = None  # fixed size in bytes, `None` if it varies

    @abc.abstractmethod
    def pack(self, v: Any) -> bytes:
        raise NotImplementedError("subclasses must override")

    @abc.abstractmethod
    def unpack(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        raise NotImplementedError("subclasses must override")

    def skip(self, buffer: bytes, offset: int) -> int:
        """
        Returns:
            offset right after value that starts at `offset`
        """
        return self.unpack(buffer, offset)[1]


class AdjustableSizePacker(Packer):
    """
    Unsigned integer in groups of 7 bits, least significant group
    first. Last byte is marked with high bit. Encoding is minimal, so
    every value has exactly one representation.

    >>> ADJSIZE_PACKER_3.pack(3).hex()
    '83'
    >>> ADJSIZE_PACKER_3.pack(127).hex()
    'ff'
    >>> ADJSIZE_PACKER_3.pack(128).hex()
    '0081'
    >>> ADJSIZE_PACKER_3.pack(16000).hex()
    '00fd'
    >>> ADJSIZE_PACKER_3.pack(2 ** 21)
    Traceback (most recent call last):
    ...
    ValueError: Size is too big: 2097152
    >>> ADJSIZE_PACKER_3.unpack(bytes([0x00, 0xfd]), 0)
    (16000, 2)
    >>> ADJSIZE_PACKER_3.unpack(bytes([0x00, 0x09]), 0)
    Traceback (most recent call last):
    ...
    hashdag.packer.NeedMoreBytes: 1
    >>> ADJSIZE_PACKER_3.unpack(bytes([0x00, 0x09, 0x7a, 0x81]), 0)
    Traceback (most recent call last):
    ...
    ValueError: No end bit
    >>> ADJSIZE_PACKER_3.unpack(bytes([0x00, 0x80]), 0)
    Traceback (most recent call last):
    ...
    ValueError: Non-minimal encoding
    """

    cls = int

    def __init__(self, max_size: int):
        self.max_size = max_size
        self.max_capacity = 1 << (7 * max_size)

    def pack(self, v: int) -> bytes:
        if v < 0:
            raise ValueError(f"Negative size: {v}")
        if v >= self.max_capacity:
            raise ValueError(f"Size is too big: {v}")
        groups = bytearray()
        while v > SEVEN_BITS.mask:
            groups.append(SEVEN_BITS.extract(v))
            v >>= 7
        groups.append(MARK_BIT.set(v))
        return bytes(groups)

    def unpack(self, buffer: bytes, offset: int) -> Tuple[int, int]:
        v = 0
        for i in range(self.max_size):
            end = NeedMoreBytes.check_buffer(len(buffer), offset + i + 1)
            b = buffer[end - 1]
            v |= SEVEN_BITS.extract(b) << (7 * i)
            if MARK_BIT.extract(b):
                if i > 0 and not SEVEN_BITS.extract(b):
                    raise ValueError("Non-minimal encoding")
                return v, end
        raise ValueError("No end bit")


ADJSIZE_PACKER_3 = AdjustableSizePacker(3)
ADJSIZE_PACKER_4 = AdjustableSizePacker(4)
VARINT = AdjustableSizePacker(10)


class SizedPacker(Packer):
    """
    Bytes prefixed with their length

    >>> SIZED_BYTES.pack(b'abc')
    b'\\x83abc'
    >>> SIZED_BYTES.unpack(b'\\x83abcd', 0)
    (b'abc', 4)
    """

    cls = bytes

    def __init__(self, size_packer: Packer = VARINT):
        self.size_packer = size_packer

    def pack(self, v: bytes) -> bytes:
        if not isinstance(v, bytes):
            raise ValueError(f"expected bytes not {type(v)}")
        return self.size_packer.pack(len(v)) + v

    def _bounds(self, buffer: bytes, offset: int, error: type) -> Tuple[int, int]:
        size, start = self.size_packer.unpack(buffer, offset)
        return start, error.check_buffer(len(buffer), start + size)

    def unpack(self, buffer: bytes, offset: int) -> Tuple[bytes, int]:
        start, end = self._bounds(buffer, offset, NeedMoreBytes)
        return buffer[start:end], end

    def skip(self, buffer: bytes, offset: int) -> int:
        return self._bounds(buffer, offset, SkipMoreBytes)[1]


class ProxyPacker(Packer):
    """
    Packs `cls` instances through another packer: `to_proxy` turns
    value into something `packer` understands and `to_cls` turns it
    back.
    """

    def __init__(
        self,
        cls: type,
        packer: Packer,
        to_proxy: Callable[[Any], Any] = bytes,
        to_cls: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.cls = cls
        self.packer = packer
        self.size = packer.size
        self.to_proxy = to_proxy
        self.to_cls = cls if to_cls is None else to_cls

    def pack(self, v: Any) -> bytes:
        return self.packer.pack(self.to_proxy(v))

    def unpack(self, buffer: bytes, offset: int) -> Tuple[Any, int]:
        proxy, end = self.packer.unpack(buffer, offset)
        return self.to_cls(proxy), end

    def skip(self, buffer: bytes, offset: int) -> int:
        return self.packer.skip(buffer, offset)


class TuplePacker(Packer):
    """
    Fixed sequence of packers applied one after another
    """

    def __init__(self, *packers: Packer, cls: Callable[[Any], Any] = tuple) -> None:
        self.packers = packers
        self.cls = cls  # type: ignore
        sizes = [p.size for p in packers]
        self.size = None if None in sizes else sum(sizes)  # type: ignore

    def pack(self, values: tuple) -> bytes:
        if len(values) != len(self.packers):
            raise AssertionError(f"size mismatch {len(self.packers)}: {values}")
        return b"".join(p.pack(v) for p, v in zip(self.packers, values))

    def unpack(self, buffer: bytes, offset: int) -> Tuple[tuple, int]:
        values = []
        for p in self.packers:
            v, offset = p.unpack(buffer, offset)
            values.append(v)
        return self.cls(values), offset

    def skip(self, buffer: bytes, offset: int) -> int:
        for p in self.packers:
            offset = p.skip(buffer, offset)
        return offset


class SizedListPacker(Packer):
    """
    List of items prefixed with number of items

    >>> names = SizedListPacker(UTF8_STR)
    >>> names.pack(['a', 'bc']).hex()
    '828161826263'
    >>> names.unpack(bytes.fromhex('828161826263'), 0)
    (['a', 'bc'], 6)
    """

    cls = list

    def __init__(self, item_packer: Packer, size_packer: Packer = VARINT):
        self.item_packer = item_packer
        self.size_packer = size_packer

    def pack(self, values: List[Any]) -> bytes:
        packed = [self.size_packer.pack(len(values))]
        packed.extend(self.item_packer.pack(v) for v in values)
        return b"".join(packed)

    def unpack(self, buffer: bytes, offset: int) -> Tuple[List[Any], int]:
        count, offset = self.size_packer.unpack(buffer, offset)
        items = []
        for _ in range(count):
            item, offset = self.item_packer.unpack(buffer, offset)
            items.append(item)
        return items, offset

    def skip(self, buffer: bytes, offset: int) -> int:
        count, offset = self.size_packer.unpack(buffer, offset)
        for _ in range(count):
            offset = self.item_packer.skip(buffer, offset)
        return offset


SIZED_BYTES = SizedPacker()
UTF8_STR = ProxyPacker(str, SIZED_BYTES, utf8_encode, utf8_decode)


def named_tuple_packer(*parts: Packer):
    """
    Class decorator that assigns `__packer__` to `NamedTuple`

    >>> from typing import NamedTuple
    >>> @named_tuple_packer(UTF8_STR, VARINT)
    ... class Entry(NamedTuple):
    ...     name: str
    ...     size: int
    ...
    >>> Entry.__packer__.pack(Entry('a', 5)).hex()
    '816185'
    >>> Entry.__packer__.unpack(bytes.fromhex('816185'), 0)
    (Entry(name='a', size=5), 3)
    """

    def decorate(cls: type) -> type:
        cls.__packer__ = ProxyPacker(  # type: ignore
            cls, TuplePacker(*parts), tuple, lambda values: cls(*values)
        )
        return cls

    return decorate
