from typing import Iterator, List

K = 1 << 10
BLOCK_SIZE = 256 * K


def check_block_size(block_size: int) -> int:
    if not isinstance(block_size, int) or block_size <= 0:
        raise ValueError(f"block_size has to be positive integer: {block_size!r}")
    return block_size


def chunk_count(size: int, block_size: int) -> int:
    """
    Number of chunks `split()` produces for `size` bytes

    >>> [chunk_count(n, 4) for n in (0, 1, 4, 5, 8, 9)]
    [0, 1, 1, 2, 2, 3]
    """
    check_block_size(block_size)
    return (size + block_size - 1) // block_size


def iter_chunks(data: bytes, block_size: int) -> Iterator[bytes]:
    """
    >>> list(iter_chunks(b'abcdefghij', 4))
    [b'abcd', b'efgh', b'ij']
    """
    check_block_size(block_size)
    for start in range(0, len(data), block_size):
        yield data[start : start + block_size]


def split(data: bytes, block_size: int) -> List[bytes]:
    """
    Cut `data` into contiguous pieces of `block_size`, last one
    could be shorter. Empty `data` gives no pieces.

    >>> split(b'abcdefgh', 4)
    [b'abcd', b'efgh']
    >>> split(b'abcdefghi', 4)
    [b'abcd', b'efgh', b'i']
    >>> split(b'', 4)
    []
    >>> split(b'abc', 0)
    Traceback (most recent call last):
    ...
    ValueError: block_size has to be positive integer: 0
    """
    return list(iter_chunks(data, block_size))
