from random import Random
from time import perf_counter
from typing import Any, Dict

from hashdag.store import KVStore, StoreError


class BytesGen:
    def __init__(self, seed=None):
        self.random = Random()
        if seed is None:
            self.random.seed(perf_counter(), version=2)
        else:
            self.random.seed(seed, version=2)

    def randint_repeat(self, start, end, repeat):
        return (self.random.randint(start, end) for _ in range(repeat))

    def get_bytes(self, length):
        return bytes(self.randint_repeat(0, 255, int(length)))


def rand_bytes(seed, size):
    return BytesGen(seed).get_bytes(size)


class FailingStore(KVStore):
    """
    Accepts `fail_after` puts and raises `StoreError` on next one
    """

    def __init__(self, fail_after: int = 0):
        self.fail_after = fail_after
        self.data: Dict[bytes, bytes] = {}

    def put(self, key: Any, value: bytes) -> None:
        if len(self.data) >= self.fail_after:
            raise StoreError("disk full")
        self.data[bytes(key)] = value
