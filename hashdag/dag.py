"""
Objects of Merkle DAG and their canonical binary form.

Every object persisted in store is `DagObject`: ordered `links`
and `data`. Blob has no links and carries raw chunk in `data`.
Tree has links and carries one `LinkKind` code per link in `data`.

Object is serialized as::

    object := varint(len(links)) link* varint(len(data)) data
    link   := varint(len(name)) name varint(len(cake)) cake varint(size)

`varint` groups 7 bits of unsigned integer, least significant group
first, with high bit set on the last byte. Names are utf-8.

Key of any object is digest of its serialized form and that same
serialized form is the value written in store, for blobs and trees
alike.
"""
import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from hashdag import CodeEnum
from hashdag.cake import Cake
from hashdag.hashing import Hasher
from hashdag.packer import (
    SIZED_BYTES,
    UTF8_STR,
    VARINT,
    Packer,
    SizedListPacker,
    TuplePacker,
    named_tuple_packer,
)
from hashdag.store import KVStore

log = logging.getLogger(__name__)


class LinkKind(CodeEnum):
    BLOB = (0, "points to blob: whole small file or one chunk")
    LIST = (1, "points to chunk list of large file")
    TREE = (2, "points to tree of directory")


@named_tuple_packer(UTF8_STR, Cake.__packer__, VARINT)
class Link(NamedTuple):
    name: str
    cake: Cake
    size: int  # size of original content, not of stored object

    def __to_json__(self) -> Dict[str, Any]:
        return {"name": self.name, "cake": str(self.cake), "size": self.size}


LINKS_PACKER = SizedListPacker(Link.__packer__)  # type: ignore
OBJECT_PACKER: Packer = TuplePacker(LINKS_PACKER, SIZED_BYTES)


def kind_markers(kinds: Iterable[LinkKind]) -> bytes:
    """
    >>> kind_markers([LinkKind.BLOB, LinkKind.TREE, LinkKind.LIST])
    b'\\x00\\x02\\x01'
    """
    return bytes(int(k) for k in kinds)


class DagObject(NamedTuple):
    """
    >>> blob = DagObject.blob(b'hello')
    >>> blob.is_blob()
    True
    >>> bytes(blob)
    b'\\x80\\x85hello'
    >>> DagObject.from_bytes(bytes(blob)) == blob
    True
    >>> DagObject.from_bytes(b'\\x80\\x85hell')
    Traceback (most recent call last):
    ...
    hashdag.packer.NeedMoreBytes: 1
    >>> DagObject.from_bytes(b'\\x80\\x80extra')
    Traceback (most recent call last):
    ...
    ValueError: 5 unexpected bytes after object
    """

    links: Tuple[Link, ...]
    data: bytes

    @classmethod
    def blob(cls, chunk: bytes) -> "DagObject":
        return cls((), chunk)

    @classmethod
    def tree(
        cls, links: Sequence[Link], kinds: Optional[Sequence[LinkKind]] = None
    ) -> "DagObject":
        if kinds is None:
            return cls(tuple(links), b"")
        if len(kinds) != len(links):
            raise ValueError(f"{len(kinds)} kinds for {len(links)} links")
        return cls(tuple(links), kind_markers(kinds))

    @classmethod
    def from_bytes(cls, buffer: bytes) -> "DagObject":
        (links, data), offset = OBJECT_PACKER.unpack(buffer, 0)
        if offset != len(buffer):
            raise ValueError(f"{len(buffer) - offset} unexpected bytes after object")
        return cls(tuple(links), data)

    def is_blob(self) -> bool:
        return not self.links

    def link_kinds(self) -> List[LinkKind]:
        """
        Kinds of links recorded in tree data, empty if tree was
        encoded without kinds.
        """
        if self.is_blob() or not self.data:
            return []
        return [LinkKind.find_by_code(b) for b in self.data]

    def cake(self, hasher: Optional[Hasher] = None) -> Cake:
        if hasher is None:
            hasher = Hasher()
        return Cake(hasher.reset().update(bytes(self)))

    def __bytes__(self) -> bytes:
        return OBJECT_PACKER.pack((self.links, self.data))

    def __to_json__(self) -> Dict[str, Any]:
        return {
            "links": [link.__to_json__() for link in self.links],
            "data": self.data.hex(),
        }


def put_object(store: KVStore, obj: DagObject, hasher: Hasher) -> Cake:
    """
    Serialize `obj`, write it into `store` under its digest.

    Returns:
        cake of `obj`
    """
    buffer = bytes(obj)
    cake = Cake(hasher.reset().update(buffer))
    store.put(cake, buffer)
    log.debug(
        "put %s %s links=%d size=%d",
        "blob" if obj.is_blob() else "tree",
        cake,
        len(obj.links),
        len(buffer),
    )
    return cake


def encode_blob(store: KVStore, chunk: bytes, hasher: Hasher) -> Cake:
    return put_object(store, DagObject.blob(chunk), hasher)


def encode_tree(
    store: KVStore,
    links: Sequence[Link],
    hasher: Hasher,
    kinds: Optional[Sequence[LinkKind]] = None,
) -> Cake:
    return put_object(store, DagObject.tree(links, kinds), hasher)
