"""
Recursive construction of Merkle DAG out of `Node` tree.

Small file (`size <= block_size`) becomes single blob. Large file is
split into chunks, every chunk becomes blob and all of them are
linked from one intermediate chunk list. Directory becomes tree that
links its children in iteration order.
"""
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Union

from hashdag import Jsonable, LogicRegistry, json_decode, utf8_decode
from hashdag.cake import Cake
from hashdag.chunker import BLOCK_SIZE, check_block_size, iter_chunks
from hashdag.dag import Link, LinkKind, encode_blob, encode_tree
from hashdag.hashing import DEFAULT_ALGO, Hasher, hash_algo
from hashdag.nodes import Dir, File, Node, NodeKind
from hashdag.store import DagError, KVStore

log = logging.getLogger(__name__)

MAX_DEPTH = 256


class UnsupportedNodeKind(DagError):
    """
    Node is neither file nor directory
    """

    pass


class DepthExceeded(DagError):
    """
    Directories nested deeper than `DagConfig.max_depth`
    """

    pass


class DagConfig(Jsonable):
    """
    >>> DagConfig()
    DagConfig('{"block_size": 262144, "hash_algo": "sha256", "max_depth": 256}')
    >>> c = DagConfig('{"block_size": 4}')
    >>> c.block_size, c.hash_algo
    (4, 'sha256')
    >>> DagConfig(str(c)) == c
    True
    >>> DagConfig(block_size=0)
    Traceback (most recent call last):
    ...
    ValueError: block_size has to be positive integer: 0
    >>> DagConfig({"block": 5})
    Traceback (most recent call last):
    ...
    AttributeError: Not known: ['block']
    """

    block_size: int
    hash_algo: str
    max_depth: int

    def __init__(
        self, _vals_: Union[None, bytes, str, Dict[str, Any]] = None, **kwargs
    ) -> None:
        if isinstance(_vals_, bytes):
            _vals_ = utf8_decode(_vals_)
        if isinstance(_vals_, str):
            _vals_ = json_decode(_vals_)
        vals = dict(_vals_ or {})
        vals.update(kwargs)
        unknown = sorted(set(vals) - {"block_size", "hash_algo", "max_depth"})
        if unknown:
            raise AttributeError(f"Not known: {unknown}")
        self.block_size = vals.get("block_size", BLOCK_SIZE)
        self.hash_algo = vals.get("hash_algo", DEFAULT_ALGO)
        self.max_depth = vals.get("max_depth", MAX_DEPTH)
        self.validate_config()

    def validate_config(self):
        check_block_size(self.block_size)
        hash_algo(self.hash_algo)
        if not isinstance(self.max_depth, int) or self.max_depth <= 0:
            raise ValueError(f"max_depth has to be positive: {self.max_depth!r}")

    def new_hasher(self) -> Hasher:
        return Hasher(self.hash_algo)

    def __to_json__(self) -> Dict[str, Any]:
        return {
            "block_size": self.block_size,
            "hash_algo": self.hash_algo,
            "max_depth": self.max_depth,
        }

    def __repr__(self) -> str:
        return f"DagConfig({str(self)!r})"


NodePath = Tuple[str, ...]
OnAdded = Callable[[NodePath, Node, Cake, LinkKind], None]

_adders = LogicRegistry()


class Builder:
    """
    Holds store, hasher and config for one or more `add()` calls.
    Hasher is reset before every object, so single instance is
    reused for whole tree.
    """

    store: KVStore
    hasher: Hasher
    config: DagConfig
    on_added: Optional[OnAdded]

    def __init__(
        self,
        store: KVStore,
        hasher: Optional[Hasher] = None,
        config: Optional[DagConfig] = None,
        on_added: Optional[OnAdded] = None,
    ):
        self.store = store
        self.config = DagConfig() if config is None else DagConfig.ensure_it(config)
        self.hasher = self.config.new_hasher() if hasher is None else hasher
        self.on_added = on_added

    def add(self, node: Node) -> Cake:
        cake, kind = self.add_node(node, (), 0)
        log.info("added %s %r: %s", kind.name.lower(), node.name(), cake)
        return cake

    def add_node(
        self, node: Any, parent: NodePath, depth: int
    ) -> Tuple[Cake, LinkKind]:
        kind = getattr(node, "kind", None)
        if not isinstance(kind, NodeKind) or not _adders.has(kind):
            raise UnsupportedNodeKind(f"cannot add: {node!r}")
        path = parent + (node.name(),)
        cake, link_kind = _adders.get(kind)(self, node, path, depth)
        if self.on_added is not None:
            self.on_added(path, node, cake, link_kind)
        return cake, link_kind


@_adders.add(NodeKind.FILE)
def _add_file(
    builder: Builder, file: File, path: NodePath, depth: int
) -> Tuple[Cake, LinkKind]:
    data = bytes(file)
    block_size = builder.config.block_size
    if len(data) <= block_size:
        return encode_blob(builder.store, data, builder.hasher), LinkKind.BLOB
    links = [
        Link(file.name(), encode_blob(builder.store, chunk, builder.hasher), len(chunk))
        for chunk in iter_chunks(data, block_size)
    ]
    log.debug("%s split in %d chunks", "/".join(path), len(links))
    kinds = [LinkKind.BLOB] * len(links)
    return encode_tree(builder.store, links, builder.hasher, kinds), LinkKind.LIST


@_adders.add(NodeKind.DIR)
def _add_dir(
    builder: Builder, dir: Dir, path: NodePath, depth: int
) -> Tuple[Cake, LinkKind]:
    if depth >= builder.config.max_depth:
        raise DepthExceeded(
            f"{'/'.join(path)} is deeper than {builder.config.max_depth}"
        )
    links = []
    kinds = []
    for child in dir.it():
        child_cake, child_kind = builder.add_node(child, path, depth + 1)
        links.append(Link(child.name(), child_cake, child.size()))
        kinds.append(child_kind)
    return encode_tree(builder.store, links, builder.hasher, kinds), LinkKind.TREE


def add(
    store: KVStore,
    node: Node,
    hasher: Optional[Hasher] = None,
    config: Optional[DagConfig] = None,
    on_added: Optional[OnAdded] = None,
) -> Cake:
    """
    Persist `node` and everything under it into `store`.

    Returns:
        cake of root object, `bytes(cake)` is the digest

    >>> from hashdag.nodes import tree
    >>> from hashdag.store import MemoryStore
    >>> store = MemoryStore()
    >>> root = tree('root', {'a.txt': 'hello', 'sub': {'b.txt': b'0123456789'}})
    >>> cake = add(store, root, config=DagConfig(block_size=5))
    >>> len(store)  # a.txt, 2 chunks of b.txt, chunk list, sub, root
    6
    >>> cake == add(MemoryStore(), root, config=DagConfig(block_size=5))
    True
    """
    return Builder(store, hasher, config, on_added).add(node)
