"""
Input side of the DAG builder.

Builder does not care where content comes from. It needs
`name()` and `size()` from every node, `bytes(file)` from files and
a fresh iterator of children on every `dir.it()` call.
"""
import abc
from typing import ClassVar, Iterable, Iterator, List, Sequence

from hashdag import CodeEnum, ensure_bytes


class NodeKind(CodeEnum):
    FILE = (0, "leaf with byte content")
    DIR = (1, "ordered collection of named nodes")


class Node(metaclass=abc.ABCMeta):
    kind: ClassVar[NodeKind]

    @abc.abstractmethod
    def name(self) -> str:
        raise NotImplementedError("subclasses must override")

    @abc.abstractmethod
    def size(self) -> int:
        raise NotImplementedError("subclasses must override")


class File(Node):
    kind = NodeKind.FILE

    @abc.abstractmethod
    def __bytes__(self) -> bytes:
        raise NotImplementedError("subclasses must override")


class Dir(Node):
    kind = NodeKind.DIR

    @abc.abstractmethod
    def it(self) -> Iterator[Node]:
        """
        Returns:
            new iterator over immediate children, every call
            starts from first child
        """
        raise NotImplementedError("subclasses must override")

    def __iter__(self) -> Iterator[Node]:
        return self.it()


class BytesFile(File):
    """
    >>> f = BytesFile('a.txt', 'hello')
    >>> f.name(), f.size(), bytes(f)
    ('a.txt', 5, b'hello')
    """

    def __init__(self, name: str, content: bytes):
        self._name = name
        self.content = ensure_bytes(content)

    def name(self) -> str:
        return self._name

    def size(self) -> int:
        return len(self.content)

    def __bytes__(self) -> bytes:
        return self.content

    def __repr__(self):
        return f"BytesFile({self._name!r}, size={self.size()})"


class MemoryDir(Dir):
    """
    >>> d = MemoryDir('root', [BytesFile('a', b'12'), MemoryDir('sub', [BytesFile('b', b'345')])])
    >>> d.size()
    5
    >>> [n.name() for n in d.it()]
    ['a', 'sub']
    >>> [n.name() for n in d]
    ['a', 'sub']
    """

    children: List[Node]

    def __init__(self, name: str, children: Iterable[Node] = ()):
        self._name = name
        self.children = list(children)

    def name(self) -> str:
        return self._name

    def size(self) -> int:
        return sum(c.size() for c in self.children)

    def it(self) -> Iterator[Node]:
        return iter(self.children)

    def __repr__(self):
        return f"MemoryDir({self._name!r}, {self.children!r})"


def tree(name: str, content: dict) -> MemoryDir:
    """
    Build `MemoryDir` out of nested dictionary, values that are
    dictionaries become directories, everything else becomes files.
    Dictionary order defines iteration order.

    >>> t = tree('root', {'a.txt': 'hello', 'sub': {'b.txt': b'xyz'}})
    >>> t
    MemoryDir('root', [BytesFile('a.txt', size=5), MemoryDir('sub', [BytesFile('b.txt', size=3)])])
    """
    children: Sequence[Node] = [
        tree(k, v) if isinstance(v, dict) else BytesFile(k, v)
        for k, v in content.items()
    ]
    return MemoryDir(name, children)
