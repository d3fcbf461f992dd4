"""
Directory tree on local filesystem exposed as `Node` tree, plus
listing of what was added.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Union

from dateutil.parser import parse as dt_parse

from hashdag import CodeEnum, to_json
from hashdag.cake import Cake
from hashdag.files import ensure_path
from hashdag.files.ignore_file import DEFAULT_IGNORE_POLICY, IgnoreRuleSet
from hashdag.nodes import Dir, File, Node
from hashdag.store import DagError


class FileType(CodeEnum):
    DIR = (1,)
    FILE = (2,)


class FileAccessError(DagError):
    """
    File or directory could not be read while building DAG
    """

    pass


class FileInfo(NamedTuple):
    path: Path
    size: int
    mod: datetime
    type: FileType

    @staticmethod
    def from_path(path: Path, ft: Optional[FileType] = None) -> "FileInfo":
        try:
            stat = path.stat()
            if ft is None:
                ft = FileType.DIR if path.is_dir() else FileType.FILE
        except OSError as e:
            raise FileAccessError(f"cannot stat {path}: {e}") from e
        dt = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return FileInfo(path, stat.st_size, dt, ft)


class PathFile(File):
    info: FileInfo

    def __init__(self, info: FileInfo):
        self.info = info

    def name(self) -> str:
        return self.info.path.name

    def size(self) -> int:
        return self.info.size

    def __bytes__(self) -> bytes:
        try:
            return self.info.path.read_bytes()
        except OSError as e:
            raise FileAccessError(f"cannot read {self.info.path}: {e}") from e

    def __repr__(self):
        return f"PathFile({str(self.info.path)!r})"


class PathDir(Dir):
    """
    Children are listed from disk once, on first use, filtered by
    `rules` and ordered by name. Every `it()` iterates that same list.
    Size is total size of all files underneath.
    """

    info: FileInfo
    rules: IgnoreRuleSet

    def __init__(self, info: FileInfo, rules: IgnoreRuleSet):
        self.info = info
        self.rules = rules
        self._children: Optional[List[Node]] = None
        self._size: Optional[int] = None

    def name(self) -> str:
        return self.info.path.name

    def size(self) -> int:
        if self._size is None:
            self._size = sum(c.size() for c in self.children())
        return self._size

    def children(self) -> List[Node]:
        if self._children is None:
            self._children = list(self._scan())
        return self._children

    def _scan(self) -> Iterator[Node]:
        try:
            listdir = self.rules.filter_children(self.info.path)
        except OSError as e:
            raise FileAccessError(f"cannot list {self.info.path}: {e}") from e
        for child in listdir:
            if child.is_dir():
                yield PathDir(FileInfo.from_path(child, FileType.DIR), self.rules)
            elif child.is_file():
                yield PathFile(FileInfo.from_path(child, FileType.FILE))

    def it(self) -> Iterator[Node]:
        return iter(self.children())

    def __repr__(self):
        return f"PathDir({str(self.info.path)!r})"


def path_node(
    path: Union[str, Path], rules: Optional[IgnoreRuleSet] = None
) -> Union[PathFile, PathDir]:
    path = ensure_path(path)
    info = FileInfo.from_path(path)
    if info.type == FileType.FILE:
        return PathFile(info)
    if rules is None:
        rules = DEFAULT_IGNORE_POLICY.apply(path)
    return PathDir(info, rules)


class FileExtra(NamedTuple):
    file: FileInfo
    cake: Optional[Cake]
    entries: Optional[List["FileExtra"]]

    def name(self):
        return self.file.path.name

    def __to_json__(self):
        json = {
            "name": self.name(),
            "type": self.file.type.name,
            "size": self.file.size,
            "mod": self.file.mod.isoformat(),
            "cake": to_json(self.cake),
        }
        if self.entries is not None:
            json["entries"] = [e.__to_json__() for e in self.entries]
        return json

    @staticmethod
    def from_json(
        json: Dict[str, Any], parent: Optional[Path] = None
    ) -> "FileExtra":
        name = json["name"]
        path = Path(name) if parent is None else parent / name
        file = FileInfo(
            path, json["size"], dt_parse(json["mod"]), FileType[json["type"]]
        )
        cake = None if json["cake"] is None else Cake(json["cake"])
        entries = json.get("entries")
        if entries is not None:
            entries = [FileExtra.from_json(e, parent=path) for e in entries]
        return FileExtra(file, cake, entries)


class ListingCollector:
    """
    `on_added` callback for `Builder` that assembles `FileExtra`
    tree while path nodes are added. Children are always reported
    before their directory, so entries of directory are ready by the
    time directory itself is reported.
    """

    root: Optional[FileExtra]

    def __init__(self):
        self.pending: Dict[tuple, List[FileExtra]] = {}
        self.root = None

    def __call__(self, path: tuple, node: Node, cake: Cake, kind: Any):
        info = node.info  # type: ignore
        entries = None
        if info.type == FileType.DIR:
            entries = self.pending.pop(path, [])
            info = info._replace(size=node.size())  # content, not inode
        extra = FileExtra(info, cake, entries)
        if len(path) == 1:
            self.root = extra
        else:
            self.pending.setdefault(path[:-1], []).append(extra)
