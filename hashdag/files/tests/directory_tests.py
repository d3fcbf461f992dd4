from pathlib import Path

import pytest
from hs_build_tools import LogTestOut

from hashdag import json_decode, json_encode, to_json
from hashdag.builder import Builder, DagConfig, add
from hashdag.cake import Cake
from hashdag.dag import DagObject
from hashdag.files.directory import (
    FileAccessError,
    FileExtra,
    FileInfo,
    FileType,
    ListingCollector,
    PathDir,
    PathFile,
    path_node,
)
from hashdag.files.ignore_file import DEFAULT_IGNORE_POLICY
from hashdag.files.tests import dump_file, seed_file
from hashdag.nodes import tree
from hashdag.store import DagError, MemoryStore

log, out = LogTestOut.get(__name__)

scan_dir = Path(out.child_dir("scanning"))


def populate():
    a_b_1_5 = seed_file(scan_dir / "a" / "b", 1, 5)
    seed_file(scan_dir / "x" / "f" / "b", 1, 5)
    seed_file(scan_dir / "c" / "b", 2, 7)
    seed_file(scan_dir / "c" / "b", 1, 5)
    dump_file(scan_dir / ".git" / "HEAD", "ref: refs/heads/master\n")
    link = scan_dir / "b"
    if not link.is_symlink():
        link.symlink_to(scan_dir / "a")
    return a_b_1_5


def test_path_file():
    file = populate()
    node = path_node(file)
    assert isinstance(node, PathFile)
    assert node.name() == "1_5.dat"
    assert node.size() == 5
    assert bytes(node) == file.read_bytes()
    assert node.info.type == FileType.FILE


@pytest.mark.parametrize("ignore_symlinks", [True, False])
def test_path_dir(ignore_symlinks: bool):
    populate()
    rules = DEFAULT_IGNORE_POLICY.apply(scan_dir, ignore_symlinks)
    root = path_node(scan_dir, rules)
    assert isinstance(root, PathDir)
    first_level = ["a", "c", "x"]
    if not ignore_symlinks:
        first_level.insert(1, "b")
    assert [n.name() for n in root.it()] == first_level
    assert [n.name() for n in root] == first_level
    assert root.size() == (22 if ignore_symlinks else 27)


def test_same_as_memory_tree():
    populate()
    rules = DEFAULT_IGNORE_POLICY.apply(scan_dir)
    on_disk = add(MemoryStore(), path_node(scan_dir, rules), config=DagConfig(block_size=4))

    def content(*parts):
        return (scan_dir.joinpath(*parts)).read_bytes()

    in_memory = tree(
        "scanning",
        {
            "a": {"b": {"1_5.dat": content("a", "b", "1_5.dat")}},
            "c": {
                "b": {
                    "1_5.dat": content("c", "b", "1_5.dat"),
                    "2_7.dat": content("c", "b", "2_7.dat"),
                }
            },
            "x": {"f": {"b": {"1_5.dat": content("x", "f", "b", "1_5.dat")}}},
        },
    )
    assert on_disk == add(MemoryStore(), in_memory, config=DagConfig(block_size=4))


def test_listing():
    populate()
    rules = DEFAULT_IGNORE_POLICY.apply(scan_dir)
    collector = ListingCollector()
    store = MemoryStore()
    cake = Builder(store, on_added=collector).add(path_node(scan_dir, rules))
    entry = collector.root
    assert entry.name() == "scanning"
    assert entry.cake == cake
    assert entry.file.type == FileType.DIR
    assert [e.name() for e in entry.entries] == ["a", "c", "x"]
    c_b = entry.entries[1].entries[0]
    assert [e.name() for e in c_b.entries] == ["1_5.dat", "2_7.dat"]
    assert c_b.entries[0].entries is None
    assert c_b.entries[0].cake == entry.entries[0].entries[0].entries[0].cake
    for e in c_b.entries:
        assert e.cake in store

    json = json_encode(to_json(entry))
    fe = FileExtra.from_json(json_decode(json))
    assert fe.cake == cake
    assert [x.name() for x in fe.entries] == ["a", "c", "x"]
    assert fe.entries[1].entries[0].entries[1].file.path == Path(
        "scanning/c/b/2_7.dat"
    )
    assert fe.entries[1].entries[0].entries[1].file.mod == c_b.entries[1].file.mod
    assert json_encode(to_json(fe)) == json


def test_file_extra_json():
    info = FileInfo(Path("d/f.txt"), 3, FileInfo.from_path(scan_dir).mod, FileType.FILE)
    extra = FileExtra(info, Cake(b"\x05"), None)
    json = to_json(extra)
    assert json["cake"] == "5"
    assert json["type"] == "FILE"
    assert "entries" not in json
    back = FileExtra.from_json(json, parent=Path("d"))
    assert back.file == FileInfo(Path("d/f.txt"), 3, info.mod, FileType.FILE)
    assert back.cake == extra.cake


def test_listing_sizes_match_links():
    populate()
    root = path_node(scan_dir, DEFAULT_IGNORE_POLICY.apply(scan_dir))
    collector = ListingCollector()
    store = MemoryStore()
    Builder(store, on_added=collector).add(root)
    assert collector.root.file.size == root.size() == 22

    def check(entry):
        links = DagObject.from_bytes(store[entry.cake]).links
        assert {l.name: l.size for l in links} == {
            e.name(): e.file.size for e in entry.entries
        }
        for e in entry.entries:
            if e.entries is not None:
                check(e)

    check(collector.root)
    assert collector.root.entries[1].file.size == 12


def test_dir_listed_once_per_add():
    chain = Path(out.child_dir("chain"))
    seed_file(chain / "a" / "b" / "c" / "d", 3, 9)
    seed_file(chain / "a", 4, 2)
    rules = DEFAULT_IGNORE_POLICY.apply(chain)
    listed = []
    filter_children = rules.filter_children

    def counting(dir):
        listed.append(dir)
        return filter_children(dir)

    rules.filter_children = counting  # type: ignore
    collector = ListingCollector()
    Builder(MemoryStore(), on_added=collector).add(path_node(chain, rules))
    assert sorted(listed) == sorted(
        [chain, chain / "a", chain / "a/b", chain / "a/b/c", chain / "a/b/c/d"]
    )
    assert collector.root.file.size == 11


def test_unreadable_file():
    gone = dump_file(Path(out.child_dir("gone")) / "f.txt", "soon gone")
    node = path_node(gone)
    gone.unlink()
    with pytest.raises(FileAccessError, match="cannot read") as e:
        bytes(node)
    assert isinstance(e.value.__cause__, OSError)
    with pytest.raises(DagError, match="cannot stat"):
        path_node(gone)
    with pytest.raises(DagError):
        add(MemoryStore(), node)


def test_vanished_dir():
    vanishing = Path(out.child_dir("vanishing"))
    dump_file(vanishing / "sub" / "f.txt", "x")
    root = path_node(vanishing, DEFAULT_IGNORE_POLICY.apply(vanishing))
    assert [n.name() for n in root.it()] == ["sub"]
    (vanishing / "sub" / "f.txt").unlink()
    (vanishing / "sub").rmdir()
    with pytest.raises(FileAccessError, match="cannot list") as e:
        add(MemoryStore(), root)
    assert isinstance(e.value.__cause__, OSError)
