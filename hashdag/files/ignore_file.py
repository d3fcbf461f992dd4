"""
Ignore rules for directory scans, in spirit of `.gitignore`.

Pattern is glob matched against path relative to directory where
pattern was declared. Specs are plain text files with one pattern per
line, blank lines and `#` comments are skipped.
"""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Set, Union

from hashdag.files import ensure_path, read_text

log = logging.getLogger(__name__)


class PathMatch(NamedTuple):
    """
    >>> txt = PathMatch.of('a/b', '*.txt')
    >>> txt.match('a/b/c/d.txt'), txt.match('x/b/c/d.txt')
    (True, False)
    >>> PathMatch.of('a', 'b/*.txt').match('a/b/d.txt')
    True
    >>> PathMatch.of('a', 'b/*.txt').match('a/c/d.txt')
    False
    >>> sorted([PathMatch.of('a/b', '*.txt'), PathMatch.of('a', '*.log')])
    [PathMatch('a', '*.log'), PathMatch('a/b', '*.txt')]
    """

    root: Path
    pattern: str

    @classmethod
    def of(cls, root: Union[str, Path], pattern: str) -> "PathMatch":
        return cls(ensure_path(root), pattern)

    def match(self, path: Union[str, Path]) -> bool:
        path = ensure_path(path)
        return self.root in path.parents and path.relative_to(self.root).match(
            self.pattern
        )

    def covers(self, other: "PathMatch") -> bool:
        """ `other` is same pattern declared somewhere under `root` """
        return self.pattern == other.pattern and (
            self.root == other.root or self.root in other.root.parents
        )

    def __repr__(self):
        return f"PathMatch({str(self.root)!r}, {self.pattern!r})"


class PathMatchSet:
    """
    Matches are kept only if not covered by one already in the set

    >>> pms = PathMatchSet()
    >>> pms.add(PathMatch.of('a', '*.tmp')), pms.add(PathMatch.of('a/b', '*.tmp'))
    (True, False)
    >>> pms.add(PathMatch.of('x', '*.tmp'))
    True
    >>> pms.match('a/b/c.tmp'), pms.match('a/b/c.txt')
    (True, False)
    >>> len(pms)
    2
    """

    by_pattern: Dict[str, Set[PathMatch]]

    def __init__(self):
        self.by_pattern = {}

    def add(self, path_match: PathMatch) -> bool:
        same_pattern = self.by_pattern.setdefault(path_match.pattern, set())
        if any(pm.covers(path_match) for pm in same_pattern):
            return False
        same_pattern.add(path_match)
        return True

    def all_matches(self) -> Set[PathMatch]:
        return {pm for matches in self.by_pattern.values() for pm in matches}

    def match(self, path: Union[str, Path]) -> bool:
        path = ensure_path(path)
        return any(
            pm.match(path) for matches in self.by_pattern.values() for pm in matches
        )

    def __len__(self):
        return sum(map(len, self.by_pattern.values()))


class IgnoreRuleSet:
    """
    Rules for one scan rooted at `root`. Specs found while listing
    directories extend rules for that directory and everything under
    it. Symlinks are left out unless `ignore_symlinks` is off.
    """

    root: Path
    ignore_files: PathMatchSet
    spec_to_parse: PathMatchSet
    ignore_symlinks: bool

    def __init__(self, root: Union[str, Path], ignore_symlinks: bool = True):
        self.root = ensure_path(root)
        self.ignore_files = PathMatchSet()
        self.spec_to_parse = PathMatchSet()
        self.ignore_symlinks = ignore_symlinks

    def _rooted(self, pm: Union[str, PathMatch]) -> PathMatch:
        if isinstance(pm, str):
            return PathMatch.of(self.root, pm)
        assert pm.root == self.root or self.root in pm.root.parents
        return pm

    def update_ignore_files(self, *patterns: Union[str, PathMatch]) -> int:
        """ Returns number of patterns that were new """
        return sum(self.ignore_files.add(self._rooted(p)) for p in patterns)

    def update_spec_to_parse(self, *names: Union[str, PathMatch]) -> int:
        return sum(self.spec_to_parse.add(self._rooted(n)) for n in names)

    def parse_spec(self, path: Path, text: str):
        for line in map(str.strip, text.splitlines()):
            if line and not line.startswith("#"):
                self.ignore_files.add(PathMatch(path.parent, line))
        log.debug("parsed ignore spec: %s", path)

    def parse_specs(self, listdir: Iterable[Path]) -> int:
        specs = [p for p in listdir if self.spec_to_parse.match(p)]
        for spec in specs:
            read_text(spec, self.parse_spec)
        return len(specs)

    def path_filter(self, path: Path) -> bool:
        if self.ignore_symlinks and path.is_symlink():
            return False
        return not self.ignore_files.match(path)

    def filter_children(self, dir: Path) -> List[Path]:
        """
        Returns:
            children of `dir` that are not ignored, sorted by name
        """
        listdir = sorted(dir.iterdir(), key=lambda p: p.name)
        self.parse_specs(listdir)
        return [p for p in listdir if self.path_filter(p)]


class IgnoreFilePolicy(NamedTuple):
    ignore_files: tuple = ()
    spec_to_parse: tuple = ()

    def apply(
        self, root: Union[str, Path], ignore_symlinks: bool = True
    ) -> IgnoreRuleSet:
        rules = IgnoreRuleSet(root, ignore_symlinks)
        rules.update_ignore_files(*self.ignore_files)
        rules.update_spec_to_parse(*self.spec_to_parse)
        return rules


INCLUSIVE_POLICY = IgnoreFilePolicy()

DEFAULT_IGNORE_POLICY = IgnoreFilePolicy(
    ignore_files=(
        ".git",
        ".hg",
        ".svn",
        "__pycache__",
        ".DS_Store",
        "._*",
        ".Spotlight*",
        ".Trash*",
    ),
    spec_to_parse=(".gitignore", ".ignore"),
)
