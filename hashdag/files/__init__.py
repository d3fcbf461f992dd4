from pathlib import Path
from typing import Any, Callable


def ensure_path(path: Any) -> Path:
    if isinstance(path, Path):
        return path
    return Path(path)


def read_text(path: Path, process: Callable[[Path, str], None]):
    with path.open("rt") as fp:
        process(path, fp.read())
