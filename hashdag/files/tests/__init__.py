from pathlib import Path
from typing import Union

from hs_build_tools import ensure_dir

from hashdag.tests import BytesGen


def seed_file(dir: Path, seed, sz):
    ensure_dir(str(dir))
    file = dir / f"{seed}_{sz}.dat"
    if not file.exists():
        bg = BytesGen(seed)
        with file.open("wb") as f:
            f.write(bg.get_bytes(sz))
    return file


def dump_file(file: Path, content: Union[str, bytes]):
    ensure_dir(str(file.parent))
    if isinstance(content, str):
        content = content.encode("utf-8")
    with file.open("wb") as f:
        f.write(content)
    return file
