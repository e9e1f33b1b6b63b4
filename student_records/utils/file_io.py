import asyncio
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


def _read(path: Path) -> str:
    # utf-8-sig drops the BOM spreadsheet tools put in front of CSV exports
    return path.read_text(encoding="utf-8-sig")


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")


async def read_text(path: PathLike) -> str:
    """Read a whole text file without blocking the event loop"""
    return await asyncio.to_thread(_read, Path(path))


async def write_text(path: PathLike, content: str) -> Path:
    """Write a whole text file (parent directories are created) and return its path"""
    target = Path(path)
    await asyncio.to_thread(_write, target, content)
    return target
