"""Directory listing for pod source folders."""
import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass(frozen=True)
class DirEntry:
    """A file or directory found under a listing base."""
    full_path: str
    path_from_base: str
    name: str


@dataclass
class DirListing:
    """Result of listing a directory."""
    files: List[DirEntry] = field(default_factory=list)
    dirs: List[DirEntry] = field(default_factory=list)


class DirectoryLister:
    """
    Lists files and subdirectories below a base directory.

    Implements IDirectoryLister protocol. Entries are sorted by their path
    from the base so listings are stable between runs. ``path_from_base``
    always uses forward slashes.
    """

    @staticmethod
    def list_sync(path: str, recursive: bool) -> DirListing:
        base = Path(path)
        items = base.rglob("*") if recursive else base.iterdir()
        listing = DirListing()
        for item in sorted(items, key=lambda p: p.relative_to(base).as_posix()):
            entry = DirEntry(
                full_path=str(item),
                path_from_base=item.relative_to(base).as_posix(),
                name=item.name,
            )
            if item.is_dir():
                listing.dirs.append(entry)
            elif item.is_file():
                listing.files.append(entry)
        return listing

    async def list(self, path: str, recursive: bool) -> DirListing:
        return await asyncio.to_thread(self.list_sync, path, recursive)
