from __future__ import annotations

from asyncio import Queue
from collections.abc import Iterable
from pathlib import Path

from watchfiles import Change, awatch

from devpush.changes import ChangeEvent, ChangeKind
from devpush.messages import ChangeDetected, Message


class DirectoryIndex:
    """
    Remembers which watched paths are directories.

    watchfiles reports deletions without saying whether the path was a file or a directory,
    and by the time we hear about it the path is gone, so directories are tracked as they appear.
    """

    def __init__(self, directories: Iterable[str] = ()):
        self.directories = set(directories)

    @classmethod
    def scan(cls, roots: Iterable[Path]) -> DirectoryIndex:
        directories = set()
        for root in roots:
            if root.is_dir():
                directories.add(str(root))
                directories.update(str(p) for p in root.rglob("*") if p.is_dir())

        return cls(directories)

    def classify(self, change: Change, path: str) -> ChangeEvent | None:
        match change:
            case Change.added:
                if Path(path).is_dir():
                    self.directories.add(path)
                    return ChangeEvent(kind=ChangeKind.AddDir, path=path)
                return ChangeEvent(kind=ChangeKind.Add, path=path)
            case Change.modified:
                # directory mtime bumps carry nothing to push
                if Path(path).is_dir():
                    return None
                return ChangeEvent(kind=ChangeKind.Change, path=path)
            case Change.deleted:
                if path in self.directories:
                    self.forget(path)
                    return ChangeEvent(kind=ChangeKind.UnlinkDir, path=path)
                return ChangeEvent(kind=ChangeKind.Unlink, path=path)
            case _:
                return ChangeEvent(kind=ChangeKind.Unknown, path=path)

    def forget(self, path: str) -> None:
        prefix = path.rstrip("/") + "/"
        self.directories = {d for d in self.directories if d != path and not d.startswith(prefix)}


def is_under(path: str, root: Path) -> bool:
    return Path(path).is_relative_to(root)


async def watch(
    paths: Iterable[Path],
    project_root: Path,
    changes: Queue[ChangeEvent],
    events: Queue[Message],
) -> None:
    paths = tuple(paths)
    index = DirectoryIndex.scan(paths)

    async for raw in awatch(*paths):
        # sorting by path puts a new directory ahead of the files created inside it
        for change, path in sorted(raw, key=lambda item: item[1]):
            if not is_under(path, project_root):
                continue

            event = index.classify(change, path)
            if event is None:
                continue

            await events.put(ChangeDetected(change=event))
            await changes.put(event)
