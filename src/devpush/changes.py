from __future__ import annotations

from enum import Enum

from devpush.model import Model


class ChangeKind(Enum):
    Add = "add"
    AddDir = "addDir"
    Change = "change"
    Unlink = "unlink"
    UnlinkDir = "unlinkDir"
    Unknown = "unknown"


class ChangeEvent(Model):
    kind: ChangeKind
    path: str


class Batch(Model):
    index: int
    changes: tuple[ChangeEvent, ...] = ()
