from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devpush.changes import Batch


class DevpushError(Exception):
    pass


class DeploymentFailed(DevpushError):
    """Raised when a batch's script exits non-zero or cannot be started at all."""

    def __init__(self, batch: Batch, reason: str):
        super().__init__(f"Batch {batch.index} failed: {reason}")
        self.batch = batch
        self.reason = reason


class ConfirmationUnavailable(DevpushError):
    pass


class ManifestError(DevpushError):
    pass
