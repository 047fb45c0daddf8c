from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text
from typing_extensions import assert_never

from devpush.changes import ChangeKind
from devpush.messages import (
    BatchFinished,
    BatchSkipped,
    ChangeDetected,
    CompilerOutput,
    Debug,
    ExecutionCompleted,
    ExecutionFailed,
    ExecutionOutput,
    ExecutionStarted,
    Message,
    Outcome,
    StartupStep,
)

prefix_format = "{timestamp:%H:%M:%S} {source}  "

CHANGE_TO_STYLE = {
    ChangeKind.Add: Style(color="green"),
    ChangeKind.AddDir: Style(color="green"),
    ChangeKind.Change: Style(color="yellow"),
    ChangeKind.Unlink: Style(color="red"),
    ChangeKind.UnlinkDir: Style(color="red"),
    ChangeKind.Unknown: Style(dim=True),
}
OUTCOME_TO_STYLE = {
    Outcome.Success: Style(color="green"),
    Outcome.Failed: Style(color="red"),
}

BatchLifecycleMessage = ExecutionStarted | ExecutionCompleted | ExecutionFailed | BatchSkipped | BatchFinished


class Renderer:
    def __init__(self, console: Console):
        self.console = console

        self.prefix_width = len(prefix_format.format_map({"timestamp": datetime.now(), "source": "batch 000"}))

    def handle_message(self, message: Message) -> None:
        match message:
            case ChangeDetected() as msg:
                self.handle_change_message(msg)

            case ExecutionOutput() as msg:
                self.print(msg, f"batch {msg.batch.index}", Text.from_ansi(msg.text))

            case ExecutionStarted() | ExecutionCompleted() | ExecutionFailed() | BatchSkipped() | BatchFinished() as msg:
                self.handle_lifecycle_message(msg)

            case StartupStep() as msg:
                self.handle_startup_message(msg)

            case CompilerOutput() as msg:
                self.print(msg, "tsc", Text.from_ansi(msg.text))

            case Debug() as msg:
                self.print(
                    msg,
                    "devpush",
                    Text(msg.text, style=Style(dim=True)),
                    prefix_style=Style(color="red", dim=True),
                )

    def handle_change_message(self, message: ChangeDetected) -> None:
        change = message.change

        body = Text.assemble(
            (change.kind.value, CHANGE_TO_STYLE[change.kind]),
            " ",
            change.path,
        )
        if change.kind is ChangeKind.Unknown:
            body.append(" (passed through as a no-op)", style=Style(dim=True))

        self.print(message, "watch", body)

    def handle_lifecycle_message(self, message: BatchLifecycleMessage) -> None:
        parts: tuple[str | tuple[str, str] | tuple[str, Style] | Text, ...]

        match message:
            case ExecutionStarted(batch=batch, pid=pid, attempt=attempt):
                parts = (
                    f"Updating {len(batch.changes)} change(s) (pid {pid}",
                    f", attempt {attempt})" if attempt > 1 else ")",
                )
            case ExecutionCompleted(pid=pid, exit_code=exit_code, duration=duration):
                parts = (
                    f"Update (pid {pid}) exited with code ",
                    (str(exit_code), "green" if exit_code == 0 else "red"),
                    f" in {duration.total_seconds() :.3f} seconds",
                )
            case ExecutionFailed(attempt=attempt, reason=reason):
                parts = (
                    (f"Attempt {attempt} failed: ", "red"),
                    reason,
                )
            case BatchSkipped(batch=batch):
                parts = (f"Skipped the first update ({len(batch.changes)} change(s))",)
            case BatchFinished(outcome=outcome):
                parts = (
                    "Finished: ",
                    (outcome.value, OUTCOME_TO_STYLE[outcome]),
                )
            case _:
                assert_never(message)

        body = Text.assemble(
            *parts,
            style=Style(dim=not isinstance(message, BatchFinished)),
        )

        self.print(message, f"batch {message.batch.index}", body)

    def handle_startup_message(self, message: StartupStep) -> None:
        if message.exit_code == 0:
            body = Text(message.success, style=Style(color="green"))
        else:
            body = Text.assemble(
                message.description,
                ": ",
                (f"failed with code {message.exit_code}", "red"),
            )
            if message.output:
                body.append(f"\n{message.output}", style=Style(dim=True))

        self.print(message, "startup", body)

    def print(self, message: Message, source: str, body: Text, prefix_style: Style | None = None) -> None:
        prefix = Text(
            prefix_format.format_map({"timestamp": message.timestamp, "source": source}).ljust(self.prefix_width),
            style=prefix_style or Style(dim=True),
        )

        g = Table.grid()
        g.add_row(prefix, body)

        self.console.print(g)
