from __future__ import annotations

import shlex
import shutil
from asyncio import Queue
from asyncio.subprocess import PIPE, STDOUT, Process, create_subprocess_exec
from datetime import timedelta
from pathlib import Path
from stat import S_IEXEC
from time import monotonic

from devpush.changes import Batch
from devpush.commands import restart_command, translate
from devpush.config import Config
from devpush.exceptions import DeploymentFailed
from devpush.messages import (
    Debug,
    ExecutionCompleted,
    ExecutionOutput,
    ExecutionStarted,
    Message,
)

OUTPUT_BUFFER_SIZE = 1 * 1024 * 1024  # 1 MiB, default is 64 KiB


def render_commands(batch: Batch, config: Config) -> list[str]:
    commands = [
        translate(
            change,
            project_root=str(config.project_path),
            target_root=config.target_root,
            bridge=config.bridge,
        )
        for change in batch.changes
    ]

    if config.auto_restart:
        commands.append(restart_command(config.app_name, config.page_link, bridge=config.bridge))

    return commands


def render_script(batch: Batch, config: Config) -> str:
    exe, *exe_args = shlex.split(config.executable)
    which_exe = shutil.which(exe)
    if which_exe is None:
        raise DeploymentFailed(batch, f"failed to find absolute path to executable for {exe}")

    return "\n".join(
        (
            f"#!{shlex.join((which_exe, *exe_args))}",
            "",
            *render_commands(batch, config),
            "",
        )
    )


def write_script(batch: Batch, config: Config, path: Path) -> Path:
    # there is only ever one script, so clear out anything a previous run left behind
    path.unlink(missing_ok=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_script(batch, config))
    path.chmod(path.stat().st_mode | S_IEXEC)

    return path


class BatchExecutor:
    def __init__(self, config: Config, events: Queue[Message], script_path: Path | None = None):
        self.config = config
        self.events = events
        self.script_path = script_path or config.script_file

    async def execute(self, batch: Batch, attempt: int = 1) -> None:
        """
        Run one batch's script to completion.

        The script file is removed on every exit path before this returns or raises;
        if it cannot be removed, that is reported and the original outcome stands.
        Raises DeploymentFailed if the script could not be written, could not be started, or exited non-zero.
        """
        try:
            try:
                path = write_script(batch, self.config, self.script_path)
            except OSError as e:
                raise DeploymentFailed(batch, f"failed to write {self.script_path}: {e}") from e

            start_time = monotonic()

            try:
                process = await create_subprocess_exec(
                    path,
                    stdout=PIPE,
                    stderr=STDOUT,
                    cwd=self.config.project_path,
                    limit=OUTPUT_BUFFER_SIZE,
                )
            except OSError as e:
                raise DeploymentFailed(batch, f"failed to start {path}: {e}") from e

            await self.events.put(ExecutionStarted(batch=batch, pid=process.pid, attempt=attempt))

            await read_output(batch=batch, process=process, events=self.events)
            exit_code = await process.wait()

            end_time = monotonic()

            await self.events.put(
                ExecutionCompleted(
                    batch=batch,
                    pid=process.pid,
                    exit_code=exit_code,
                    duration=timedelta(seconds=end_time - start_time),
                )
            )
        finally:
            try:
                self.script_path.unlink(missing_ok=True)
            except OSError as e:
                await self.events.put(Debug(text=f"Failed to remove {self.script_path}: {e}"))

        if exit_code != 0:
            raise DeploymentFailed(batch, f"script exited with code {exit_code}")


async def read_output(batch: Batch, process: Process, events: Queue[Message]) -> None:
    if process.stdout is None:  # pragma: unreachable
        raise Exception(f"{process} does not have an associated stream reader")

    while True:
        try:
            line = await process.stdout.readline()
        except ValueError:
            # Arises from a LimitOverrunError in readline(),
            # which is raised when the reader's internal buffer size is exceeded.
            await events.put(
                Debug(
                    text=f"Output buffer size exceeded for batch {batch.index}. Dropping buffer contents and continuing.",
                )
            )
            continue

        if not line:
            break

        await events.put(
            ExecutionOutput(
                batch=batch,
                text=line.decode("utf-8", errors="replace").rstrip(),
            )
        )
