from __future__ import annotations

import json
import os
import shlex
from asyncio import Queue, Task, create_task, gather
from asyncio.subprocess import PIPE, STDOUT, Process, create_subprocess_exec, create_subprocess_shell
from dataclasses import dataclass
from pathlib import Path
from signal import SIGTERM

from devpush.commands import clear_compiled_command, log_preferences_command
from devpush.config import Config
from devpush.execution import OUTPUT_BUFFER_SIZE
from devpush.messages import CompilerOutput, Debug, Message, StartupStep

WATCH_OPTIONS: dict[str, object] = {
    "watchFile": "useFsEvents",
    "watchDirectory": "useFsEvents",
    "fallbackPolling": "dynamicPriority",
    "synchronousWatchDirectory": True,
}


async def run_step(description: str, success: str, command: str, events: Queue[Message]) -> int:
    process = await create_subprocess_shell(command, stdout=PIPE, stderr=STDOUT)
    stdout, _ = await process.communicate()
    exit_code = process.returncode if process.returncode is not None else -1

    await events.put(
        StartupStep(
            description=description,
            success=success,
            exit_code=exit_code,
            output=stdout.decode("utf-8", errors="replace").strip(),
        )
    )

    return exit_code


async def initialize(config: Config, events: Queue[Message]) -> list[int]:
    """Run the one-shot device preparation commands concurrently."""
    return list(
        await gather(
            run_step(
                "Initialize log preferences",
                "Log preference initialized!",
                log_preferences_command(bridge=config.bridge),
                events,
            ),
            run_step(
                "Clear compiled jso files",
                "Jso files cleared!",
                clear_compiled_command(config.target_root, config.app_name, bridge=config.bridge),
                events,
            ),
        )
    )


def write_watch_tsconfig(config: Config) -> Path:
    tsconfig = json.loads((config.project_path / "tsconfig.json").read_text())
    tsconfig["watchOptions"] = WATCH_OPTIONS | {
        "excludeDirectories": list(config.tsc_watch_exclude_directories),
        "excludeFiles": [],
    }

    path = config.project_path / "newTsconfig.json"
    path.write_text(json.dumps(tsconfig, indent="\t"))

    return path


def compiler_command(config: Config, tsconfig: Path) -> tuple[str, ...]:
    return ("node", config.tsc_file_path, "-ta", "--sourcemap", "-p", str(tsconfig), "--watch")


@dataclass(frozen=True)
class Compiler:
    process: Process
    reader: Task[None]

    @classmethod
    async def start(cls, config: Config, events: Queue[Message]) -> Compiler:
        tsconfig = write_watch_tsconfig(config)
        command = compiler_command(config, tsconfig)

        process = await create_subprocess_exec(
            *command,
            stdout=PIPE,
            stderr=STDOUT,
            cwd=config.project_path,
            limit=OUTPUT_BUFFER_SIZE,
            preexec_fn=os.setsid,
        )

        await events.put(Debug(text=f"Started compiler (pid {process.pid}): {shlex.join(command)}"))

        return cls(
            process=process,
            reader=create_task(read_compiler_output(process, events), name="Read compiler output"),
        )

    @property
    def has_exited(self) -> bool:
        return self.process.returncode is not None

    def terminate(self) -> None:
        if self.has_exited:
            return None

        try:
            os.killpg(os.getpgid(self.process.pid), SIGTERM)
        except ProcessLookupError:
            # process exited before we could send the signal
            pass

    async def wait(self) -> int:
        exit_code = await self.process.wait()
        await self.reader
        return exit_code


async def read_compiler_output(process: Process, events: Queue[Message]) -> None:
    if process.stdout is None:  # pragma: unreachable
        raise Exception(f"{process} does not have an associated stream reader")

    async for line in process.stdout:
        await events.put(CompilerOutput(text=line.decode("utf-8", errors="replace").rstrip()))
