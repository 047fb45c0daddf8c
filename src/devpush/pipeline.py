from __future__ import annotations

from asyncio import Queue, Task, create_task, gather, sleep
from collections.abc import Coroutine
from typing import Any

from rich.console import Console

from devpush.aggregator import ChangeAggregator
from devpush.changes import Batch, ChangeEvent
from devpush.config import Config
from devpush.execution import BatchExecutor
from devpush.messages import BatchFinished, BatchSkipped, Debug, Message, Outcome
from devpush.renderer import Renderer
from devpush.retry import Confirm, Execute, RetryCoordinator, TerminalConfirm
from devpush.startup import Compiler, initialize
from devpush.watcher import watch


class Pipeline:
    def __init__(
        self,
        config: Config,
        console: Console,
        confirm: Confirm | None = None,
        execute: Execute | None = None,
    ):
        self.config = config
        self.console = console

        self.renderer = Renderer(console=console)

        self.inbox: Queue[Message] = Queue()
        self.changes: Queue[ChangeEvent] = Queue()
        self.batches: Queue[Batch] = Queue()

        self.aggregator = ChangeAggregator(
            window=config.quiet_window,
            changes=self.changes,
            batches=self.batches,
        )
        self.executor = BatchExecutor(config=config, events=self.inbox)
        self.prompt = confirm or TerminalConfirm(console=console)
        self.coordinator = RetryCoordinator(
            execute=execute or self.executor.execute,
            confirm=self.confirm,
            events=self.inbox,
        )

        self.tasks: list[Task[Any]] = []
        self.compiler: Compiler | None = None

    async def run(self) -> None:
        try:
            self.start_background_task(self.handle_messages(), name="Render messages")

            if self.config.initialize:
                self.start_background_task(initialize(self.config, self.inbox), name="Initialize device")

            if self.config.watch_ts:
                await self.start_compiler()

            self.start_watcher()
            self.start_background_task(self.aggregator.run(), name="Aggregate changes")

            await self.deploy_batches()
        finally:
            for task in self.tasks:
                task.cancel()

            if self.compiler is not None:
                self.compiler.terminate()
                await gather(self.compiler.wait(), return_exceptions=True)

            await gather(*self.tasks, return_exceptions=True)

            # drain whatever was reported during shutdown
            while not self.inbox.empty():
                self.renderer.handle_message(self.inbox.get_nowait())

    def start_background_task(self, coro: Coroutine[Any, Any, object], name: str) -> None:
        self.tasks.append(create_task(coro, name=name))

    def start_watcher(self) -> None:
        paths = [p for p in self.config.watched_paths if p.exists()]
        missing = [p for p in self.config.watched_paths if not p.exists()]

        for path in missing:
            self.inbox.put_nowait(Debug(text=f"Not watching {path}, it does not exist"))

        if not paths:
            return

        self.inbox.put_nowait(Debug(text=f"Watching: {', '.join(map(str, paths))}"))

        self.start_background_task(
            watch(
                paths=paths,
                project_root=self.config.project_path,
                changes=self.changes,
                events=self.inbox,
            ),
            name="Watch source paths",
        )

    async def deploy_batches(self) -> None:
        """Deploy batches one at a time, in the order they were closed."""
        while True:
            batch = await self.batches.get()

            if self.config.skip_first_update and batch.index == 1:
                await self.inbox.put(BatchSkipped(batch=batch))
                continue

            outcome = await self.coordinator.deploy(batch)

            await self.inbox.put(BatchFinished(batch=batch, outcome=outcome))

            if outcome is Outcome.Success and self.config.cooldown > 0:
                await sleep(self.config.cooldown)

    async def handle_messages(self) -> None:
        while True:
            message = await self.inbox.get()
            try:
                self.renderer.handle_message(message)
            finally:
                self.inbox.task_done()

    async def confirm(self, question: str) -> bool:
        # let the failure report reach the terminal before asking about it
        await self.inbox.join()
        return await self.prompt(question)

    async def start_compiler(self) -> None:
        try:
            self.compiler = await Compiler.start(config=self.config, events=self.inbox)
        except (OSError, ValueError) as e:
            await self.inbox.put(Debug(text=f"Failed to start the compiler in watch mode: {e}"))
