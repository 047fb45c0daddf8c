from __future__ import annotations

from asyncio import AbstractEventLoop, Future, Queue, get_running_loop
from itertools import count
from threading import Thread
from typing import Awaitable, Callable, Protocol

from rich.console import Console

from devpush.changes import Batch
from devpush.exceptions import ConfirmationUnavailable, DeploymentFailed
from devpush.messages import ExecutionFailed, Message, Outcome

RETRY_QUESTION = "Update failed, retry? (Y/N)"

Execute = Callable[[Batch, int], Awaitable[None]]


class Confirm(Protocol):
    async def __call__(self, question: str) -> bool: ...


def is_affirmative(answer: str) -> bool:
    return answer.strip().lower() == "y"


class TerminalConfirm:
    """
    Asks on the console and waits for one line of input.

    The blocking read happens on a daemon thread, so an unanswered prompt
    never holds up interpreter shutdown (e.g. after Ctrl+C).
    """

    def __init__(self, console: Console):
        self.console = console

    async def __call__(self, question: str) -> bool:
        loop = get_running_loop()
        answer: Future[str] = loop.create_future()

        Thread(
            target=self.read_answer,
            args=(question, loop, answer),
            name="Read retry answer",
            daemon=True,
        ).start()

        try:
            return is_affirmative(await answer)
        except EOFError as e:
            raise ConfirmationUnavailable("Standard input closed while waiting for an answer") from e

    def read_answer(self, question: str, loop: AbstractEventLoop, answer: Future[str]) -> None:
        try:
            line = self.console.input(question)
        except Exception as e:
            settlement: tuple[str, Exception | None] = ("", e)
        else:
            settlement = (line, None)

        # the loop may already be gone if the prompt was abandoned
        if not loop.is_closed():
            loop.call_soon_threadsafe(settle, answer, *settlement)


def settle(answer: Future[str], line: str, error: Exception | None) -> None:
    if answer.done():
        return

    if error is not None:
        answer.set_exception(error)
    else:
        answer.set_result(line)


class RetryCoordinator:
    """
    Deploys a batch, asking the operator whether to try again each time it fails.

    There is no cap on the number of attempts and no backoff:
    the batch is retried for as long as the operator keeps answering yes.
    """

    def __init__(self, execute: Execute, confirm: Confirm, events: Queue[Message]):
        self.execute = execute
        self.confirm = confirm
        self.events = events

    async def deploy(self, batch: Batch) -> Outcome:
        for attempt in count(1):
            try:
                await self.execute(batch, attempt)
            except DeploymentFailed as e:
                await self.events.put(ExecutionFailed(batch=batch, attempt=attempt, reason=e.reason))

                if not await self.confirm(RETRY_QUESTION):
                    return Outcome.Failed
            else:
                return Outcome.Success

        raise Exception("unreachable")  # pragma: unreachable
