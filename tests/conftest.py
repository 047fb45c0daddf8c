from __future__ import annotations

import os
from asyncio import Queue, sleep
from collections.abc import Callable
from io import StringIO
from pathlib import Path
from typing import TypeVar

import pytest
from rich.console import Console

from devpush.config import Config
from devpush.retry import is_affirmative

T = TypeVar("T")

MakeConfig = Callable[..., Config]


@pytest.fixture
def make_config(tmp_path: Path) -> MakeConfig:
    def make(**overrides: object) -> Config:
        return Config.model_validate(
            {
                "project_path": tmp_path,
                "app_name": "x",
                "page_link": "x/pages/index",
                "update_delay": 100,
                "delay_after_update": 0,
                "watch_ts": False,
                "initialize": False,
                "script_path": tmp_path / "update.sh",
            }
            | overrides
        )

    return make


@pytest.fixture
def config(make_config: MakeConfig) -> Config:
    return make_config()


@pytest.fixture
def console() -> Console:
    return Console(file=StringIO(), width=200)


@pytest.fixture
def stand_in_node(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A `node` on PATH that reports what it was asked to compile, then idles like a watcher."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    node = bin_dir / "node"
    node.write_text('#!/bin/sh\necho "compiling $1 -p $5"\nexec sleep 60\n')
    node.chmod(0o755)

    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ['PATH']}")

    return node


class ScriptedConfirm:
    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.questions: list[str] = []

    async def __call__(self, question: str) -> bool:
        self.questions.append(question)
        return is_affirmative(self.answers.pop(0))


def drain(queue: Queue[T]) -> list[T]:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


async def eventually(predicate: Callable[[], bool], timeout: float = 5) -> None:
    waited = 0.0
    while not predicate():
        if waited > timeout:
            raise AssertionError("condition was not met in time")
        await sleep(0.01)
        waited += 0.01
