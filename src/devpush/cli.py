from __future__ import annotations

import asyncio
from pathlib import Path
from time import monotonic
from typing import Optional

import typer.rich_utils as ru
from click.exceptions import Exit
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.style import Style
from rich.text import Text
from typer import Option, Typer

from devpush.config import Config
from devpush.exceptions import ConfirmationUnavailable, ManifestError
from devpush.pipeline import Pipeline

ru.STYLE_HELPTEXT = ""

cli = Typer(pretty_exceptions_enable=False)


@cli.command()
def run(
    project_path: Optional[Path] = Option(
        default=None,
        help="Absolute or relative path to the local project. [default: the current directory]",
    ),
    config: Optional[Path] = Option(
        default=None,
        exists=True,
        readable=True,
        envvar="DEVPUSH_CONFIG",
        help="The path to a YAML configuration file. By default, devpush.yaml is looked up from the current directory.",
    ),
    app_name: Optional[str] = Option(
        default=None,
        help="The application name on the device. Defaults to domain.name from manifest.json.",
    ),
    page_link: Optional[str] = Option(
        default=None,
        help="The page to open after a restart. Defaults to pages[0].uri from manifest.json.",
    ),
    source_path: Optional[str] = Option(
        default=None,
        help="Comma-separated project-relative directories to watch and push. [default: /src,/res]",
    ),
    update_delay: Optional[int] = Option(
        default=None,
        min=0,
        help="Milliseconds without changes before the collected changes are pushed. [default: 5000]",
    ),
    delay_after_update: Optional[int] = Option(
        default=None,
        min=0,
        help="Milliseconds to pause after a successful push. [default: 5000]",
    ),
    auto_restart: Optional[bool] = Option(
        default=None,
        help="Restart the application on the device after every push. [default: auto-restart]",
    ),
    skip_first_update: Optional[bool] = Option(
        default=None,
        help="Discard the first batch of changes, usually produced by the initial compile. [default: no-skip-first-update]",
    ),
    manual_update: Optional[bool] = Option(
        default=None,
        help="Never close a batch on a timer. [default: no-manual-update]",
    ),
    watch_ts: Optional[bool] = Option(
        default=None,
        help="Run the TypeScript compiler in watch mode. [default: watch-ts]",
    ),
    tsc_file_path: Optional[str] = Option(
        default=None,
        help="Absolute path to the compiler's tsc.js.",
    ),
    tsc_watch_exclude_directories: Optional[str] = Option(
        default=None,
        help="Comma-separated directories the compiler's watcher should ignore.",
    ),
    initialize: Optional[bool] = Option(
        default=None,
        help="Reset log preferences and clear compiled caches on the device at startup. [default: initialize]",
    ),
    dry: bool = Option(
        default=False,
        help="If enabled, print the resolved configuration and do not start watching.",
    ),
) -> None:
    start_time = monotonic()

    console = Console()

    config = config or find_config_file()

    try:
        parsed_config = Config.load(
            project_path=Path("."),
            file=config,
            overrides={
                "project_path": project_path,
                "app_name": app_name,
                "page_link": page_link,
                "source_paths": source_path,
                "update_delay": update_delay,
                "delay_after_update": delay_after_update,
                "auto_restart": auto_restart,
                "skip_first_update": skip_first_update,
                "manual_update": manual_update,
                "watch_ts": watch_ts,
                "tsc_file_path": tsc_file_path,
                "tsc_watch_exclude_directories": tsc_watch_exclude_directories,
                "initialize": initialize,
            },
        )
    except ValidationError as e:
        for err in e.errors():
            loc = ".".join(map(str, err["loc"]))
            msg = err["msg"]
            console.print(f"[red]ERROR[/red] {loc} -> {msg}")
        raise Exit(code=1)
    except ManifestError as e:
        console.print(Text(str(e), style=Style(color="red")))
        raise Exit(code=1)

    console.print(
        Panel(
            JSON(parsed_config.model_dump_json()),
            title="Configuration",
            title_align="left",
        )
    )

    if dry:
        return

    pipeline = Pipeline(config=parsed_config, console=console)

    try:
        asyncio.run(pipeline.run())
    except KeyboardInterrupt:
        raise Exit(code=0)
    except ConfirmationUnavailable as e:
        console.print(Text(str(e), style=Style(color="red")))
        raise Exit(code=1)
    finally:
        end_time = monotonic()

        console.print(Text(f"Finished in {end_time - start_time:.3f} seconds."))


def find_config_file() -> Path | None:
    cwd = Path.cwd()
    for dir in (cwd, *cwd.parents):
        contents = set(dir.iterdir())
        for name in ("devpush.yaml", "devpush.yml"):
            if (path := dir / name) in contents:
                return path

        if dir / ".git" in contents:
            break

    return None
