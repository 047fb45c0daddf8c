from __future__ import annotations

import json
import shlex
from collections.abc import Mapping
from pathlib import Path
from tempfile import gettempdir
from typing import Annotated, ClassVar, Optional

from identify.identify import tags_from_path
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from devpush.commands import DEFAULT_BRIDGE
from devpush.exceptions import ManifestError
from devpush.model import Model

Milliseconds = Annotated[int, Field(ge=0)]


def split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(",") if v.strip())
    return tuple(value)


class Config(Model):
    project_path: Annotated[
        Path,
        Field(description="Absolute path to the local project."),
    ]
    app_name: Annotated[
        str,
        Field(
            min_length=1,
            description="The application name on the device. Defaults to domain.name from manifest.json.",
        ),
    ]
    page_link: Annotated[
        str,
        Field(
            min_length=1,
            description="The page to open after a restart. Defaults to pages[0].uri from manifest.json.",
        ),
    ]
    source_paths: Annotated[
        tuple[str, ...],
        Field(description="Project-relative directories to watch and push."),
    ] = ("/src", "/res")

    update_delay: Annotated[
        Milliseconds,
        Field(description="Quiet time after the last change before the collected changes are pushed."),
    ] = 5000
    delay_after_update: Annotated[
        Milliseconds,
        Field(description="Pause after a successful push before the next push may start."),
    ] = 5000

    auto_restart: Annotated[
        bool,
        Field(description="Restart the application on the device after every push."),
    ] = True
    skip_first_update: Annotated[
        bool,
        Field(description="Discard the first batch of changes, usually produced by the initial compile."),
    ] = False
    manual_update: Annotated[
        bool,
        Field(description="Never close a batch on a timer."),
    ] = False

    watch_ts: Annotated[
        bool,
        Field(description="Run the TypeScript compiler in watch mode alongside the watcher."),
    ] = True
    tsc_file_path: Annotated[
        str,
        Field(description="Absolute path to the compiler's tsc.js."),
    ] = "C:/.sdk/tools/etsc/tsc.js"
    tsc_watch_exclude_directories: Annotated[
        tuple[str, ...],
        Field(description="Directories the compiler's watcher should ignore."),
    ] = ("/node_modules", "/src", "/.vscode", "/res")

    bridge: Annotated[
        str,
        Field(min_length=1, description="The host-side bridge command prefix."),
    ] = DEFAULT_BRIDGE
    executable: Annotated[
        str,
        Field(min_length=1, description="The executable to run the generated script with."),
    ] = "sh -e"
    initialize: Annotated[
        bool,
        Field(description="Reset log preferences and clear compiled caches on the device at startup."),
    ] = True
    script_path: Annotated[
        Optional[Path],
        Field(description="Where to write the generated script. Defaults to a file in the temp directory."),
    ] = None

    @field_validator("project_path")
    @classmethod
    def absolute_project_path(cls, project_path: Path) -> Path:
        return project_path.resolve()

    @field_validator("source_paths", "tsc_watch_exclude_directories", mode="before")
    @classmethod
    def split_comma_separated(cls, value: object) -> object:
        if isinstance(value, (str, list, tuple)):
            return split_csv(value)
        return value

    @field_validator("executable")
    @classmethod
    def names_an_executable(cls, executable: str) -> str:
        if not shlex.split(executable):
            raise ValueError("must name an executable")
        return executable

    @property
    def target_root(self) -> str:
        return f"/opt/app/{self.app_name}"

    @property
    def watched_paths(self) -> tuple[Path, ...]:
        return tuple((self.project_path / ("./" + s)).resolve() for s in self.source_paths)

    @property
    def quiet_window(self) -> float | None:
        if self.manual_update:
            return None
        return self.update_delay / 1000

    @property
    def cooldown(self) -> float:
        return self.delay_after_update / 1000

    @property
    def script_file(self) -> Path:
        return self.script_path or Path(gettempdir()) / f"devpush-{self.app_name}.sh"

    @classmethod
    def load(cls, project_path: Path, file: Path | None, overrides: Mapping[str, object]) -> Config:
        """
        Assemble the configuration from, lowest to highest precedence:
        the project manifest, the config file, and explicit overrides.
        """
        values: dict[str, object] = {"project_path": project_path}

        if file is not None:
            values |= read_config_file(file)

        values |= {k: v for k, v in overrides.items() if v is not None}

        if "app_name" not in values or "page_link" not in values:
            manifest = Manifest.from_project(Path(str(values["project_path"])))
            values = {"app_name": manifest.domain.name, "page_link": manifest.pages[0].uri} | values

        return cls.model_validate(values)


def read_config_file(file: Path) -> dict[str, object]:
    tags = tags_from_path(str(file))

    if "yaml" in tags:
        return dict(ConfigFile.model_validate_yaml(file.read_text()).model_dump(exclude_unset=True))
    else:
        raise NotImplementedError("Currently, only YAML files are supported.")


class ConfigFile(Model):
    """Everything in Config, all optional, for partial configuration from a file."""

    project_path: Optional[Path] = None
    app_name: Optional[str] = None
    page_link: Optional[str] = None
    source_paths: Optional[tuple[str, ...]] = None
    update_delay: Optional[Milliseconds] = None
    delay_after_update: Optional[Milliseconds] = None
    auto_restart: Optional[bool] = None
    skip_first_update: Optional[bool] = None
    manual_update: Optional[bool] = None
    watch_ts: Optional[bool] = None
    tsc_file_path: Optional[str] = None
    tsc_watch_exclude_directories: Optional[tuple[str, ...]] = None
    bridge: Optional[str] = None
    executable: Optional[str] = None
    initialize: Optional[bool] = None
    script_path: Optional[Path] = None

    @field_validator("source_paths", "tsc_watch_exclude_directories", mode="before")
    @classmethod
    def split_comma_separated(cls, value: object) -> object:
        if isinstance(value, (str, list, tuple)):
            return split_csv(value)
        return value


class ManifestModel(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")


class ManifestDomain(ManifestModel):
    name: str


class ManifestPage(ManifestModel):
    uri: str


class Manifest(ManifestModel):
    domain: ManifestDomain
    pages: Annotated[tuple[ManifestPage, ...], Field(min_length=1)]

    @classmethod
    def from_project(cls, project_path: Path) -> Manifest:
        path = project_path / "manifest.json"

        try:
            return cls.model_validate(json.loads(path.read_text()))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ManifestError(f"Failed to read app name and page link from {path}: {e}") from e
