from __future__ import annotations

from typing_extensions import assert_never

from devpush.changes import ChangeEvent, ChangeKind

DEFAULT_BRIDGE = "adb -host"


def remote_relative(path: str, project_root: str) -> str:
    local = path[len(project_root) :] if path.startswith(project_root) else path
    return local.replace("\\", "/")


def translate(
    change: ChangeEvent,
    project_root: str,
    target_root: str,
    bridge: str = DEFAULT_BRIDGE,
) -> str:
    """
    Derive the remote command that mirrors a single local change onto the device.

    The result depends only on the arguments, so the same change always produces the same command.
    Unknown kinds produce an empty command, which still occupies its own line in the rendered script.
    """
    local = change.path
    relative = remote_relative(local, project_root)
    remote = f"{target_root}{relative}"

    match change.kind:
        case ChangeKind.Change:
            return f"{bridge} shell rm -f {remote} && {bridge} push {local} {remote}"
        case ChangeKind.Add:
            return f"{bridge} push {local} {remote}"
        case ChangeKind.AddDir:
            # only the first separator is dropped, nested paths keep the rest
            return f"{bridge} shell cd {target_root} && {bridge} shell mkdir {relative.replace('/', '', 1)}"
        case ChangeKind.Unlink:
            return f"{bridge} shell rm -f {remote}"
        case ChangeKind.UnlinkDir:
            return f"{bridge} shell rm -rf {remote}"
        case ChangeKind.Unknown:
            return ""
        case never:
            assert_never(never)


def restart_command(app_name: str, page_link: str, bridge: str = DEFAULT_BRIDGE) -> str:
    return f"{bridge} shell pkill -f {app_name} && {bridge} shell sendlink {page_link}"


def log_preferences_command(bridge: str = DEFAULT_BRIDGE) -> str:
    return f"{bridge} shell logctl -p 3 && {bridge} shell apr off"


def clear_compiled_command(target_root: str, app_name: str, bridge: str = DEFAULT_BRIDGE) -> str:
    steps = (
        f"cd {target_root}",
        f"rm -rf {app_name}.jso jso_file.list",
        "cd res",
        "rm -rf static_compile_list.json offline_compile_theme_list.json ./default/layout/layout.json.js",
        "find . -name *.xml.js | xargs rm -rf",
        "find . -name *.json.js | xargs rm -rf",
        "find . -name *.js.uglifymap | xargs rm -rf",
        "rm res/default/theme/statictheme.js",
    )
    return f'{bridge} shell "{" && ".join(steps)}"'
