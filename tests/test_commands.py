import pytest

from devpush.changes import ChangeEvent, ChangeKind
from devpush.commands import clear_compiled_command, remote_relative, restart_command, translate

ROOT = "/proj"
TARGET = "/opt/app/x"


@pytest.mark.parametrize(
    ("change", "expected"),
    (
        (
            ChangeEvent(kind=ChangeKind.Change, path="/proj/src/a.ts"),
            "adb -host shell rm -f /opt/app/x/src/a.ts && adb -host push /proj/src/a.ts /opt/app/x/src/a.ts",
        ),
        (
            ChangeEvent(kind=ChangeKind.Add, path="/proj/res/img.png"),
            "adb -host push /proj/res/img.png /opt/app/x/res/img.png",
        ),
        (
            ChangeEvent(kind=ChangeKind.AddDir, path="/proj/src/newdir"),
            "adb -host shell cd /opt/app/x && adb -host shell mkdir src/newdir",
        ),
        (
            ChangeEvent(kind=ChangeKind.AddDir, path="/proj/src/newdir/nested"),
            "adb -host shell cd /opt/app/x && adb -host shell mkdir src/newdir/nested",
        ),
        (
            ChangeEvent(kind=ChangeKind.Unlink, path="/proj/src/a.ts"),
            "adb -host shell rm -f /opt/app/x/src/a.ts",
        ),
        (
            ChangeEvent(kind=ChangeKind.UnlinkDir, path="/proj/src/old"),
            "adb -host shell rm -rf /opt/app/x/src/old",
        ),
        (
            ChangeEvent(kind=ChangeKind.Unknown, path="/proj/src/a.ts"),
            "",
        ),
    ),
)
def test_translate(change: ChangeEvent, expected: str) -> None:
    assert translate(change, ROOT, TARGET) == expected


@pytest.mark.parametrize("kind", list(ChangeKind))
def test_translate_is_deterministic(kind: ChangeKind) -> None:
    change = ChangeEvent(kind=kind, path="/proj/src/a.ts")

    assert translate(change, ROOT, TARGET) == translate(change, ROOT, TARGET)
    assert translate(change, ROOT, TARGET) == translate(ChangeEvent(kind=kind, path="/proj/src/a.ts"), ROOT, TARGET)


def test_repeated_changes_produce_repeated_commands() -> None:
    changes = [ChangeEvent(kind=ChangeKind.Change, path="/proj/src/a.ts")] * 2

    commands = [translate(c, ROOT, TARGET) for c in changes]

    assert commands == [
        "adb -host shell rm -f /opt/app/x/src/a.ts && adb -host push /proj/src/a.ts /opt/app/x/src/a.ts",
    ] * 2


@pytest.mark.parametrize(
    ("path", "root", "expected"),
    (
        ("/proj/src/a.ts", "/proj", "/src/a.ts"),
        ("C:\\proj\\src\\a.ts", "C:\\proj", "/src/a.ts"),
        ("/elsewhere/a.ts", "/proj", "/elsewhere/a.ts"),
    ),
)
def test_remote_relative(path: str, root: str, expected: str) -> None:
    assert remote_relative(path, root) == expected


def test_translate_with_windows_paths_pushes_the_local_path_unchanged() -> None:
    change = ChangeEvent(kind=ChangeKind.Add, path="C:\\proj\\res\\img.png")

    assert translate(change, "C:\\proj", TARGET) == "adb -host push C:\\proj\\res\\img.png /opt/app/x/res/img.png"


def test_translate_with_custom_bridge() -> None:
    change = ChangeEvent(kind=ChangeKind.Unlink, path="/proj/src/a.ts")

    assert translate(change, ROOT, TARGET, bridge="adb -s emulator-5554") == (
        "adb -s emulator-5554 shell rm -f /opt/app/x/src/a.ts"
    )


def test_restart_command() -> None:
    assert restart_command("x", "x/pages/index") == (
        "adb -host shell pkill -f x && adb -host shell sendlink x/pages/index"
    )


def test_clear_compiled_command_runs_in_one_remote_shell() -> None:
    command = clear_compiled_command(TARGET, "x")

    assert command.startswith('adb -host shell "cd /opt/app/x && rm -rf x.jso jso_file.list && cd res && ')
    assert command.endswith(' && rm res/default/theme/statictheme.js"')
    assert command.count("adb -host") == 1
