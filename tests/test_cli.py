"""Tests for the command line entry point."""

import pytest

from xctargets.__main__ import main

from conftest import HOST_NAME, write_workspace

TARGETS = {
    "hello": 'type="widget", name="Hello"',
    "share": 'type="share", name="Share"',
}


@pytest.fixture
def workspace_dir(temp_dir, monkeypatch):
    write_workspace(temp_dir, TARGETS)
    monkeypatch.chdir(temp_dir)
    return temp_dir


def run_main(*argv) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    return excinfo.value.code


def test_validate(workspace_dir):
    assert run_main("validate", "--config", "default", "--no-color") == 0
    assert not (workspace_dir / "ios" / f"{HOST_NAME}.xcodeproj").exists()
    assert not (workspace_dir / "targets/hello/ios/build").exists()


def test_validate_reports_failures(workspace_dir):
    (workspace_dir / "targets/hello/TARGET.xctargets").write_text(
        'CTX.define_target(type="widget", name="Hello", entry="index.js")\n'
    )
    assert run_main("validate", "--config", "default") == 1


def test_unknown_config(workspace_dir):
    assert run_main("validate", "--config", "release") == 1


def test_unknown_target(workspace_dir):
    assert run_main("validate", "--config", "default", "Nope") == 1


def test_generate(workspace_dir):
    assert run_main("generate", "--config", "default", "--debug", "--no-color") == 0
    project_file = workspace_dir / "ios" / f"{HOST_NAME}.xcodeproj" / "project.pbxproj"
    assert "HelloTarget" in project_file.read_text()
    assert "ShareTarget" in project_file.read_text()
    assert (workspace_dir / "credentials.json").is_file()


def test_generate_selected_targets(workspace_dir):
    assert run_main("generate", "--config", "default", "Share") == 0
    project_file = workspace_dir / "ios" / f"{HOST_NAME}.xcodeproj" / "project.pbxproj"
    text = project_file.read_text()
    assert "ShareTarget" in text
    assert "HelloTarget" not in text


def test_missing_command():
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", "default"])
    assert excinfo.value.code == 2


def test_invalid_target_fails_the_run_but_others_generate(workspace_dir):
    target_dir = workspace_dir / "targets" / "zzz"
    target_dir.mkdir()
    (target_dir / "TARGET.xctargets").write_text(
        'CTX.define_target(type="not-a-kind", name="Broken")\n'
    )
    assert run_main("generate", "--config", "default") == 1
    project_file = workspace_dir / "ios" / f"{HOST_NAME}.xcodeproj" / "project.pbxproj"
    assert "HelloTarget" in project_file.read_text()
    assert "ShareTarget" in project_file.read_text()


def test_targets_after_options(workspace_dir):
    assert run_main("validate", "--config", "default", "--debug", "Share", "Hello") == 0
