"""Tests for workspace loading and target discovery."""

import pytest

from xctargets.details.errors import ConfigurationError
from xctargets.details.kinds import TargetKind
from xctargets.details.workspace import Workspace

from conftest import HOST_BUNDLE_ID, HOST_NAME, write_workspace

TARGETS = {
    "widget": 'type="widget", name="Hello"',
    "clip": 'type="clip", name="Clip"',
    "share": 'type="share", name="Share", entry="targets/share/index.js"',
}


def test_host_is_loaded(make_workspace):
    workspace = make_workspace({})
    assert workspace.host.name == HOST_NAME
    assert workspace.host.bundle_identifier == HOST_BUNDLE_ID
    assert workspace.host.app_groups == ["group.t.a"]
    assert workspace.configs == {}


def test_targets_are_discovered_in_directory_order(make_workspace):
    workspace = make_workspace(TARGETS)
    assert [t.name for t in workspace.targets] == ["Clip", "Share", "Hello"]
    assert workspace.find_target("Hello").directory == "targets/widget"
    assert workspace.find_target("Share").kind == TargetKind.SHARE
    assert workspace.find_target("Missing") is None


def test_build_directories_are_skipped(temp_dir):
    write_workspace(temp_dir, {"widget": 'type="widget", name="Hello"'})
    build_dir = temp_dir / "targets" / "widget" / "build" / "copy"
    build_dir.mkdir(parents=True)
    (build_dir / "TARGET.xctargets").write_text('CTX.define_target(type="widget", name="Copy")\n')
    workspace = Workspace(temp_dir)
    workspace.configure(workspace.configs["default"])
    assert [t.name for t in workspace.targets] == ["Hello"]


def test_filter_targets(temp_dir):
    write_workspace(temp_dir, TARGETS)
    workspace = Workspace(temp_dir)
    workspace.configure(workspace.configs["default"], ["Hello"])
    assert [t.name for t in workspace.targets] == ["Hello"]


def test_unknown_target_filter_is_fatal(temp_dir):
    write_workspace(temp_dir, TARGETS)
    workspace = Workspace(temp_dir)
    with pytest.raises(ConfigurationError, match="unknown target") as excinfo:
        workspace.configure(workspace.configs["default"], ["Nope"])
    assert excinfo.value.fatal_for_run


def test_single_message_payload_provider(make_workspace):
    with pytest.raises(ConfigurationError, match="message payload provider") as excinfo:
        make_workspace(
            {
                "stickers": 'type="stickers", name="Stickers"',
                "messages": 'type="messages", name="Chat"',
            }
        )
    assert excinfo.value.fatal_for_run


def test_ios_targets(make_workspace):
    workspace = make_workspace(
        {
            "widget": 'type="widget", name="Hello"',
            "android": 'type="widget", name="Droid", platforms=["android"]',
        }
    )
    assert [t.name for t in workspace.ios_targets] == ["Hello"]


def test_missing_host_is_fatal(temp_dir):
    write_workspace(temp_dir, {}, host="")
    with pytest.raises(ConfigurationError, match="set_host") as excinfo:
        Workspace(temp_dir)
    assert excinfo.value.fatal_for_run


def test_one_target_per_directory(temp_dir):
    write_workspace(temp_dir, {"widget": 'type="widget", name="Hello"'})
    target_file = temp_dir / "targets" / "widget" / "TARGET.xctargets"
    target_file.write_text(
        target_file.read_text() + 'CTX.define_target(type="widget", name="Again")\n'
    )
    workspace = Workspace(temp_dir)
    with pytest.raises(ValueError, match="already defines 'Hello'"):
        workspace.configure(workspace.configs["default"])


def test_unknown_ios_keys(make_workspace):
    with pytest.raises(ConfigurationError, match="unknown ios keys"):
        make_workspace({"widget": 'type="widget", name="Hello", ios={"colour": "red"}'})


def test_invalid_target_is_recorded_on_the_run(temp_dir, run):
    write_workspace(
        temp_dir,
        {
            "hello": 'type="widget", name="Hello"',
            "zzz": 'type="not-a-kind", name="Broken"',
            "nameless": 'type="widget", name=""',
        },
    )
    workspace = Workspace(temp_dir)
    workspace.configure(workspace.configs["default"], run=run)
    assert [t.name for t in workspace.targets] == ["Hello"]
    assert run.failed_targets == ["targets/nameless", "targets/zzz"]
    assert run.exit_code == 1
