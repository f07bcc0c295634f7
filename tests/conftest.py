"""Shared fixtures: hosts, in-memory projects and on-disk workspaces."""

import tempfile
from pathlib import Path

import pytest

from xctargets import Config, HostApp
from xctargets.details.run_context import RunContext
from xctargets.details.workspace import Workspace
from xctargets.generators.xcode.model_builder import create_host_project

HOST_NAME = "HelloApp"
HOST_BUNDLE_ID = "com.example.hello"

PODFILE = """\
platform :ios, '13.0'

target 'HelloApp' do
  use_expo_modules!

  post_install do |installer|
    react_native_post_install(installer)
  end
end
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdirname:
        yield Path(tmpdirname)


@pytest.fixture
def host():
    """Host app with a single app group."""
    return HostApp(
        name=HOST_NAME,
        bundle_identifier=HOST_BUNDLE_ID,
        app_groups=["group.t.a"],
        deployment_target="13.0",
        build_settings={"SWIFT_VERSION": "5.9", "TARGETED_DEVICE_FAMILY": "1,2"},
    )


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def project(host, config):
    """In-memory project holding only the host application."""
    return create_host_project(host, config)


@pytest.fixture
def run():
    return RunContext(debug=True, use_color=False)


def write_workspace(root: Path, targets: dict, host: str = None, podfile: str = PODFILE) -> None:
    """Lay out a workspace: CONFIG.xctargets, one TARGET.xctargets per entry
    of targets (directory name -> define_target arguments) and a Podfile."""
    if host is None:
        host = (
            f'CTX.set_host(name="{HOST_NAME}", bundle_identifier="{HOST_BUNDLE_ID}", '
            'app_groups=["group.t.a"], deployment_target="13.0")'
        )
    (root / "CONFIG.xctargets").write_text(f'{host}\nCTX.add_config("default")\n')
    (root / "targets").mkdir(exist_ok=True)
    for directory, arguments in targets.items():
        target_dir = root / "targets" / directory
        target_dir.mkdir(parents=True)
        (target_dir / "TARGET.xctargets").write_text(f"CTX.define_target({arguments})\n")
    if podfile is not None:
        (root / "ios").mkdir(exist_ok=True)
        (root / "ios" / "Podfile").write_text(podfile)


@pytest.fixture
def make_workspace(temp_dir):
    """Factory creating a configured Workspace under temp_dir."""

    def factory(targets: dict, **kwargs) -> Workspace:
        write_workspace(temp_dir, targets, **kwargs)
        workspace = Workspace(temp_dir)
        workspace.configure(workspace.configs["default"])
        return workspace

    return factory
