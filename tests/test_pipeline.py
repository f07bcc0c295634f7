"""End-to-end integration of declared targets into the host project."""

import json
import plistlib
from collections import Counter

import pytest

from xctargets import Config
from xctargets.details.errors import ConfigurationError
from xctargets.generators.cocoapods.podfile import (
    DEPLOYMENT_FIX_START,
    FRAMEWORK_PATHS_START,
    find_target_block,
)
from xctargets.generators.xcode import TargetIntegrator, XcodeGenerator
from xctargets.generators.xcode.embed import APP_CLIPS_DST_PATH
from xctargets.generators.xcode.model import (
    DstSubfolderSpec,
    PBXBuildFile,
    PBXFrameworksBuildPhase,
    PBXResourcesBuildPhase,
    PBXSourcesBuildPhase,
)
from xctargets.generators.xcode.model_builder import create_host_project
from xctargets.generators.xcode.model_editor import (
    find_copy_phase,
    find_target_by_product_name,
    get_product_reference,
)
from xctargets.generators.xcode.validator import validate_project

from conftest import HOST_NAME

WIDGET = {"hello": 'type="widget", name="Hello"'}


def integrate(workspace, run, project=None):
    config = Config()
    if project is None:
        project = create_host_project(workspace.host, config)
    integrator = TargetIntegrator(config, workspace, project, run)
    exit_code = integrator()
    return project, integrator, exit_code


def setting(project, target, key):
    return project.get_configurations(target)[0].buildSettings[key].plain()


def embedded_file_ids(project, phase):
    return [project.resolve(ref, PBXBuildFile).fileRef.id for ref in phase.files]


def phase_counts(project, target):
    return Counter(type(phase) for phase in project.get_phases(target))


class TestWidget:
    def test_entitlements_and_deployment(self, make_workspace, run):
        workspace = make_workspace(WIDGET)
        project, _, exit_code = integrate(workspace, run)
        assert exit_code == 0

        target = find_target_by_product_name(project, "HelloTarget")
        assert setting(project, target, "IPHONEOS_DEPLOYMENT_TARGET") == "14.0"
        assert setting(project, target, "PRODUCT_BUNDLE_IDENTIFIER") == "com.example.hello.HelloTarget"
        assert setting(project, target, "SWIFT_VERSION") == "5.0"

        entitlements = workspace.root / "targets/hello/ios/build/generated.entitlements"
        with open(entitlements, "rb") as f:
            assert plistlib.load(f) == {"com.apple.security.application-groups": ["group.t.a"]}
        assert (workspace.root / "targets/hello/ios/build/Info.plist").is_file()
        assert validate_project(project) == []

    def test_newer_host_deployment_target_wins(self, make_workspace, run):
        workspace = make_workspace(
            WIDGET,
            host=(
                'CTX.set_host(name="HelloApp", bundle_identifier="com.example.hello", '
                'app_groups=["group.t.a"], deployment_target="16.0")'
            ),
        )
        project, _, _ = integrate(workspace, run)
        target = find_target_by_product_name(project, "HelloTarget")
        assert setting(project, target, "IPHONEOS_DEPLOYMENT_TARGET") == "16.0"

    def test_phases_and_embedding(self, make_workspace, run):
        workspace = make_workspace(WIDGET)
        source_dir = workspace.root / "targets/hello/ios"
        source_dir.mkdir(parents=True)
        (source_dir / "Widget.swift").write_text("import WidgetKit\n")
        project, integrator, _ = integrate(workspace, run)

        target = find_target_by_product_name(project, "HelloTarget")
        assert phase_counts(project, target) == {
            PBXSourcesBuildPhase: 1,
            PBXFrameworksBuildPhase: 1,
            PBXResourcesBuildPhase: 1,
        }
        (sources,) = project.get_phases(target, PBXSourcesBuildPhase)
        assert [project.resolve(r, PBXBuildFile).name for r in sources.files] == ["Widget.swift"]
        (frameworks,) = project.get_phases(target, PBXFrameworksBuildPhase)
        assert len(frameworks.files) == 4

        product = get_product_reference(project, target)
        plugins = find_copy_phase(project, integrator.host, DstSubfolderSpec.PLUGINS)
        assert embedded_file_ids(project, plugins) == [product.id]
        assert find_copy_phase(project, integrator.host, DstSubfolderSpec.PRODUCTS_DIRECTORY) is None
        assert any(ref.id == target.id for ref in project.project.targets)

    def test_podfile_block(self, make_workspace, run):
        workspace = make_workspace(WIDGET)
        integrate(workspace, run)
        podfile = (workspace.root / "ios/Podfile").read_text()
        assert podfile.startswith("platform :ios, '14.0'")
        assert find_target_block(podfile, "HelloTarget").depth == 0
        assert "inherit! :none" in podfile

    def test_credentials(self, make_workspace, run):
        workspace = make_workspace(WIDGET)
        _, integrator, _ = integrate(workspace, run)
        (extension,) = integrator.credentials["build"]["experimental"]["ios"]["appExtensions"]
        assert extension["targetName"] == "HelloTarget"
        assert extension["bundleIdentifier"] == "com.example.hello.HelloTarget"
        assert extension["entitlements"] == {"com.apple.security.application-groups": ["group.t.a"]}


def test_second_run_is_idempotent(make_workspace, run):
    workspace = make_workspace(
        {
            "hello": 'type="widget", name="Hello", colors={"$widgetBackground": {"light": "white", "dark": "black"}}',
            "clip": 'type="clip", name="Clip"',
        }
    )
    project, _, _ = integrate(workspace, run)
    objects = Counter(type(o).__name__ for o in project.objects())
    names = Counter((type(o).__name__, o.display_name()) for o in project.objects())
    podfile = (workspace.root / "ios/Podfile").read_text()

    _, _, exit_code = integrate(workspace, run, project)
    assert exit_code == 0
    assert Counter(type(o).__name__ for o in project.objects()) == objects
    assert Counter((type(o).__name__, o.display_name()) for o in project.objects()) == names
    assert (workspace.root / "ios/Podfile").read_text() == podfile
    assert validate_project(project) == []


def test_stickers_are_asset_only(make_workspace, run):
    workspace = make_workspace({"stickers": 'type="stickers", name="Stickers"'})
    project, integrator, exit_code = integrate(workspace, run)
    assert exit_code == 0

    target = find_target_by_product_name(project, "StickersTarget")
    assert phase_counts(project, target) == {PBXResourcesBuildPhase: 1}
    assert (workspace.root / "targets/stickers/ios/build/Stickers.xcassets/Contents.json").is_file()
    assert not (workspace.root / "targets/stickers/ios/build/generated.entitlements").exists()
    assert find_target_block((workspace.root / "ios/Podfile").read_text(), "StickersTarget") is None
    plugins = find_copy_phase(project, integrator.host, DstSubfolderSpec.PLUGINS)
    assert embedded_file_ids(project, plugins) == [get_product_reference(project, target).id]


def test_clip_is_embedded_as_app_clip(make_workspace, run):
    workspace = make_workspace({"clip": 'type="clip", name="Clip"'})
    project, integrator, exit_code = integrate(workspace, run)
    assert exit_code == 0

    target = find_target_by_product_name(project, "ClipTarget")
    product = get_product_reference(project, target)
    app_clips = find_copy_phase(
        project, integrator.host, DstSubfolderSpec.PRODUCTS_DIRECTORY, APP_CLIPS_DST_PATH
    )
    assert embedded_file_ids(project, app_clips) == [product.id]
    assert find_copy_phase(project, integrator.host, DstSubfolderSpec.PLUGINS) is None
    assert setting(project, target, "PRODUCT_BUNDLE_IDENTIFIER") == "com.example.hello.clip"
    assert setting(project, target, "HEADER_SEARCH_PATHS") == "$(SDKROOT)/usr/include"

    with open(workspace.root / "targets/clip/ios/build/generated.entitlements", "rb") as f:
        entitlements = plistlib.load(f)
    assert entitlements["com.apple.developer.parent-application-identifiers"] == [
        "$(AppIdentifierPrefix)com.example.hello"
    ]


def test_react_native_share_extension(make_workspace, run):
    workspace = make_workspace(
        {"share": 'type="share", name="Share", entry="targets/share/index.js"'}
    )
    (workspace.root / "targets/share/index.js").write_text("export default {};\n")
    project, _, exit_code = integrate(workspace, run)
    assert exit_code == 0

    controller = workspace.root / "targets/share/ios/build/ReactNativeViewController.swift"
    assert 'moduleName: "Share"' in controller.read_text()
    target = find_target_by_product_name(project, "ShareTarget")
    (sources,) = project.get_phases(target, PBXSourcesBuildPhase)
    assert [project.resolve(r, PBXBuildFile).name for r in sources.files] == [
        "ReactNativeViewController.swift"
    ]
    assert setting(project, target, "IPHONEOS_DEPLOYMENT_TARGET") == "15.1"

    podfile = (workspace.root / "ios/Podfile").read_text()
    assert "  target 'ShareTarget' do\n    platform :ios, '15.1'\n    inherit! :search_paths\n" in podfile
    assert podfile.startswith("platform :ios, '13.0'")


def test_failed_target_does_not_stop_the_run(make_workspace, run):
    workspace = make_workspace(
        {
            "hello": 'type="widget", name="Hello"',
            "safari": 'type="safari", name="Safari", entry="targets/safari/index.js"',
        }
    )
    project, _, exit_code = integrate(workspace, run)
    assert exit_code == 1
    assert run.failed_targets == ["Safari"]
    assert find_target_by_product_name(project, "HelloTarget") is not None
    assert find_target_by_product_name(project, "SafariTarget") is None


def test_missing_podfile_fails_the_target(make_workspace, run):
    workspace = make_workspace(WIDGET, podfile=None)
    project, _, exit_code = integrate(workspace, run)
    assert exit_code == 1
    assert run.failed_targets == ["Hello"]
    assert find_target_by_product_name(project, "HelloTarget") is not None


def test_missing_host_bundle_identifier_aborts(make_workspace, run):
    workspace = make_workspace(
        WIDGET, host='CTX.set_host(name="HelloApp", app_groups=["group.t.a"])'
    )
    with pytest.raises(ConfigurationError, match="bundle identifier") as excinfo:
        integrate(workspace, run)
    assert excinfo.value.fatal_for_run


def test_generator_writes_outputs(make_workspace, run):
    workspace = make_workspace(WIDGET)
    exit_code = XcodeGenerator(Config(), workspace, run)()
    assert exit_code == 0

    project_file = workspace.root / "ios" / f"{HOST_NAME}.xcodeproj" / "project.pbxproj"
    text = project_file.read_text()
    assert text.startswith("// !$*UTF8*$!")
    assert "HelloTarget" in text

    with open(workspace.root / "credentials.json") as f:
        credentials = json.load(f)
    extensions = credentials["build"]["experimental"]["ios"]["appExtensions"]
    assert [e["targetName"] for e in extensions] == ["HelloTarget"]


def test_shared_product_name_fails_the_later_target(make_workspace, run):
    workspace = make_workspace(
        {
            "hello": 'type="widget", name="Hello"',
            "other": 'type="widget", name="Other", display_name="Hello"',
        }
    )
    project, _, exit_code = integrate(workspace, run)
    assert exit_code == 1
    assert run.failed_targets == ["Other"]
    (target,) = [t for t in project.nativeTargets if t.productName == "HelloTarget"]
    assert setting(project, target, "PRODUCT_BUNDLE_IDENTIFIER") == "com.example.hello.HelloTarget"


def test_excluded_packages_without_entry_are_ignored(make_workspace, run):
    workspace = make_workspace(
        {"hello": 'type="widget", name="Hello", excluded_packages=["expo-updates"]'}
    )
    _, _, exit_code = integrate(workspace, run)
    assert exit_code == 0
    assert any("excluded_packages" in warning for warning in run.warnings)


def test_standalone_and_react_native_podfile(make_workspace, run):
    workspace = make_workspace(
        {
            "hello": 'type="widget", name="Hello"',
            "share": 'type="share", name="Share", entry="targets/share/index.js"',
        }
    )
    (workspace.root / "targets/share/index.js").write_text("export default {};\n")
    project, _, exit_code = integrate(workspace, run)
    assert exit_code == 0
    podfile = (workspace.root / "ios/Podfile").read_text()
    assert find_target_block(podfile, "HelloTarget").depth == 0
    assert find_target_block(podfile, "ShareTarget").depth == 1
    assert "target 'HelloApp' do\n  use_frameworks! :linkage => :static\n" in podfile
    assert DEPLOYMENT_FIX_START in podfile
    assert FRAMEWORK_PATHS_START in podfile

    integrate(workspace, run, project)
    assert (workspace.root / "ios/Podfile").read_text() == podfile
