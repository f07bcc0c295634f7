"""Tests for the pbxproj formatter and the graph validator."""

from xctargets.generators.xcode.formatter import format_xcode_project, format_value, write_project
from xctargets.generators.xcode.model import (
    PBXBuildFile,
    PBXFileReference,
    PBXSourcesBuildPhase,
    ProductType,
    Reference,
    SourceTree,
    XcodeID,
)
from xctargets.generators.xcode.model_editor import (
    add_source_file,
    create_target,
    ensure_group,
    ensure_phases,
    ensure_virtual_root,
    get_application_target,
)
from xctargets.generators.xcode.validator import (
    validate_phase_ownership,
    validate_product_names,
    validate_references,
)


class TestFormatter:
    def test_header_and_root_object(self, project):
        text = format_xcode_project(project)
        assert text.startswith("// !$*UTF8*$!\n{")
        assert "objectVersion = 56;" in text
        assert f"rootObject = {project.project.id} /* Project object */;" in text

    def test_objects_carry_isa(self, project):
        text = format_xcode_project(project)
        assert "isa = PBXProject;" in text
        assert "isa = PBXNativeTarget;" in text
        assert "isa = XCConfigurationList;" in text

    def test_internal_fields_are_not_written(self, project):
        host = get_application_target(project)
        create_target(project, "HelloTarget", ProductType.APP_EXTENSION, "w", host=host)
        text = format_xcode_project(project)
        for field in ("owner", "target_name", "group_id", "_index"):
            assert f"{field} =" not in text

    def test_file_types(self, project):
        host = get_application_target(project)
        widget = create_target(project, "HelloTarget", ProductType.APP_EXTENSION, "w", host=host)
        ensure_phases(project, widget)
        group = ensure_group(project, ensure_virtual_root(project), "HelloTarget")
        add_source_file(project, widget, group, "../targets/hello/ios/Widget.swift")
        text = format_xcode_project(project)
        assert 'explicitFileType = "wrapper.app-extension";' in text
        assert 'lastKnownFileType = "sourcecode.swift";' in text
        assert 'sourceTree = "SOURCE_ROOT";' in text

    def test_copy_phase_fields(self, project):
        host = get_application_target(project)
        create_target(project, "HelloTarget", ProductType.APP_EXTENSION, "w", host=host)
        text = format_xcode_project(project)
        assert "dstSubfolderSpec = 13;" in text

    def test_values(self):
        assert format_value(XcodeID("ABC"), 0) == "ABC"
        assert format_value(Reference(XcodeID("ABC"), "Sources"), 0) == "ABC /* Sources */"
        assert format_value([], 0) == "()"
        assert format_value({}, 0) == "{\n}"
        assert format_value('say "hi"', 0) == '"say \\"hi\\""'
        assert format_value(SourceTree.GROUP, 0) == '"<group>"'

    def test_write_project(self, project, temp_dir):
        project_file = write_project(project, temp_dir / "HelloApp.xcodeproj")
        assert project_file == temp_dir / "HelloApp.xcodeproj" / "project.pbxproj"
        assert project_file.read_text() == format_xcode_project(project)


class TestValidator:
    def test_dangling_file_reference(self, project):
        host = get_application_target(project)
        sources = project.get_phases(host, PBXSourcesBuildPhase)[0]
        missing = PBXFileReference(name="Gone.swift", path="Gone.swift", sourceTree=SourceTree.SOURCE_ROOT)
        build_file = project.add(PBXBuildFile(fileRef=missing.ref(), name="Gone.swift", owner=sources.id))
        sources.files.append(build_file.ref())
        errors = validate_references(project)
        assert len(errors) == 1
        assert missing.id in errors[0]

    def test_wrong_reference_kind(self, project):
        host = get_application_target(project)
        sources = project.get_phases(host, PBXSourcesBuildPhase)[0]
        build_file = project.add(PBXBuildFile(fileRef=sources.ref(), name="x", owner=sources.id))
        sources.files.append(build_file.ref())
        errors = validate_references(project)
        assert any("expected PBXFileReference" in e for e in errors)

    def test_duplicate_product_names(self, project):
        create_target(project, "Foo", ProductType.APP_EXTENSION, "a")
        create_target(project, "Foo", ProductType.APP_EXTENSION, "b")
        assert validate_product_names(project) == ["Duplicate product name Foo"]

    def test_shared_phase(self, project):
        host = get_application_target(project)
        other = create_target(project, "Other", ProductType.APP_EXTENSION, "o")
        other.buildPhases.append(host.buildPhases[0])
        errors = validate_phase_ownership(project)
        assert any("owned by 2 targets" in e for e in errors)
