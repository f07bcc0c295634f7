"""
Xcode project file formatter.

This module converts an XcodeProject graph into the text of a project.pbxproj
file. Objects are rendered generically from their dataclass fields; fields
that only exist to keep the in-memory graph consistent are left out.
"""

import dataclasses
import enum
from pathlib import Path
from typing import Dict, List, Set, Union

from xctargets.generators.xcode.model import (
    BuildSetting,
    PBXBuildFile,
    PBXFileReference,
    Reference,
    SourceTree,
    XcodeID,
    XcodeObject,
    XcodeProject,
)

# Graph bookkeeping that has no counterpart in the file format
INTERNAL_FIELDS = frozenset({"id", "target_name", "owner", "group_id"})

ObjectProperties = Dict[str, object]
ObjectsDict = Dict[str, ObjectProperties]


def format_xcode_project(project: XcodeProject) -> str:
    """
    Convert an XcodeProject object to its string representation.

    Args:
        project: The XcodeProject object to format.

    Returns:
        A string containing the formatted Xcode project file content.
    """
    project_dict: Dict[str, object] = {
        "archiveVersion": 1,
        "classes": {},
        "objectVersion": 56,
        "objects": collect_objects(project),
        "rootObject": Reference(id=project.project.id, comment="Project object"),
    }
    return "// !$*UTF8*$!\n" + format_value(project_dict, 0) + "\n"


def write_project(project: XcodeProject, xcodeproj: Path) -> Path:
    xcodeproj.mkdir(parents=True, exist_ok=True)
    project_file = xcodeproj / "project.pbxproj"
    with open(project_file, "w") as f:
        f.write(format_xcode_project(project))
    return project_file


def object_properties(obj: XcodeObject) -> ObjectProperties:
    props: ObjectProperties = {"isa": obj.__class__}
    for field in dataclasses.fields(obj):
        if field.name in INTERNAL_FIELDS:
            continue
        value = getattr(obj, field.name)
        if value is None:
            continue
        # build files are named through their reference comments only
        if isinstance(obj, PBXBuildFile) and field.name == "name":
            continue
        if isinstance(obj, PBXFileReference) and field.name == "fileType":
            key = (
                "explicitFileType"
                if obj.sourceTree == SourceTree.BUILT_PRODUCTS_DIR
                else "lastKnownFileType"
            )
            props[key] = value
            continue
        props[field.name] = value
    return props


def collect_objects(project: XcodeProject) -> ObjectsDict:
    """
    Collect all objects from the project into a dictionary keyed by object ID.
    """
    objects: ObjectsDict = {}
    visited: Set[XcodeID] = set()
    for obj in project.objects():
        if obj.id in visited:
            continue
        visited.add(obj.id)
        objects[obj.id] = object_properties(obj)
    return objects


def format_value(value: object, indent_level: int) -> str:
    """
    Format a value based on its type.

    Args:
        value: The value to format.
        indent_level: The current indentation level.

    Returns:
        A string representing the formatted value.
    """
    if value is None:
        return '""'

    # Object IDs are never quoted
    elif isinstance(value, XcodeID):
        return value

    # isa values use the class name without quotes
    elif isinstance(value, type):
        return value.__name__

    elif isinstance(value, XcodeObject):
        name = value.display_name()
        if name:
            return f"{value.id} /* {name} */"
        return value.id

    elif isinstance(value, Reference):
        if value.comment:
            return f"{value.id} /* {value.comment} */"
        return value.id

    elif isinstance(value, BuildSetting):
        return format_value(value.value, indent_level)

    elif isinstance(value, enum.Enum):
        return format_enum(value)

    elif isinstance(value, list):
        return format_list(value, indent_level)

    elif isinstance(value, dict):
        return format_dict(value, indent_level)

    # Xcode represents booleans as 0/1
    elif isinstance(value, bool):
        return "1" if value else "0"

    elif isinstance(value, (int, float)):
        return str(value)

    elif isinstance(value, str):
        return quote(value)

    else:
        raise TypeError(f"Unsupported type: {type(value).__name__} for value: {value}")


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def format_dict(value_dict: Dict[str, object], indent_level: int) -> str:
    indent = "\t" * indent_level
    inner_indent = "\t" * (indent_level + 1)

    # Empty dictionaries should have braces on separate lines for Xcode compatibility
    if not value_dict:
        return "{\n" + indent + "}"

    result = "{\n"
    # isa first, the rest sorted for stable output
    keys = sorted(value_dict.keys(), key=lambda k: (k != "isa", k))
    for key in keys:
        value = value_dict[key]
        if value is None:
            continue
        result += f"{inner_indent}{format_key(key)} = {format_value(value, indent_level + 1)};\n"
    result += f"{indent}}}"
    return result


def format_key(key: str) -> str:
    if isinstance(key, XcodeID):
        return key
    if key.replace("_", "").isalnum():
        return key
    return quote(key)


def format_list(value_list: List[object], indent_level: int) -> str:
    if not value_list:
        return "()"

    # Handle single-item lists differently (on a single line)
    if len(value_list) == 1:
        return f"({format_value(value_list[0], indent_level)})"

    indent = "\t" * indent_level
    inner_indent = "\t" * (indent_level + 1)

    result = "(\n"
    for item in value_list:
        result += f"{inner_indent}{format_value(item, indent_level + 1)},\n"
    result += f"{indent})"
    return result


def format_enum(value_enum: enum.Enum) -> str:
    if isinstance(value_enum.value, str):
        return quote(value_enum.value)
    return str(value_enum.value)
