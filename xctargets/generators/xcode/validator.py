from typing import Any, Dict, List, Set, Type
from dataclasses import fields, is_dataclass

from xctargets.generators.xcode.model import (
    BuildPhase,
    BuildSetting,
    DstSubfolderSpec,
    FileType,
    PBXBuildFile,
    PBXContainerItemProxy,
    PBXFileReference,
    PBXGroup,
    PBXNativeTarget,
    PBXTargetDependency,
    ProductType,
    ProxyType,
    Reference,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
    XcodeID,
    XcodeObject,
    XcodeProject,
    YesNo,
)
from xctargets.generators.xcode.model_editor import REQUIRED_PHASES

# Expected node kind of each typed reference field
REFERENCE_KINDS: Dict[Type[XcodeObject], Dict[str, Type[XcodeObject]]] = {
    PBXBuildFile: {"fileRef": PBXFileReference},
    PBXTargetDependency: {"targetProxy": PBXContainerItemProxy},
    XCConfigurationList: {"buildConfigurations": XCBuildConfiguration},
    PBXNativeTarget: {
        "buildConfigurationList": XCConfigurationList,
        "buildPhases": BuildPhase,
        "dependencies": PBXTargetDependency,
        "productReference": PBXFileReference,
    },
}


def collect_ids(project: XcodeProject) -> Set[XcodeID]:
    return {obj.id for obj in project.objects()}


def validate_references(project: XcodeProject) -> List[str]:
    errors = []
    index = {obj.id: obj for obj in project.objects()}

    def check_references(obj: Any, context: str, expected: Any = None):
        if isinstance(obj, Reference):
            target = index.get(obj.id)
            if target is None:
                errors.append(f"Invalid reference in {context}: {obj.id}")
            elif expected is not None and not isinstance(target, expected):
                errors.append(
                    f"Reference in {context} points at {type(target).__name__}, "
                    f"expected {expected.__name__}"
                )
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                check_references(item, f"{context}[{i}]", expected)
        elif isinstance(obj, dict):
            for key, value in obj.items():
                check_references(value, f"{context}.{key}", expected)
        elif is_dataclass(obj) and not isinstance(obj, BuildSetting):
            kinds = REFERENCE_KINDS.get(type(obj), {})
            for field in fields(obj):
                if field.name.startswith("_"):
                    continue
                check_references(
                    getattr(obj, field.name),
                    f"{context}.{field.name}",
                    kinds.get(field.name),
                )
        elif isinstance(
            obj,
            (
                str,
                int,
                float,
                BuildSetting,
                SourceTree,
                FileType,
                ProductType,
                YesNo,
                ProxyType,
                DstSubfolderSpec,
                type(None),
            ),
        ):
            pass  # These are valid types and do not need further checking
        else:
            errors.append(f"Unknown type in {context}: {type(obj).__name__}")

    for obj in project.objects():
        check_references(obj, f"{type(obj).__name__}({obj.id})")

    # proxies and dependencies address targets by plain ID
    ids = collect_ids(project)
    for proxy in project.containerItemProxies:
        if proxy.remoteGlobalIDString not in ids:
            errors.append(f"Invalid proxy target in {proxy.id}: {proxy.remoteGlobalIDString}")
    for dependency in project.targetDependencies:
        if dependency.target is not None and dependency.target not in ids:
            errors.append(f"Invalid dependency target in {dependency.id}: {dependency.target}")
    return errors


def validate_phase_ownership(project: XcodeProject) -> List[str]:
    errors = []
    owners: Dict[XcodeID, List[str]] = {}
    for target in project.nativeTargets:
        for ref in target.buildPhases:
            owners.setdefault(ref.id, []).append(target.name)
        kinds = [type(p) for p in project.get_phases(target)]
        for phase_type in REQUIRED_PHASES:
            if kinds.count(phase_type) > 1:
                errors.append(f"Target {target.name} has {kinds.count(phase_type)} {phase_type.__name__}")
    for phase in project.buildPhases:
        names = owners.get(phase.id, [])
        if len(names) != 1:
            errors.append(f"{phase.display_name()} phase {phase.id} is owned by {len(names)} targets")
    return errors


def validate_product_names(project: XcodeProject) -> List[str]:
    errors = []
    seen: Set[str] = set()
    for target in project.nativeTargets:
        if target.productName in seen:
            errors.append(f"Duplicate product name {target.productName}")
        seen.add(target.productName)
    return errors


def validate_groups(project: XcodeProject) -> List[str]:
    errors = []
    for group in project.groups:
        for ref in group.children:
            child = project.resolve(ref, XcodeObject)
            if child is not None and not isinstance(child, (PBXGroup, PBXFileReference)):
                errors.append(f"Group {group.name} contains {type(child).__name__}")
    return errors


def validate_project(project: XcodeProject) -> List[str]:
    return (
        validate_references(project)
        + validate_phase_ownership(project)
        + validate_product_names(project)
        + validate_groups(project)
    )
