# Xcode project graph mutator.
#
# Operations on an XcodeProject that integrate one target at a time. Every
# operation is convergent: running it again against its own output leaves
# the graph unchanged. Target creation is the one exception, duplicates are
# tolerated here and reconciled by remove_duplicate_targets().

import os
from typing import Dict, List, Mapping, Optional, Sequence, Set, Type, Union

from xctargets.details.as_iterator import setting_iter

from xctargets.generators.xcode.model import (
    BuildPhase,
    BuildSetting,
    DstSubfolderSpec,
    FileType,
    PBXBuildFile,
    PBXContainerItemProxy,
    PBXCopyFilesBuildPhase,
    PBXFileReference,
    PBXFrameworksBuildPhase,
    PBXGroup,
    PBXNativeTarget,
    PBXResourcesBuildPhase,
    PBXSourcesBuildPhase,
    PBXTargetDependency,
    ProductType,
    ProxyType,
    Reference,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
    XcodeID,
    XcodeProject,
    YesNo,
)

REQUIRED_PHASES = (
    PBXSourcesBuildPhase,
    PBXFrameworksBuildPhase,
    PBXResourcesBuildPhase,
)

# Name of the navigator group holding target sources that live outside
# the native project directory
VIRTUAL_ROOT_NAME = "xctargets"

# Extensions that Xcode can compile (add to sources build phase)
COMPILABLE_EXTENSIONS = frozenset({".swift", ".m", ".mm", ".c", ".cpp"})

_PRODUCT_FILE_TYPES = {
    ProductType.APPLICATION: (FileType.APP, "app"),
    ProductType.ON_DEMAND_INSTALL_CAPABLE_APPLICATION: (FileType.APP, "app"),
    ProductType.APP_EXTENSION: (FileType.APP_EXTENSION, "appex"),
    ProductType.MESSAGES_STICKER_PACK: (FileType.APP_EXTENSION, "appex"),
    ProductType.EXTENSIONKIT_EXTENSION: (FileType.EXTENSIONKIT_EXTENSION, "appex"),
}

SettingsValue = Union[str, List[str], YesNo]


def _to_setting(value: SettingsValue) -> BuildSetting:
    if isinstance(value, (YesNo, str)):
        return BuildSetting(value=value)
    return BuildSetting(value=list(setting_iter(value)))


def find_target_by_product_name(
    project: XcodeProject, product_name: str
) -> Optional[PBXNativeTarget]:
    for target in project.nativeTargets:
        if target.productName == product_name:
            return target
    return None


def get_application_target(project: XcodeProject) -> Optional[PBXNativeTarget]:
    for ref in project.project.targets:
        target = project.resolve(ref, PBXNativeTarget)
        if target is not None and target.productType == ProductType.APPLICATION:
            return target
    return None


def get_host_build_settings(
    project: XcodeProject,
    host: PBXNativeTarget,
    configuration: Optional[str] = None,
) -> Dict[str, Union[str, List[str]]]:
    configs = project.get_configurations(host)
    if configuration is not None:
        configs = [c for c in configs if c.name == configuration]
    if not configs:
        return {}
    return {key: setting.plain() for key, setting in configs[0].buildSettings.items()}


def get_product_reference(
    project: XcodeProject, target: PBXNativeTarget
) -> Optional[PBXFileReference]:
    return project.resolve(target.productReference, PBXFileReference)


def find_copy_phase(
    project: XcodeProject,
    target: PBXNativeTarget,
    dst_subfolder: DstSubfolderSpec,
    dst_path: Optional[str] = None,
) -> Optional[PBXCopyFilesBuildPhase]:
    for phase in project.get_phases(target, PBXCopyFilesBuildPhase):
        if phase.dstSubfolderSpec != dst_subfolder:
            continue
        if dst_path is not None and phase.dstPath != dst_path:
            continue
        return phase
    return None


def ensure_copy_phase(
    project: XcodeProject,
    target: PBXNativeTarget,
    dst_subfolder: DstSubfolderSpec,
    dst_path: str = "",
    name: Optional[str] = None,
) -> PBXCopyFilesBuildPhase:
    phase = find_copy_phase(project, target, dst_subfolder, dst_path)
    if phase is None:
        phase = project.add(
            PBXCopyFilesBuildPhase(
                files=[],
                target_name=target.name,
                dstSubfolderSpec=dst_subfolder,
                dstPath=dst_path,
                name=name,
            )
        )
        target.buildPhases.append(phase.ref())
    return phase


def ensure_group(
    project: XcodeProject,
    parent: PBXGroup,
    name: str,
    path: Optional[str] = None,
    source_tree: SourceTree = SourceTree.GROUP,
) -> PBXGroup:
    for ref in parent.children:
        group = project.resolve(ref, PBXGroup)
        if group is not None and group.name == name:
            return group
    group = project.add(
        PBXGroup(
            name=name,
            sourceTree=source_tree,
            children=[],
            path=path,
            group_id=f"{parent.id}:{name}",
        )
    )
    parent.children.append(group.ref())
    return group


def ensure_virtual_root(project: XcodeProject) -> PBXGroup:
    return ensure_group(project, project.main_group, VIRTUAL_ROOT_NAME)


def _configuration_names(project: XcodeProject) -> List[str]:
    config_list = project.resolve(
        project.project.buildConfigurationList, XCConfigurationList
    )
    names = []
    if config_list is not None:
        for ref in config_list.buildConfigurations:
            config = project.resolve(ref, XCBuildConfiguration)
            if config is not None:
                names.append(config.name)
    return names or ["Debug", "Release"]


def create_target(
    project: XcodeProject,
    name: str,
    product_type: ProductType,
    bundle_identifier: str,
    *,
    host: Optional[PBXNativeTarget] = None,
) -> PBXNativeTarget:
    """Create a native target with its configurations and product reference.

    Does not check for an existing target of the same name; duplicates are
    reconciled by remove_duplicate_targets(). When a host is given, extension
    products are added to the host's extension embedding phase the way Xcode
    does it for new extension targets. Application products are not.
    """
    configs = []
    for config_name in _configuration_names(project):
        config = project.add(
            XCBuildConfiguration(
                name=config_name,
                buildSettings={
                    "PRODUCT_NAME": BuildSetting(value="$(TARGET_NAME)"),
                    "PRODUCT_BUNDLE_IDENTIFIER": BuildSetting(value=bundle_identifier),
                },
                owner=name,
            )
        )
        configs.append(config)
    config_list = project.add(
        XCConfigurationList(
            buildConfigurations=[c.ref() for c in configs],
            defaultConfigurationName=configs[-1].name,
            owner=name,
        )
    )

    file_type, extension = _PRODUCT_FILE_TYPES[product_type]
    product_ref = project.add(
        PBXFileReference(
            name=f"{name}.{extension}",
            path=f"{name}.{extension}",
            sourceTree=SourceTree.BUILT_PRODUCTS_DIR,
            fileType=file_type,
            includeInIndex=0,
        )
    )
    project.products_group.children.append(product_ref.ref())

    target = project.add(
        PBXNativeTarget(
            name=name,
            buildConfigurationList=config_list.ref(),
            buildPhases=[],
            dependencies=[],
            productName=name,
            productType=product_type,
            productReference=product_ref.ref(),
        )
    )
    project.project.targets.append(target.ref())

    if host is not None and not product_type.is_application:
        embed_phase = ensure_copy_phase(project, host, DstSubfolderSpec.PLUGINS)
        build_file = project.add(
            PBXBuildFile(
                fileRef=product_ref.ref(),
                name=product_ref.name,
                owner=embed_phase.id,
            )
        )
        embed_phase.files.append(build_file.ref())
    return target


def set_product_type(
    project: XcodeProject, target: PBXNativeTarget, product_type: ProductType
) -> None:
    target.productType = product_type
    product_ref = get_product_reference(project, target)
    if product_ref is not None:
        product_ref.fileType = _PRODUCT_FILE_TYPES[product_type][0]


def apply_build_settings(
    project: XcodeProject,
    target: PBXNativeTarget,
    settings: Mapping[str, SettingsValue],
) -> None:
    for config in project.get_configurations(target):
        for key, value in settings.items():
            config.buildSettings[key] = _to_setting(value)


def remove_build_setting(
    project: XcodeProject, target: PBXNativeTarget, key: str
) -> None:
    for config in project.get_configurations(target):
        config.buildSettings.pop(key, None)


def ensure_phases(
    project: XcodeProject,
    target: PBXNativeTarget,
    phase_types: Sequence[Type[BuildPhase]] = REQUIRED_PHASES,
) -> Dict[Type[BuildPhase], BuildPhase]:
    """Make sure the target owns exactly one phase of each given kind.

    Phases are looked up by kind, never by name.
    """
    phases: Dict[Type[BuildPhase], BuildPhase] = {}
    for phase_type in phase_types:
        existing = [p for p in project.get_phases(target) if type(p) is phase_type]
        if existing:
            phases[phase_type] = existing[0]
            continue
        phase = project.add(phase_type(files=[], target_name=target.name))
        target.buildPhases.append(phase.ref())
        phases[phase_type] = phase
    return phases


def remove_build_phases(
    project: XcodeProject, target: PBXNativeTarget, phase_type: Type[BuildPhase]
) -> int:
    removed = [p for p in project.get_phases(target) if type(p) is phase_type]
    for phase in removed:
        for ref in phase.files:
            build_file = project.resolve(ref, PBXBuildFile)
            if build_file is not None:
                project.remove(build_file)
        project.remove(phase)
    removed_ids = {p.id for p in removed}
    target.buildPhases = [r for r in target.buildPhases if r.id not in removed_ids]
    return len(removed)


def _phase_of(
    project: XcodeProject, target: PBXNativeTarget, phase_type: Type[BuildPhase]
) -> BuildPhase:
    for phase in project.get_phases(target):
        if type(phase) is phase_type:
            return phase
    raise ValueError(
        f"target '{target.name}' has no {phase_type.__name__}, call ensure_phases() first"
    )


def _attach(
    project: XcodeProject, phase: BuildPhase, file_ref: PBXFileReference
) -> PBXBuildFile:
    for ref in phase.files:
        build_file = project.resolve(ref, PBXBuildFile)
        if build_file is not None and build_file.fileRef.id == file_ref.id:
            return build_file
    build_file = project.add(
        PBXBuildFile(fileRef=file_ref.ref(), name=file_ref.name, owner=phase.id)
    )
    phase.files.append(build_file.ref())
    return build_file


def _file_in_group(
    project: XcodeProject, group: PBXGroup, relative_path: str
) -> PBXFileReference:
    for ref in group.children:
        file_ref = project.resolve(ref, PBXFileReference)
        if file_ref is not None and file_ref.path == relative_path:
            return file_ref
    file_ref = project.add(
        PBXFileReference(
            name=os.path.basename(relative_path),
            path=relative_path,
            sourceTree=SourceTree.SOURCE_ROOT,
            fileType=FileType.from_extension(os.path.splitext(relative_path)[1]),
        )
    )
    group.children.append(file_ref.ref())
    return file_ref


def add_source_file(
    project: XcodeProject,
    target: PBXNativeTarget,
    group: PBXGroup,
    relative_path: str,
) -> Optional[PBXBuildFile]:
    # Non-compilable files are referenced for navigation only
    file_ref = _file_in_group(project, group, relative_path)
    if os.path.splitext(relative_path)[1].lower() not in COMPILABLE_EXTENSIONS:
        return None
    return _attach(project, _phase_of(project, target, PBXSourcesBuildPhase), file_ref)


def add_resource_file(
    project: XcodeProject,
    target: PBXNativeTarget,
    group: PBXGroup,
    relative_path: str,
) -> PBXBuildFile:
    file_ref = _file_in_group(project, group, relative_path)
    return _attach(
        project, _phase_of(project, target, PBXResourcesBuildPhase), file_ref
    )


def link_library(
    project: XcodeProject, target: PBXNativeTarget, name: str
) -> PBXBuildFile:
    framework = name if name.endswith(".framework") else f"{name}.framework"
    path = f"System/Library/Frameworks/{framework}"
    file_ref = next(
        (
            f
            for f in project.fileReferences
            if f.sourceTree == SourceTree.SDKROOT and f.path == path
        ),
        None,
    )
    if file_ref is None:
        file_ref = project.add(
            PBXFileReference(
                name=framework,
                path=path,
                sourceTree=SourceTree.SDKROOT,
                fileType=FileType.FRAMEWORK,
            )
        )
        frameworks_group = ensure_group(project, project.main_group, "Frameworks")
        frameworks_group.children.append(file_ref.ref())
    return _attach(
        project, _phase_of(project, target, PBXFrameworksBuildPhase), file_ref
    )


def add_target_dependency(
    project: XcodeProject, host: PBXNativeTarget, dependent: PBXNativeTarget
) -> PBXTargetDependency:
    for ref in host.dependencies:
        dependency = project.resolve(ref, PBXTargetDependency)
        if dependency is not None and dependency.target == dependent.id:
            return dependency

    container_proxy = project.add(
        PBXContainerItemProxy(
            containerPortal=project.project.id,
            proxyType=ProxyType.TARGET_DEPENDENCY,
            remoteGlobalIDString=dependent.id,
            remoteInfo=dependent.name,
        )
    )
    dependency = project.add(
        PBXTargetDependency(
            targetProxy=container_proxy.ref("PBXContainerItemProxy"),
            target=dependent.id,
        )
    )
    host.dependencies.append(dependency.ref("PBXTargetDependency"))
    return dependency


def _strip_references(project: XcodeProject, removed: Set[XcodeID]) -> None:
    def keep(refs: List[Reference]) -> List[Reference]:
        return [r for r in refs if r.id not in removed]

    project.project.targets = keep(project.project.targets)
    for group in project.groups:
        group.children = keep(group.children)
    for phase in project.buildPhases:
        phase.files = keep(phase.files)
    for target in project.nativeTargets:
        target.buildPhases = keep(target.buildPhases)
        target.dependencies = keep(target.dependencies)
    for config_list in project.configurationLists:
        config_list.buildConfigurations = keep(config_list.buildConfigurations)


def _cascade(project: XcodeProject, target: PBXNativeTarget) -> List:
    doomed: List = [target]
    for phase in project.get_phases(target):
        doomed.append(phase)
        doomed.extend(
            bf for bf in (project.resolve(r, PBXBuildFile) for r in phase.files) if bf
        )
    config_list = project.resolve(target.buildConfigurationList, XCConfigurationList)
    if config_list is not None:
        doomed.append(config_list)
        doomed.extend(project.get_configurations(target))
    product_ref = get_product_reference(project, target)
    if product_ref is not None:
        doomed.append(product_ref)
        # embed build files in other targets' copy phases
        doomed.extend(bf for bf in project.buildFiles if bf.fileRef.id == product_ref.id)
    for dependency in project.targetDependencies:
        proxy = project.resolve(dependency.targetProxy, PBXContainerItemProxy)
        incoming = dependency.target == target.id or (
            proxy is not None and proxy.remoteGlobalIDString == target.id
        )
        outgoing = any(r.id == dependency.id for r in target.dependencies)
        if incoming or outgoing:
            doomed.append(dependency)
            if proxy is not None:
                doomed.append(proxy)
    return doomed


def remove_duplicate_targets(project: XcodeProject, product_name: str) -> int:
    """Keep the first target producing product_name, delete the others.

    Removal cascades to everything owned by or pointing at a removed target.
    Returns the number of removed targets.
    """
    targets = [t for t in project.nativeTargets if t.productName == product_name]
    if len(targets) < 2:
        return 0
    doomed: Dict[int, object] = {}
    for target in targets[1:]:
        for obj in _cascade(project, target):
            doomed[id(obj)] = obj
    for obj in doomed.values():
        project.remove(obj)
    _strip_references(project, {obj.id for obj in doomed.values()})
    return len(targets) - 1
