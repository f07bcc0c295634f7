# Xcode project model builder.
#
# This module builds the in-memory project graph of the primary application
# that targets are integrated into. The on-disk project format is never
# parsed; the host target is recreated from the host descriptor declared in
# CONFIG.xctargets.

from typing import Dict, List

from xctargets.config import Config, HostApp
from xctargets.details.kinds import FALLBACK_DEPLOYMENT_TARGET
from xctargets.details.as_iterator import str_iter
from xctargets.generators.xcode.model import (
    BuildSetting,
    FileType,
    PBXFileReference,
    PBXFrameworksBuildPhase,
    PBXGroup,
    PBXNativeTarget,
    PBXProject,
    PBXResourcesBuildPhase,
    PBXSourcesBuildPhase,
    ProductType,
    Reference,
    SourceTree,
    XCBuildConfiguration,
    XCConfigurationList,
    XcodeProject,
    YesNo,
)

# Project level defaults every generated configuration carries
PROJECT_SETTINGS: Dict[str, BuildSetting] = {
    "ALWAYS_SEARCH_USER_PATHS": BuildSetting(value=YesNo.NO),
    "CLANG_ENABLE_MODULES": BuildSetting(value=YesNo.YES),
    "CLANG_ENABLE_OBJC_ARC": BuildSetting(value=YesNo.YES),
    "SDKROOT": BuildSetting(value="iphoneos"),
}


def _build_settings(values: Dict[str, object]) -> Dict[str, BuildSetting]:
    settings: Dict[str, BuildSetting] = {}
    for key, value in values.items():
        if isinstance(value, (list, tuple)):
            settings[key] = BuildSetting(value=[str(v) for v in value])
        else:
            settings[key] = BuildSetting(value=str(value))
    return settings


def create_host_project(host: HostApp, config: Config) -> XcodeProject:
    build_configs: List[str] = [str(c) for c in str_iter(config.build_configs)]
    if not build_configs:
        raise ValueError("at least one build configuration is required")

    # Create base project structure
    main_group = PBXGroup(name="", sourceTree=SourceTree.GROUP, children=[])
    products_group = PBXGroup(
        name="Products", sourceTree=SourceTree.GROUP, children=[], group_id="products"
    )
    host_group = PBXGroup(
        name=host.name,
        sourceTree=SourceTree.GROUP,
        children=[],
        path=host.name,
    )
    main_group.children.extend(
        [Reference(host_group.id, host.name), Reference(products_group.id, "Products")]
    )

    # Create project-level configuration list - one config per build config
    project_configs = [
        XCBuildConfiguration(
            name=name,
            buildSettings=dict(PROJECT_SETTINGS),
            owner="PROJECT",
        )
        for name in build_configs
    ]
    project_config_list = XCConfigurationList(
        buildConfigurations=[Reference(c.id, c.name) for c in project_configs],
        defaultConfigurationName=project_configs[-1].name,
        owner="PROJECT",
    )

    project = PBXProject(
        name=host.name,
        buildConfigurationList=project_config_list.ref(),
        mainGroup=Reference(main_group.id),
        productRefGroup=Reference(products_group.id, "Products"),
        targets=[],
    )

    # Host application settings as declared, the resolver inherits from these
    host_values: Dict[str, object] = {
        "PRODUCT_NAME": "$(TARGET_NAME)",
        "IPHONEOS_DEPLOYMENT_TARGET": host.deployment_target
        or FALLBACK_DEPLOYMENT_TARGET,
        "INFOPLIST_FILE": f"{host.name}/Info.plist",
    }
    if host.bundle_identifier:
        host_values["PRODUCT_BUNDLE_IDENTIFIER"] = host.bundle_identifier
    host_values.update(host.build_settings)

    host_configs = [
        XCBuildConfiguration(
            name=name,
            buildSettings=_build_settings(host_values),
            owner=host.name,
        )
        for name in build_configs
    ]
    host_config_list = XCConfigurationList(
        buildConfigurations=[Reference(c.id, c.name) for c in host_configs],
        defaultConfigurationName=host_configs[-1].name,
        owner=host.name,
    )

    product_ref = PBXFileReference(
        name=f"{host.name}.app",
        path=f"{host.name}.app",
        sourceTree=SourceTree.BUILT_PRODUCTS_DIR,
        fileType=FileType.APP,
        includeInIndex=0,
    )
    products_group.children.append(product_ref.ref())

    phases = [
        PBXSourcesBuildPhase(files=[], target_name=host.name),
        PBXFrameworksBuildPhase(files=[], target_name=host.name),
        PBXResourcesBuildPhase(files=[], target_name=host.name),
    ]

    host_target = PBXNativeTarget(
        name=host.name,
        buildConfigurationList=host_config_list.ref(),
        buildPhases=[phase.ref() for phase in phases],
        dependencies=[],
        productName=host.name,
        productType=ProductType.APPLICATION,
        productReference=product_ref.ref(),
    )
    project.targets.append(host_target.ref())

    return XcodeProject(
        project=project,
        fileReferences=[product_ref],
        groups=[main_group, products_group, host_group],
        buildPhases=list(phases),
        nativeTargets=[host_target],
        buildConfigurations=project_configs + host_configs,
        configurationLists=[project_config_list, host_config_list],
    )
