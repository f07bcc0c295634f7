# Xcode project graph model.
#
# Typed in-memory representation of the objects of a .pbxproj file that the
# target integration touches. Every cross reference is a typed Reference
# resolved through XcodeProject, never a raw dictionary lookup by section.

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Dict,
    Generic,
    Iterator,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
)
from abc import ABC, abstractmethod

import uuid


# Type definition for Xcode object identifiers
class XcodeID(str):
    pass


def generate_id(key: str) -> XcodeID:
    return XcodeID(uuid.uuid5(uuid.NAMESPACE_X500, key).hex.upper()[:24])


# Source Tree values used in PBXFileReference and PBXGroup
class SourceTree(Enum):
    # GROUP - project-level singletons and virtual groups only
    GROUP = "<group>"
    # SOURCE_ROOT - files referenced in place, relative to the platform root
    SOURCE_ROOT = "SOURCE_ROOT"
    # BUILT_PRODUCTS_DIR - product references only
    BUILT_PRODUCTS_DIR = "BUILT_PRODUCTS_DIR"
    # SDKROOT - system frameworks only
    SDKROOT = "SDKROOT"


# Destination subfolder codes used in PBXCopyFilesBuildPhase
class DstSubfolderSpec(Enum):
    ABSOLUTE_PATH = 0
    WRAPPER = 1
    EXECUTABLES = 6
    RESOURCES = 7
    FRAMEWORKS = 10
    SHARED_FRAMEWORKS = 11
    SHARED_SUPPORT = 12
    PLUGINS = 13  # app extensions
    JAVA_RESOURCES = 15
    PRODUCTS_DIRECTORY = 16  # app clips, with an explicit dstPath


# File types used in PBXFileReference
class FileType(Enum):
    C = "sourcecode.c.c"
    C_HEADER = "sourcecode.c.h"
    SWIFT = "sourcecode.swift"
    OBJC = "sourcecode.c.objc"
    STORYBOARD = "file.storyboard"
    PLIST = "text.plist.xml"
    ENTITLEMENTS = "text.plist.entitlements"
    STRINGS = "text.plist.strings"
    ASSET_CATALOG = "folder.assetcatalog"
    FRAMEWORK = "wrapper.framework"
    APP = "wrapper.application"
    APP_EXTENSION = "wrapper.app-extension"
    EXTENSIONKIT_EXTENSION = "wrapper.extensionkit-extension"
    JAVASCRIPT = "sourcecode.javascript"
    JSON = "text.json"
    TEXT = "text"
    FOLDER = "folder"

    @staticmethod
    def from_extension(ext: str) -> "FileType":
        if ext.startswith("."):
            ext = ext[1:]

        ext_to_type = {
            "c": FileType.C,
            "h": FileType.C_HEADER,
            "swift": FileType.SWIFT,
            "m": FileType.OBJC,
            "storyboard": FileType.STORYBOARD,
            "plist": FileType.PLIST,
            "entitlements": FileType.ENTITLEMENTS,
            "strings": FileType.STRINGS,
            "xcassets": FileType.ASSET_CATALOG,
            "framework": FileType.FRAMEWORK,
            "app": FileType.APP,
            "appex": FileType.APP_EXTENSION,
            "js": FileType.JAVASCRIPT,
            "json": FileType.JSON,
        }

        return ext_to_type.get(ext.lower(), FileType.TEXT)


# Product types used in PBXNativeTarget
class ProductType(Enum):
    APPLICATION = "com.apple.product-type.application"
    ON_DEMAND_INSTALL_CAPABLE_APPLICATION = (
        "com.apple.product-type.application.on-demand-install-capable"
    )
    APP_EXTENSION = "com.apple.product-type.app-extension"
    EXTENSIONKIT_EXTENSION = "com.apple.product-type.extensionkit-extension"
    MESSAGES_STICKER_PACK = "com.apple.product-type.app-extension.messages-sticker-pack"
    FRAMEWORK = "com.apple.product-type.framework"

    @property
    def is_application(self) -> bool:
        return self in (
            ProductType.APPLICATION,
            ProductType.ON_DEMAND_INSTALL_CAPABLE_APPLICATION,
        )


# Boolean-like values used in build settings
class YesNo(Enum):
    YES = "YES"
    NO = "NO"


class ProxyType(Enum):
    TARGET_DEPENDENCY = 1  # For target dependencies
    PRODUCT_REFERENCE = 2  # For product references


SettingValue = Union[YesNo, str, List[str]]


# Build setting with type-safe value
@dataclass
class BuildSetting:
    value: SettingValue

    def plain(self) -> Union[str, List[str]]:
        if isinstance(self.value, YesNo):
            return self.value.value
        if isinstance(self.value, list):
            return list(self.value)
        return self.value


ReferenceT = TypeVar("ReferenceT", bound="XcodeObject")


@dataclass
class Reference(Generic[ReferenceT]):
    id: XcodeID
    comment: Optional[str] = None


# Build file attributes controlling how an embedded product is copied
REMOVE_HEADERS_ON_COPY = "RemoveHeadersOnCopy"
CODE_SIGN_ON_COPY = "CodeSignOnCopy"


# Base class for all Xcode objects
@dataclass
class XcodeObject(ABC):
    # ID will be generated in __post_init__
    id: XcodeID = field(init=False)

    def __post_init__(self) -> None:
        self.id = generate_id(self.key())

    @abstractmethod
    def key(self) -> str:
        pass

    def ref(self, comment: Optional[str] = None) -> Reference:
        return Reference(self.id, comment if comment is not None else self.display_name())

    def display_name(self) -> Optional[str]:
        return getattr(self, "name", None)


# PBX* object types
@dataclass
class PBXFileReference(XcodeObject):
    name: str
    path: str
    sourceTree: SourceTree
    fileType: Optional[FileType] = None
    includeInIndex: Optional[int] = None

    def key(self) -> str:
        return f"PBXFileReference:{self.sourceTree.name}:{self.path}"


@dataclass
class PBXBuildFile(XcodeObject):
    fileRef: Reference[PBXFileReference]
    name: str
    owner: str  # phase the build file belongs to
    settings: Optional[Dict[str, List[str]]] = None

    def key(self) -> str:
        return f"PBXBuildFile:{self.fileRef.id}:{self.owner}"

    @property
    def attributes(self) -> List[str]:
        if not self.settings:
            return []
        return list(self.settings.get("ATTRIBUTES", []))

    def ensure_attributes(self, *attributes: str) -> None:
        if self.settings is None:
            self.settings = {}
        current = self.settings.setdefault("ATTRIBUTES", [])
        for attribute in attributes:
            if attribute not in current:
                current.append(attribute)


@dataclass
class BuildPhase(XcodeObject):
    files: List[Reference[PBXBuildFile]]
    target_name: str  # Name of the target this build phase belongs to
    buildActionMask: int = 2147483647
    runOnlyForDeploymentPostprocessing: int = 0

    def key(self) -> str:
        return f"{self.__class__.__name__}:{self.target_name}"

    def display_name(self) -> Optional[str]:
        return self.__class__.__name__[3:-len("BuildPhase")]


@dataclass
class PBXSourcesBuildPhase(BuildPhase):
    pass


@dataclass
class PBXFrameworksBuildPhase(BuildPhase):
    pass


@dataclass
class PBXResourcesBuildPhase(BuildPhase):
    pass


@dataclass
class PBXCopyFilesBuildPhase(BuildPhase):
    dstSubfolderSpec: DstSubfolderSpec = DstSubfolderSpec.PLUGINS
    dstPath: str = ""
    name: Optional[str] = None

    def key(self) -> str:
        return f"{self.__class__.__name__}:{self.target_name}:{self.dstSubfolderSpec.name}:{self.dstPath}"

    def display_name(self) -> Optional[str]:
        return self.name or "CopyFiles"


@dataclass
class PBXGroup(XcodeObject):
    name: Optional[str]
    sourceTree: SourceTree
    children: List[Reference[Union["PBXGroup", PBXFileReference]]]
    path: Optional[str] = None
    group_id: Optional[str] = None  # unique identifier for virtual groups

    def key(self) -> str:
        if self.group_id:
            return f"PBXGroup:{self.name}:{self.group_id}"
        elif self.path:
            return f"PBXGroup:{self.name}:{self.path}"
        return f"PBXGroup:{self.name}"


@dataclass
class PBXContainerItemProxy(XcodeObject):
    containerPortal: XcodeID  # ID of the PBXProject
    remoteGlobalIDString: XcodeID  # ID of the referenced item
    remoteInfo: str  # Name of the referenced item
    proxyType: ProxyType = ProxyType.TARGET_DEPENDENCY

    def key(self) -> str:
        return f"PBXContainerItemProxy:{self.containerPortal}:{self.remoteGlobalIDString}:{self.remoteInfo}"


@dataclass
class PBXTargetDependency(XcodeObject):
    targetProxy: Reference[PBXContainerItemProxy]
    target: Optional[XcodeID] = None  # local target in the same project

    def key(self) -> str:
        return f"PBXTargetDependency:{self.targetProxy.id}:{self.target}"


@dataclass
class XCBuildConfiguration(XcodeObject):
    name: str
    buildSettings: Dict[str, BuildSetting]
    owner: Optional[str] = None  # disambiguate configs across project/targets

    def key(self) -> str:
        owner_part = self.owner if self.owner else "GLOBAL"
        return f"XCBuildConfiguration:{owner_part}:{self.name}"


@dataclass
class XCConfigurationList(XcodeObject):
    buildConfigurations: List[Reference[XCBuildConfiguration]]
    defaultConfigurationIsVisible: int = 0
    defaultConfigurationName: str = "Release"
    owner: Optional[str] = None  # disambiguate lists across project/targets

    def key(self) -> str:
        owner_part = self.owner if self.owner else "GLOBAL"
        return f"XCConfigurationList:{owner_part}"

    def display_name(self) -> Optional[str]:
        return f'Build configuration list for "{self.owner}"'


@dataclass
class PBXNativeTarget(XcodeObject):
    name: str
    buildConfigurationList: Reference[XCConfigurationList]
    buildPhases: List[Reference[BuildPhase]]
    dependencies: List[Reference[PBXTargetDependency]]
    productName: str
    productType: ProductType
    productReference: Optional[Reference[PBXFileReference]] = None

    def key(self) -> str:
        return f"PBXNativeTarget:{self.name}"


@dataclass
class PBXProject(XcodeObject):
    name: str
    buildConfigurationList: Reference[XCConfigurationList]
    mainGroup: Reference[PBXGroup]
    productRefGroup: Reference[PBXGroup]
    targets: List[Reference[PBXNativeTarget]]
    compatibilityVersion: str = "Xcode 14.0"
    developmentRegion: str = "en"
    hasScannedForEncodings: int = 0
    knownRegions: List[str] = field(default_factory=lambda: ["en", "Base"])
    projectDirPath: str = ""
    projectRoot: str = ""

    def key(self) -> str:
        return f"PBXProject:{self.name}"


ObjectT = TypeVar("ObjectT", bound=XcodeObject)


# Complete project representation, one typed collection per node kind
@dataclass
class XcodeProject:
    project: PBXProject
    fileReferences: List[PBXFileReference] = field(default_factory=list)
    groups: List[PBXGroup] = field(default_factory=list)
    buildFiles: List[PBXBuildFile] = field(default_factory=list)
    buildPhases: List[BuildPhase] = field(default_factory=list)
    nativeTargets: List[PBXNativeTarget] = field(default_factory=list)
    buildConfigurations: List[XCBuildConfiguration] = field(default_factory=list)
    configurationLists: List[XCConfigurationList] = field(default_factory=list)
    targetDependencies: List[PBXTargetDependency] = field(default_factory=list)
    containerItemProxies: List[PBXContainerItemProxy] = field(default_factory=list)
    _index: Dict[XcodeID, XcodeObject] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._index[self.project.id] = self.project
        for collection in self._collections():
            for obj in collection:
                self._index[obj.id] = obj

    def _collections(self) -> Iterator[List]:
        yield self.fileReferences
        yield self.groups
        yield self.buildFiles
        yield self.buildPhases
        yield self.nativeTargets
        yield self.buildConfigurations
        yield self.configurationLists
        yield self.targetDependencies
        yield self.containerItemProxies

    def _collection_for(self, obj: XcodeObject) -> List:
        if isinstance(obj, PBXFileReference):
            return self.fileReferences
        if isinstance(obj, PBXGroup):
            return self.groups
        if isinstance(obj, PBXBuildFile):
            return self.buildFiles
        if isinstance(obj, BuildPhase):
            return self.buildPhases
        if isinstance(obj, PBXNativeTarget):
            return self.nativeTargets
        if isinstance(obj, XCBuildConfiguration):
            return self.buildConfigurations
        if isinstance(obj, XCConfigurationList):
            return self.configurationLists
        if isinstance(obj, PBXTargetDependency):
            return self.targetDependencies
        if isinstance(obj, PBXContainerItemProxy):
            return self.containerItemProxies
        raise TypeError(f"unsupported object type {type(obj).__name__}")

    def add(self, obj: ObjectT) -> ObjectT:
        # IDs derive from object keys; a second object with the same key
        # (e.g. two targets sharing a name) gets a salted ID instead.
        salt = 1
        while obj.id in self._index:
            obj.id = generate_id(f"{obj.key()}#{salt}")
            salt += 1
        self._collection_for(obj).append(obj)
        self._index[obj.id] = obj
        return obj

    def remove(self, obj: XcodeObject) -> None:
        collection = self._collection_for(obj)
        collection[:] = [o for o in collection if o is not obj]
        if self._index.get(obj.id) is obj:
            del self._index[obj.id]

    def contains(self, obj_id: XcodeID) -> bool:
        return obj_id in self._index

    def resolve(self, ref: Optional[Reference], kind: Type[ObjectT]) -> Optional[ObjectT]:
        if ref is None:
            return None
        obj = self._index.get(ref.id)
        if isinstance(obj, kind):
            return obj
        return None

    def objects(self) -> Iterator[XcodeObject]:
        yield self.project
        for collection in self._collections():
            yield from collection

    def get_phases(self, target: PBXNativeTarget, kind: Type[ObjectT] = BuildPhase) -> List[ObjectT]:
        phases = []
        for ref in target.buildPhases:
            phase = self.resolve(ref, kind)
            if phase is not None:
                phases.append(phase)
        return phases

    def get_configurations(self, target: PBXNativeTarget) -> List[XCBuildConfiguration]:
        config_list = self.resolve(target.buildConfigurationList, XCConfigurationList)
        if config_list is None:
            return []
        configs = []
        for ref in config_list.buildConfigurations:
            config = self.resolve(ref, XCBuildConfiguration)
            if config is not None:
                configs.append(config)
        return configs

    @property
    def main_group(self) -> PBXGroup:
        group = self.resolve(self.project.mainGroup, PBXGroup)
        assert group is not None, "project has no main group"
        return group

    @property
    def products_group(self) -> PBXGroup:
        group = self.resolve(self.project.productRefGroup, PBXGroup)
        assert group is not None, "project has no products group"
        return group
