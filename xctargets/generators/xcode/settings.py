# Build settings resolution.
#
# A target's effective settings are merged from four layers, highest wins:
#
#   1. explicit per-target overrides (ios={"build_settings": ...})
#   2. the same key inherited from the host application target
#   3. defaults computed from the target kind
#   4. hard fallbacks
#
# Two pins are applied on top of the merged result: targets embedding the
# React Native runtime are raised to its minimum deployment target, and App
# Clips get system-only search paths so they never resolve CocoaPods
# artifacts of the host.

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Union

from xctargets.config import HostApp
from xctargets.details.kinds import (
    REACT_NATIVE_MINIMUM_DEPLOYMENT_TARGET,
    EmbedType,
    TypeCharacteristics,
)
from xctargets.details.paths import TargetPaths
from xctargets.details.versions import max_version
from xctargets.details.target_spec import TargetSpec

SettingValue = Union[str, List[str]]

# Host settings every target inherits when present
INHERITABLE_KEYS = frozenset(
    {
        "CLANG_ENABLE_MODULES",
        "TARGETED_DEVICE_FAMILY",
        "MARKETING_VERSION",
        "CURRENT_PROJECT_VERSION",
        "SWIFT_VERSION",
        "SWIFT_EMIT_LOC_STRINGS",
    }
)

# Settings that identify the target itself, never taken from the host
TARGET_IDENTITY_KEYS = frozenset(
    {
        "PRODUCT_NAME",
        "PRODUCT_BUNDLE_IDENTIFIER",
        "INFOPLIST_FILE",
        "CODE_SIGN_ENTITLEMENTS",
        "IPHONEOS_DEPLOYMENT_TARGET",
        "SKIP_INSTALL",
    }
)

FALLBACK_SETTINGS: Dict[str, SettingValue] = {
    "SWIFT_VERSION": "5.0",
}

# App Clips are installed on their own and must not see the host's pods
APP_CLIP_PINNED_SETTINGS: Dict[str, SettingValue] = {
    "ALWAYS_EMBED_SWIFT_STANDARD_LIBRARIES": "YES",
    "LIBRARY_SEARCH_PATHS": [
        "$(SDKROOT)/usr/lib/swift",
        "$(TOOLCHAIN_DIR)/usr/lib/swift/$(PLATFORM_NAME)",
    ],
    "FRAMEWORK_SEARCH_PATHS": "$(PLATFORM_DIR)/Developer/Library/Frameworks",
    "HEADER_SEARCH_PATHS": "$(SDKROOT)/usr/include",
    "LD_RUNPATH_SEARCH_PATHS": [
        "@executable_path/Frameworks",
        "@loader_path/Frameworks",
    ],
    "GENERATE_INFOPLIST_FILE": "YES",
    "INFOPLIST_KEY_UIApplicationSceneManifest_Generation": "YES",
    "INFOPLIST_KEY_UIApplicationSupportsIndirectInputEvents": "YES",
    "INFOPLIST_KEY_UILaunchScreen_Generation": "YES",
    "ENABLE_PREVIEWS": "YES",
}

# References to the CocoaPods output directory or its xcconfig variables
DEPENDENCY_MANAGER_PATTERN = re.compile(r"Pods|PODS_")

DEPLOYMENT_TARGET_KEY = "IPHONEOS_DEPLOYMENT_TARGET"


class SettingSource(Enum):
    OVERRIDE = "override"
    HOST = "host"
    TYPE_DEFAULT = "type default"
    FALLBACK = "fallback"
    PINNED = "pinned"


@dataclass
class ResolvedSettings(Mapping):
    values: Dict[str, SettingValue] = field(default_factory=dict)
    provenance: Dict[str, SettingSource] = field(default_factory=dict)

    def __getitem__(self, key: str) -> SettingValue:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def set(self, key: str, value: SettingValue, source: SettingSource) -> None:
        self.values[key] = value
        self.provenance[key] = source

    def drop(self, key: str) -> None:
        self.values.pop(key, None)
        self.provenance.pop(key, None)

    def log(self, logger: logging.Logger) -> None:
        for key in sorted(self.values):
            logger.debug(
                "  %s = %s (%s)", key, self.values[key], self.provenance[key].value
            )


def resolve_deployment_target(
    explicit: Optional[str],
    type_minimum: str,
    host: Optional[str],
    uses_bridge: bool = False,
) -> str:
    """Deployment target of a target.

    An explicit value wins, otherwise the newer of the kind minimum and the
    host's version. Targets that embed the React Native runtime are then
    raised to its minimum; the raise never lowers a newer version.
    """
    version = explicit or max_version(type_minimum, host)
    assert version is not None
    if uses_bridge:
        version = max_version(version, REACT_NATIVE_MINIMUM_DEPLOYMENT_TARGET)
    return version


def compute_type_defaults(
    spec: TargetSpec,
    characteristics: TypeCharacteristics,
    host: HostApp,
    paths: TargetPaths,
) -> Dict[str, SettingValue]:
    defaults: Dict[str, SettingValue] = {
        "PRODUCT_NAME": "$(TARGET_NAME)",
        "INFOPLIST_FILE": paths.relative(paths.info_plist),
        "CODE_SIGN_STYLE": "Automatic",
        DEPLOYMENT_TARGET_KEY: resolve_deployment_target(
            spec.deployment_target,
            characteristics.minimum_deployment_target,
            host.deployment_target,
            spec.uses_react_native,
        ),
    }
    if host.bundle_identifier:
        defaults["PRODUCT_BUNDLE_IDENTIFIER"] = spec.bundle_identifier(
            host.bundle_identifier
        )
    if characteristics.requires_entitlements:
        defaults["CODE_SIGN_ENTITLEMENTS"] = paths.relative(paths.entitlements)
    if characteristics.embed_type == EmbedType.FOUNDATION_EXTENSION:
        defaults["SKIP_INSTALL"] = "YES"

    for key, value in characteristics.build_settings.items():
        # Color names are only valid when the colorset gets generated
        if value == "$accent" and "$accent" not in spec.colors and not host.accent_color:
            continue
        if value.startswith("$") and value != "$accent" and value not in spec.colors:
            continue
        defaults[key] = value
    return defaults


def _scrub_dependency_manager(value: SettingValue) -> Optional[SettingValue]:
    if isinstance(value, list):
        kept = [v for v in value if not DEPENDENCY_MANAGER_PATTERN.search(v)]
        return kept if kept else None
    if DEPENDENCY_MANAGER_PATTERN.search(value):
        return None
    return value


def resolve(
    spec: TargetSpec,
    host_settings: Mapping[str, SettingValue],
    type_defaults: Mapping[str, SettingValue],
    *,
    overrides: Optional[Mapping[str, SettingValue]] = None,
) -> ResolvedSettings:
    """Merge the settings layers of one target.

    Never raises; keys without a value in any layer are omitted.
    """
    if overrides is None:
        overrides = spec.build_settings
    characteristics = spec.characteristics
    resolved = ResolvedSettings()

    for key, value in FALLBACK_SETTINGS.items():
        resolved.set(key, value, SettingSource.FALLBACK)
    for key, value in type_defaults.items():
        resolved.set(key, value, SettingSource.TYPE_DEFAULT)
    inheritable = (INHERITABLE_KEYS | set(type_defaults)) - TARGET_IDENTITY_KEYS
    for key, value in host_settings.items():
        if key in inheritable and value not in (None, ""):
            resolved.set(key, value, SettingSource.HOST)
    for key, value in overrides.items():
        resolved.set(key, value, SettingSource.OVERRIDE)

    if spec.uses_react_native and DEPLOYMENT_TARGET_KEY in resolved:
        raised = max_version(
            str(resolved[DEPLOYMENT_TARGET_KEY]), REACT_NATIVE_MINIMUM_DEPLOYMENT_TARGET
        )
        if raised != resolved[DEPLOYMENT_TARGET_KEY]:
            resolved.set(DEPLOYMENT_TARGET_KEY, raised, SettingSource.PINNED)

    if characteristics.standalone:
        for key, value in APP_CLIP_PINNED_SETTINGS.items():
            resolved.set(key, value, SettingSource.PINNED)
        for key in list(resolved):
            scrubbed = _scrub_dependency_manager(resolved[key])
            if scrubbed is None:
                resolved.drop(key)
            elif scrubbed != resolved[key]:
                resolved.set(key, scrubbed, resolved.provenance[key])
    return resolved
