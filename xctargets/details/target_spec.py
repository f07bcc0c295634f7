import re
from typing import Dict, Optional, Union

from xctargets.details.errors import ConfigurationError
from xctargets.details.kinds import (
    TargetKind,
    TypeCharacteristics,
    characteristics_for,
)

ColorValue = Union[str, Dict[str, str]]

# Per-platform keys accepted under `ios=`
IOS_OVERRIDE_KEYS = frozenset(
    {
        "bundle_identifier",
        "deployment_target",
        "build_settings",
        "swift_version",
        "icon",
        "colors",
        "images",
        "frameworks",
        "entitlements",
        "info_plist",
        "display_name",
    }
)


# Xcode target names are limited to alphanumerics, the suffix keeps the
# target directory from colliding with the host app on case-insensitive
# filesystems ("ShareExtension" vs "shareextension").
def sanitize_target_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", name) + "Target"


class TargetSpec:
    def __init__(
        self,
        *,
        type: str,
        name: str,
        directory: str,
        display_name: Optional[str] = None,
        platforms: list = ["ios"],
        app_group: Optional[str] = None,
        entry: Optional[str] = None,
        excluded_packages: list = [],
        colors: Dict[str, ColorValue] = {},
        images: Dict[str, str] = {},
        frameworks: list = [],
        entitlements: dict = {},
        info_plist: dict = {},
        ios: Optional[dict] = None,
    ):
        if not name:
            raise ConfigurationError(
                f"target in {directory} must specify 'name'", target=directory
            )
        if not platforms:
            raise ConfigurationError(
                f"target '{name}' must specify platforms (e.g. platforms=['ios'])",
                target=name,
            )
        ios = dict(ios or {})
        unknown = set(ios) - IOS_OVERRIDE_KEYS
        if unknown:
            raise ConfigurationError(
                f"target '{name}' has unknown ios keys: {sorted(unknown)}",
                target=name,
            )
        self.kind = TargetKind.parse(type)
        self.name = name
        self.directory = directory
        self.display_name = ios.get("display_name", display_name)
        self.platforms = list(platforms)
        self.app_group = app_group
        self.entry = entry
        self.excluded_packages = list(excluded_packages)
        self.colors = {**colors, **ios.get("colors", {})}
        self.images = {**images, **ios.get("images", {})}
        self.frameworks = [*frameworks, *ios.get("frameworks", [])]
        self.entitlements = {**entitlements, **ios.get("entitlements", {})}
        self.info_plist = {**info_plist, **ios.get("info_plist", {})}
        self.ios = ios

    @property
    def characteristics(self) -> TypeCharacteristics:
        return characteristics_for(self.kind)

    @property
    def target_name(self) -> str:
        return self.display_name or self.name

    @property
    def product_name(self) -> str:
        return sanitize_target_name(self.target_name)

    @property
    def supports_ios(self) -> bool:
        return "ios" in self.platforms

    @property
    def deployment_target(self) -> Optional[str]:
        return self.ios.get("deployment_target")

    @property
    def build_settings(self) -> Dict[str, Union[str, list]]:
        settings = dict(self.ios.get("build_settings", {}))
        if self.ios.get("swift_version") is not None:
            settings["SWIFT_VERSION"] = str(self.ios["swift_version"])
        return settings

    @property
    def icon(self) -> Optional[str]:
        return self.ios.get("icon")

    @property
    def uses_react_native(self) -> bool:
        return self.entry is not None

    def bundle_identifier(self, host_bundle_identifier: str) -> str:
        explicit = self.ios.get("bundle_identifier")
        if explicit:
            return explicit
        suffix = self.characteristics.bundle_identifier_suffix or sanitize_target_name(
            self.name
        )
        return f"{host_bundle_identifier}.{suffix}"

    def __repr__(self) -> str:
        return f"TargetSpec({self.kind.value}:{self.name})"
