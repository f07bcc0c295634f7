from typing import Union


class Config:
    def __init__(
        self,
        platform_root: str = "ios",
        targets_root: str = "targets",
        build_root: Union[str, None] = None,
        build_configs: Union[str, list[str]] = ["Debug", "Release"],
        podfile: Union[str, None] = None,
        credentials_manifest: str = "credentials.json",
        debug: bool = False,
        clean: bool = False,
        **kwargs
    ):
        self.platform_root = platform_root
        self.targets_root = targets_root
        self.build_root = build_root
        self.build_configs = build_configs
        self.podfile = podfile
        self.credentials_manifest = credentials_manifest
        self.debug = debug
        self.clean = clean
        self.__dict__.update(kwargs)


class HostApp:
    def __init__(
        self,
        *,
        name: str,
        bundle_identifier: Union[str, None] = None,
        app_groups: list[str] = [],
        accent_color: Union[str, None] = None,
        deployment_target: Union[str, None] = None,
        build_settings: dict = {},
        schemes: list[str] = [],
        entitlements: dict = {},
    ):
        self.name = name
        self.bundle_identifier = bundle_identifier
        self.app_groups = list(app_groups)
        self.accent_color = accent_color
        self.deployment_target = deployment_target
        self.build_settings = dict(build_settings)
        self.schemes = list(schemes)
        self.entitlements = dict(entitlements)
        # app groups may be declared either way, keep both views in sync
        groups = self.entitlements.get("com.apple.security.application-groups")
        if not self.app_groups and isinstance(groups, list):
            self.app_groups = list(groups)
        elif self.app_groups and groups is None:
            self.entitlements["com.apple.security.application-groups"] = list(
                self.app_groups
            )

    @property
    def url_schemes(self) -> list[str]:
        schemes = list(self.schemes)
        if self.bundle_identifier:
            schemes.append(self.bundle_identifier)
        return schemes
