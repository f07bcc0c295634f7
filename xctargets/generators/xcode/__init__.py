import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from xctargets import Config
from xctargets.details.errors import ConfigurationError, IOWarning, ManifestMissing
from xctargets.details.glob_filter import find_swift_sources
from xctargets.details.kinds import TypeCharacteristics
from xctargets.details.paths import TargetPaths
from xctargets.details.run_context import RunContext
from xctargets.details.target_spec import TargetSpec
from xctargets.details.workspace import Workspace
from xctargets.generators.cocoapods import PodfileComposer
from xctargets.generators.cocoapods.podfile import PodfileFlavor
from xctargets.generators.xcode.assets import (
    copy_user_assets,
    create_assets_root,
    create_colorset,
    create_imageset,
)
from xctargets.generators.xcode.embed import configure_embed
from xctargets.generators.xcode.entitlements import (
    Entitlements,
    compose_entitlements,
    load_credentials_manifest,
    save_credentials_manifest,
    upsert_app_extension,
    write_entitlements,
)
from xctargets.generators.xcode.formatter import write_project
from xctargets.generators.xcode.infoplist import (
    info_plist_for,
    plist_signature,
    signature_inputs,
    write_info_plist,
)
from xctargets.generators.xcode.model import (
    PBXFrameworksBuildPhase,
    PBXGroup,
    PBXNativeTarget,
    PBXResourcesBuildPhase,
    PBXSourcesBuildPhase,
    ProductType,
    XcodeProject,
)
from xctargets.generators.xcode.model_builder import create_host_project
from xctargets.generators.xcode.model_editor import (
    add_resource_file,
    add_source_file,
    add_target_dependency,
    apply_build_settings,
    create_target,
    ensure_group,
    ensure_phases,
    ensure_virtual_root,
    find_target_by_product_name,
    get_application_target,
    get_host_build_settings,
    link_library,
    remove_build_phases,
    remove_build_setting,
    remove_duplicate_targets,
    set_product_type,
)
from xctargets.generators.xcode.settings import (
    DEPLOYMENT_TARGET_KEY,
    ResolvedSettings,
    compute_type_defaults,
    resolve,
)
from xctargets.generators.xcode.swift_template import (
    CONTROLLER_FILENAME,
    render_view_controller,
    write_view_controller,
)
from xctargets.generators.xcode.utils import xcode_project_path
from xctargets.generators.xcode.validator import validate_project

ACCENT_COLOR = "$accent"


class TargetIntegrator:
    """Integrates declared targets into one project graph.

    Targets are processed sequentially against the same graph; a later
    target observes every mutation made for the earlier ones. Generated
    artifacts are written as side files while the graph stays in memory.
    """

    def __init__(
        self,
        config: Config,
        workspace: Workspace,
        project: XcodeProject,
        run: RunContext,
        credentials: Optional[Dict[str, Any]] = None,
    ):
        self.config = config
        self.workspace = workspace
        self.project = project
        self.run = run
        self.credentials: Dict[str, Any] = credentials if credentials is not None else {}
        self.logger = logging.getLogger(self.__class__.__name__)
        self.touched: List[str] = []
        # product name -> spec that claimed it in this run
        self.claimed: Dict[str, TargetSpec] = {}
        host = get_application_target(project)
        if host is None:
            raise ConfigurationError(
                "the project has no application target to integrate into",
                fatal_for_run=True,
            )
        self.host = host
        self.podfile = PodfileComposer(self.podfile_path, workspace.host.name)

    @property
    def podfile_path(self) -> Path:
        if self.config.podfile:
            return self.workspace.root.joinpath(self.config.podfile)
        return self.workspace.root.joinpath(self.config.platform_root, "Podfile")

    def __call__(self) -> int:
        targets = self.workspace.ios_targets
        self.run.log_sparse(True, f"Found {len(targets)} target(s)")
        for spec in targets:
            try:
                self.integrate(spec)
            except ConfigurationError as e:
                if e.fatal_for_run:
                    raise
                self.run.fail(spec.name, e)

        # creation never checks for an existing target, reconcile here
        for product_name in dict.fromkeys(self.touched):
            removed = remove_duplicate_targets(self.project, product_name)
            if removed:
                self.run.verbose("Removed %d duplicate(s) of %s", removed, product_name)

        if errors := validate_project(self.project):
            raise ValueError(f"Invalid project: {errors}")
        return self.run.exit_code

    def integrate(self, spec: TargetSpec) -> PBXNativeTarget:
        host_app = self.workspace.host
        characteristics = spec.characteristics
        if not host_app.bundle_identifier:
            raise ConfigurationError(
                "the host app has no bundle identifier", fatal_for_run=True
            )
        self.validate(spec)
        self.claim_product_name(spec)
        entitlements = None
        if characteristics.requires_entitlements:
            entitlements = compose_entitlements(spec, host_app, characteristics)

        paths = TargetPaths.for_target(
            self.workspace.root, self.config.platform_root, spec
        )
        settings = self.resolve_settings(spec, paths)
        target = self.ensure_target(spec, settings)
        self.touched.append(target.productName)

        self.ensure_phases(target, characteristics)
        group = ensure_group(
            self.project, ensure_virtual_root(self.project), spec.product_name
        )
        if characteristics.requires_code:
            self.add_sources(spec, target, group, paths)
        self.add_info_plist(spec, target, group, paths)
        self.add_assets(spec, target, group, paths)
        if characteristics.requires_code:
            for framework in self.frameworks(spec):
                link_library(self.project, target, framework)

        add_target_dependency(self.project, self.host, target)
        configure_embed(
            self.project, self.host, target, characteristics.embed_type, self.run
        )

        bundle_identifier = str(settings["PRODUCT_BUNDLE_IDENTIFIER"])
        if entitlements is not None:
            self.add_entitlements(target, group, paths, entitlements)
        upsert_app_extension(
            self.credentials, spec.product_name, bundle_identifier, entitlements
        )

        if characteristics.requires_code:
            self.update_podfile(spec, settings)
        self.run.log_sparse(
            True, f"Configured {spec.kind.value} target", spec.product_name
        )
        return target

    def validate(self, spec: TargetSpec) -> None:
        if spec.entry is None:
            if spec.excluded_packages:
                self.run.warn(
                    "%s: excluded_packages only apply to targets with an entry point, ignoring them",
                    spec.name,
                )
            return
        if not spec.characteristics.supports_react_native:
            raise ConfigurationError(
                f"target '{spec.name}' ({spec.kind.value}) cannot use a React Native entry point",
                target=spec.name,
            )
        if not self.workspace.root.joinpath(spec.entry).is_file():
            raise ConfigurationError(
                f"entry point of target '{spec.name}' not found: {spec.entry}",
                target=spec.name,
            )

    def claim_product_name(self, spec: TargetSpec) -> None:
        # two specs must never converge on one native target
        other = self.claimed.setdefault(spec.product_name, spec)
        if other.directory != spec.directory:
            raise ConfigurationError(
                f"target '{spec.name}' has the same product name {spec.product_name} "
                f"as '{other.name}' ({other.directory})",
                target=spec.name,
            )

    def resolve_settings(self, spec: TargetSpec, paths: TargetPaths) -> ResolvedSettings:
        type_defaults = compute_type_defaults(
            spec, spec.characteristics, self.workspace.host, paths
        )
        host_settings = get_host_build_settings(self.project, self.host)
        settings = resolve(spec, host_settings, type_defaults)
        self.logger.debug("Build settings of %s:", spec.product_name)
        settings.log(self.logger)
        return settings

    def ensure_target(self, spec: TargetSpec, settings: ResolvedSettings) -> PBXNativeTarget:
        product_type = ProductType(spec.characteristics.product_type)
        target = find_target_by_product_name(self.project, spec.product_name)
        if target is None:
            target = create_target(
                self.project,
                spec.product_name,
                product_type,
                str(settings["PRODUCT_BUNDLE_IDENTIFIER"]),
                host=self.host,
            )
            self.run.verbose("Created target %s", target.name)
        else:
            set_product_type(self.project, target, product_type)
            self.run.verbose("Reusing target %s", target.name)
        apply_build_settings(self.project, target, settings)
        # applications are installed, a stale value would hide them from archives
        if product_type.is_application and "SKIP_INSTALL" not in settings:
            remove_build_setting(self.project, target, "SKIP_INSTALL")
        return target

    def ensure_phases(self, target: PBXNativeTarget, characteristics: TypeCharacteristics) -> None:
        if characteristics.requires_code:
            ensure_phases(self.project, target)
            return
        ensure_phases(self.project, target, (PBXResourcesBuildPhase,))
        for phase_type in (PBXSourcesBuildPhase, PBXFrameworksBuildPhase):
            if remove_build_phases(self.project, target, phase_type):
                self.run.verbose("Removed %s from asset-only %s", phase_type.__name__, target.name)

    def add_sources(
        self,
        spec: TargetSpec,
        target: PBXNativeTarget,
        group: PBXGroup,
        paths: TargetPaths,
    ) -> None:
        sources = [paths.source_dir.joinpath(f) for f in find_swift_sources(paths.source_dir)]
        if spec.entry and not sources:
            controller = paths.build_dir.joinpath(CONTROLLER_FILENAME)
            try:
                write_view_controller(
                    controller,
                    render_view_controller(spec.product_name, spec.name, spec.entry),
                )
                sources.append(controller)
                self.run.verbose("Generated %s for %s", CONTROLLER_FILENAME, spec.name)
            except IOWarning as e:
                self.run.warn("%s: %s", spec.name, e)
        self.run.verbose("Found %d Swift file(s) for %s", len(sources), spec.name)
        for source in sources:
            add_source_file(self.project, target, group, paths.relative(source))

    def add_info_plist(
        self,
        spec: TargetSpec,
        target: PBXNativeTarget,
        group: PBXGroup,
        paths: TargetPaths,
    ) -> None:
        schemes = self.workspace.host.url_schemes
        data = info_plist_for(spec, spec.characteristics, schemes)
        signature = plist_signature(signature_inputs(spec, schemes))
        try:
            if write_info_plist(paths.info_plist, data, signature, clean=self.config.clean):
                self.run.verbose("Wrote %s", paths.info_plist)
        except IOWarning as e:
            self.run.warn("%s: %s", spec.name, e)
        add_source_file(self.project, target, group, paths.relative(paths.info_plist))

    def colors(self, spec: TargetSpec) -> Dict[str, Any]:
        colors: Dict[str, Any] = dict(spec.colors)
        if ACCENT_COLOR not in colors and self.workspace.host.accent_color:
            colors[ACCENT_COLOR] = self.workspace.host.accent_color
        return colors

    def add_assets(
        self,
        spec: TargetSpec,
        target: PBXNativeTarget,
        group: PBXGroup,
        paths: TargetPaths,
    ) -> None:
        try:
            if copy_user_assets(paths.user_assets, paths.assets):
                self.run.verbose("Copied %s", paths.user_assets)
            else:
                create_assets_root(paths.assets)
        except IOWarning as e:
            self.run.warn("%s: %s", spec.name, e)

        for name, value in self.colors(spec).items():
            if isinstance(value, str):
                light, dark = value, None
            else:
                light = value.get("light") or value.get("color")
                dark = value.get("dark") or value.get("darkColor")
            try:
                create_colorset(paths.assets.joinpath(f"{name}.colorset"), light, dark)
            except IOWarning as e:
                self.run.warn("%s: %s", spec.name, e)

        for name, source in spec.images.items():
            try:
                create_imageset(
                    paths.assets.joinpath(f"{name}.imageset"),
                    self.workspace.root.joinpath(spec.directory, source),
                )
            except IOWarning as e:
                self.run.warn("%s: %s", spec.name, e)

        if paths.assets.is_dir():
            add_resource_file(self.project, target, group, paths.relative(paths.assets))

    @staticmethod
    def frameworks(spec: TargetSpec) -> List[str]:
        names = [*spec.characteristics.frameworks, *spec.frameworks]
        return list(dict.fromkeys(names))

    def add_entitlements(
        self,
        target: PBXNativeTarget,
        group: PBXGroup,
        paths: TargetPaths,
        entitlements: Entitlements,
    ) -> None:
        try:
            write_entitlements(paths.entitlements, entitlements)
        except IOWarning as e:
            self.run.warn("%s: %s", target.name, e)
        add_source_file(self.project, target, group, paths.relative(paths.entitlements))

    def update_podfile(self, spec: TargetSpec, settings: ResolvedSettings) -> None:
        flavor = (
            PodfileFlavor.REACT_NATIVE
            if spec.uses_react_native
            else PodfileFlavor.STANDALONE
        )
        try:
            if self.podfile.add_target(
                spec.product_name, str(settings[DEPLOYMENT_TARGET_KEY]), flavor
            ):
                self.run.verbose("Added %s to %s", spec.product_name, self.podfile_path)
        except ManifestMissing as e:
            self.run.fail(spec.name, e)


class XcodeGenerator:
    def __init__(
        self,
        config: Config,
        workspace: Workspace,
        run: Optional[RunContext] = None,
        project: Optional[XcodeProject] = None,
    ):
        self.config = config
        self.workspace = workspace
        self.run = run if run is not None else RunContext(debug=config.debug)
        self.project = project
        self.output_root = xcode_project_path(config, workspace.root, workspace.host.name)

    def __call__(self) -> int:
        """Integrate all targets and write the Xcode project."""
        project = self.project
        if project is None:
            project = create_host_project(self.workspace.host, self.config)

        credentials_path = self.workspace.root.joinpath(self.config.credentials_manifest)
        credentials = load_credentials_manifest(credentials_path)
        integrator = TargetIntegrator(
            self.config, self.workspace, project, self.run, credentials
        )
        exit_code = integrator()

        save_credentials_manifest(credentials_path, credentials)
        project_file = write_project(project, self.output_root)
        self.run.log_sparse(True, "Wrote Xcode project", str(project_file))
        return exit_code
