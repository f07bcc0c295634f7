from xctargets import Config
from xctargets.details.errors import ConfigurationError
from xctargets.details.paths import TargetPaths
from xctargets.details.run_context import RunContext
from xctargets.details.workspace import Workspace
from xctargets.generators.xcode import TargetIntegrator
from xctargets.generators.xcode.entitlements import compose_entitlements
from xctargets.generators.xcode.model_builder import create_host_project
from xctargets.generators.xcode.settings import DEPLOYMENT_TARGET_KEY


# Check every target the way generate would, without writing anything...
def validate_main(
    workspace: Workspace,
    config: Config,
    run: RunContext,
    top_level_targets: list[str],
) -> int:
    if not workspace.host.bundle_identifier:
        raise ConfigurationError("the host app has no bundle identifier", fatal_for_run=True)
    project = create_host_project(workspace.host, config)
    integrator = TargetIntegrator(config, workspace, project, run)
    for spec in workspace.ios_targets:
        try:
            integrator.validate(spec)
            if spec.characteristics.requires_entitlements:
                compose_entitlements(spec, workspace.host, spec.characteristics)
            paths = TargetPaths.for_target(workspace.root, config.platform_root, spec)
            settings = integrator.resolve_settings(spec, paths)
        except ConfigurationError as e:
            if e.fatal_for_run:
                raise
            run.fail(spec.name, e)
            continue
        run.log_sparse(
            True,
            f"{spec.name} ({spec.kind.value})",
            f"{spec.product_name}, iOS {settings[DEPLOYMENT_TARGET_KEY]}",
        )
    return run.exit_code
