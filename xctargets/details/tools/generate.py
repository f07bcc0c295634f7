from xctargets import Config
from xctargets.details.run_context import RunContext
from xctargets.details.workspace import Workspace
from xctargets.generators.xcode import XcodeGenerator


def generate_main(
    workspace: Workspace,
    config: Config,
    run: RunContext,
    top_level_targets: list[str],
) -> int:
    generator = XcodeGenerator(config, workspace, run)
    exit_code = generator()
    if run.failures:
        run.error("%d target(s) failed: %s", len(run.failures), ", ".join(run.failed_targets))
    return exit_code
