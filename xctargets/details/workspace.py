import os

from importlib.machinery import SourceFileLoader
from importlib.util import spec_from_loader, module_from_spec
from pathlib import Path
from typing import Iterator, List, Optional, Union

from xctargets.config import Config, HostApp
from xctargets.details.context import ConfigContext, TargetContext
from xctargets.details.errors import ConfigurationError
from xctargets.details.kinds import MESSAGE_PAYLOAD_PROVIDERS
from xctargets.details.run_context import RunContext
from xctargets.details.target_spec import TargetSpec


def generate_roots(search_root: Path, filename: str) -> Iterator[Path]:
    for root, dirs, files in os.walk(search_root):
        dirs[:] = sorted(
            d
            for d in dirs
            if not d.startswith((".", "__")) and d not in ("node_modules", "build")
        )
        if filename in files:
            yield Path(root)


def load_user_module(ctx: Union[ConfigContext, TargetContext]):
    module_name = ".".join(
        ["xctargets", "workspace", *ctx.root.parts[1:], ctx.MODULENAME]
    )
    module_path = ctx.root.joinpath(ctx.FILENAME)
    spec = spec_from_loader(
        module_name, SourceFileLoader(module_name, str(module_path))
    )
    if not spec or not spec.loader:
        raise RuntimeError(f"failed to load module spec {module_path}")
    user_module = module_from_spec(spec)
    setattr(user_module, "CTX", ctx)
    spec.loader.exec_module(user_module)


class Workspace:
    def __init__(self, workspace_root: Path = Path(".")):
        self.root = Path(workspace_root).resolve()
        # load workspace config
        config_context = ConfigContext(self.root)
        load_user_module(config_context)
        if config_context.host is None:
            raise ConfigurationError(
                f"{ConfigContext.FILENAME} must declare the host app with CTX.set_host()",
                fatal_for_run=True,
            )
        self.host: HostApp = config_context.host
        self.configs = config_context.configs
        self.targets: List[TargetSpec] = []

    # Discover target definitions for the given config, optionally limited
    # to the requested target names. A target whose definition is invalid is
    # recorded as failed on the run and skipped...
    def configure(
        self,
        config: Config,
        filter_target_names: List[str] = [],
        run: Optional[RunContext] = None,
    ):
        # Empty out available configs once we set one
        self.configs = {}
        targets_root = self.root.joinpath(config.targets_root)
        if not targets_root.is_dir():
            raise ConfigurationError(
                f"targets directory not found: {targets_root}", fatal_for_run=True
            )
        targets = []
        for root in generate_roots(targets_root, TargetContext.FILENAME):
            directory = root.relative_to(self.root).as_posix()
            ctx = TargetContext(root, directory=directory)
            try:
                load_user_module(ctx)
            except ConfigurationError as e:
                if run is None or e.fatal_for_run:
                    raise
                run.fail(directory, e)
                continue
            targets.extend(ctx.targets)
        if filter_target_names:
            missing = set(filter_target_names) - {t.name for t in targets}
            if missing:
                raise ConfigurationError(
                    f"unknown target(s): {', '.join(sorted(missing))}",
                    fatal_for_run=True,
                )
            targets = [t for t in targets if t.name in filter_target_names]
        self._check_message_payload_providers(targets)
        self.targets = targets

    @property
    def ios_targets(self) -> List[TargetSpec]:
        return [t for t in self.targets if t.supports_ios]

    def find_target(self, name: str) -> Optional[TargetSpec]:
        for target in self.targets:
            if target.name == name:
                return target
        return None

    @staticmethod
    def _check_message_payload_providers(targets: List[TargetSpec]):
        # iOS allows a single com.apple.message-payload-provider per app
        providers = [
            t for t in targets if t.supports_ios and t.kind in MESSAGE_PAYLOAD_PROVIDERS
        ]
        if len(providers) > 1:
            names = ", ".join(f"{t.name} ({t.kind.value})" for t in providers)
            raise ConfigurationError(
                "only one message payload provider extension is allowed per app, "
                f"found: {names}",
                fatal_for_run=True,
            )
