from pathlib import Path
from typing import Dict, List, Optional

from xctargets.config import Config, HostApp
from xctargets.details.target_spec import TargetSpec


class Context:
    def __init__(self, root: Path):
        self.root = root


class ConfigContext(Context):
    FILENAME = "CONFIG.xctargets"
    MODULENAME = "config"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.host: Optional[HostApp] = None
        self.configs: Dict[str, Config] = {}

    def set_host(self, **kwargs):
        if self.host is not None:
            raise RuntimeError("host app has already been declared")
        self.host = HostApp(**kwargs)

    def add_config(self, name: str, **kwargs):
        if name in self.configs:
            raise RuntimeError(f"config {name} has already been registered")
        self.configs[name] = Config(**kwargs)


class TargetContext(Context):
    FILENAME = "TARGET.xctargets"
    MODULENAME = "target"

    def __init__(self, *args, directory: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.directory = directory
        self.targets: List[TargetSpec] = []

    def define_target(self, **kwargs) -> TargetSpec:
        if self.targets:
            # one target per directory, the directory holds its sources
            raise ValueError(
                f"target directory '{self.directory}' already defines "
                f"'{self.targets[0].name}'"
            )
        target = TargetSpec(directory=self.directory, **kwargs)
        self.targets.append(target)
        return target
