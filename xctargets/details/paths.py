import os
from dataclasses import dataclass
from pathlib import Path

from xctargets.details.kinds import TargetKind
from xctargets.details.target_spec import TargetSpec


# Locations of a target's sources and generated artifacts. Sources live in
# <directory>/ios, everything the pipeline writes goes to <directory>/ios/build
# so regenerating never touches user files...
@dataclass(frozen=True)
class TargetPaths:
    workspace_root: Path
    platform_root: Path
    directory: str
    stickers: bool = False

    @staticmethod
    def for_target(workspace_root: Path, platform_root: str, spec: TargetSpec) -> "TargetPaths":
        return TargetPaths(
            workspace_root=workspace_root,
            platform_root=workspace_root.joinpath(platform_root),
            directory=spec.directory,
            stickers=spec.kind == TargetKind.STICKERS,
        )

    @property
    def source_dir(self) -> Path:
        return self.workspace_root.joinpath(self.directory, "ios")

    @property
    def build_dir(self) -> Path:
        return self.source_dir.joinpath("build")

    @property
    def info_plist(self) -> Path:
        return self.build_dir.joinpath("Info.plist")

    @property
    def entitlements(self) -> Path:
        return self.build_dir.joinpath("generated.entitlements")

    @property
    def assets(self) -> Path:
        name = "Stickers.xcassets" if self.stickers else "Assets.xcassets"
        return self.build_dir.joinpath(name)

    @property
    def user_assets(self) -> Path:
        return self.source_dir.joinpath(self.assets.name)

    # Project paths are relative to the platform root (SRCROOT)...
    def relative(self, path: Path) -> str:
        return Path(os.path.relpath(path, self.platform_root)).as_posix()
