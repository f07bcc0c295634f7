from pathlib import Path

from xctargets.config import Config


def xcode_project_path(config: Config, workspace_root: Path, host_name: str) -> Path:
    """
    Resolve and validate the .xcodeproj directory the project is written to.

    Args:
        config: The configuration with the build_root setting.
        workspace_root: Root of the workspace, relative build roots resolve against it.
        host_name: Name of the host app, used for the default project name.

    Returns:
        The validated project path.

    Raises:
        ValueError: If the build_root does not end with .xcodeproj.
    """
    if config.build_root is None:
        return workspace_root.joinpath(config.platform_root, f"{host_name}.xcodeproj")
    build_root = workspace_root.joinpath(config.build_root)
    if not str(build_root).endswith(".xcodeproj"):
        raise ValueError(
            f"Xcode generator requires build_root to end with '.xcodeproj'. "
            f"Got '{config.build_root}' instead. Please specify a path ending with '.xcodeproj'."
        )
    return build_root
