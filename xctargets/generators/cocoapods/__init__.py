import logging
from pathlib import Path

from xctargets.details.errors import ConfigurationError, ManifestMissing
from xctargets.details.versions import version_key
from xctargets.generators.cocoapods.podfile import (
    PodfileFlavor,
    declared_targets,
    ensure_extension_deployment_targets,
    ensure_host_uses_frameworks,
    ensure_react_native_framework_paths,
    find_post_install,
    has_target_block,
    insert_target_block,
    raise_platform,
    remove_target_block,
    target_block_in_place,
    uses_frameworks,
)


class PodfileComposer:
    def __init__(self, podfile_path: Path, host_name: str):
        self.podfile_path = Path(podfile_path)
        self.host_name = host_name
        self.logger = logging.getLogger(self.__class__.__name__)

    def read(self) -> str:
        if not self.podfile_path.is_file():
            raise ManifestMissing(self.podfile_path)
        return self.podfile_path.read_text()

    # Add or re-place a target block and refresh the post_install sections,
    # returns whether the file changed...
    def add_target(self, target_name: str, version: str, flavor: PodfileFlavor) -> bool:
        original = self.read()
        standalone = flavor == PodfileFlavor.STANDALONE
        podfile = original
        # pods linkage of a standalone target has to match the host's
        if not standalone:
            podfile = ensure_host_uses_frameworks(podfile, self.host_name)
            for name, declared in declared_targets(podfile, PodfileFlavor.STANDALONE):
                podfile = self.place_block(podfile, name, declared, PodfileFlavor.STANDALONE, True)
        host_frameworks = standalone and uses_frameworks(podfile, self.host_name)
        podfile = self.place_block(podfile, target_name, version, flavor, host_frameworks)

        standalone_targets = declared_targets(podfile, PodfileFlavor.STANDALONE)
        react_native_targets = declared_targets(podfile, PodfileFlavor.REACT_NATIVE)
        if find_post_install(podfile) is None:
            self.logger.warning(
                "%s has no post_install hook, extension pods keep their defaults",
                self.podfile_path,
            )
        if standalone:
            highest = max([version, *(v for _, v in standalone_targets)], key=version_key)
            podfile = raise_platform(podfile, highest)
        podfile = ensure_extension_deployment_targets(podfile, standalone_targets)
        podfile = ensure_react_native_framework_paths(podfile, react_native_targets, self.host_name)

        if podfile == original:
            self.logger.debug("Podfile already declares '%s'", target_name)
            return False
        self.podfile_path.write_text(podfile)
        self.logger.debug("Added %s target '%s' to %s", flavor.value, target_name, self.podfile_path)
        return True

    def place_block(
        self,
        podfile: str,
        target_name: str,
        version: str,
        flavor: PodfileFlavor,
        use_frameworks: bool,
    ) -> str:
        if target_block_in_place(podfile, target_name, version, flavor, use_frameworks=use_frameworks):
            return podfile
        if has_target_block(podfile, target_name):
            # stale flavor, version or position
            try:
                podfile = remove_target_block(podfile, target_name)
            except ValueError as e:
                raise ConfigurationError(f"{self.podfile_path}: {e}") from e
            self.logger.debug("Re-placing '%s' in %s", target_name, self.podfile_path)
        return insert_target_block(
            podfile, target_name, version, flavor, use_frameworks=use_frameworks
        )
