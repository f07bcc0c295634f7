# Entitlements and signing credentials of integrated targets.

import json
import logging
import plistlib
from pathlib import Path
from typing import Any, Dict, List, Optional

from xctargets.config import HostApp
from xctargets.details.errors import ConfigurationError, IOWarning
from xctargets.details.kinds import TypeCharacteristics
from xctargets.details.target_spec import TargetSpec

APP_GROUPS_KEY = "com.apple.security.application-groups"
PARENT_APPLICATION_IDENTIFIERS_KEY = "com.apple.developer.parent-application-identifiers"
ON_DEMAND_INSTALL_CAPABLE_KEY = "com.apple.developer.on-demand-install-capable"

# Location of the extension list inside the credentials manifest
APP_EXTENSIONS_PATH = ("build", "experimental", "ios", "appExtensions")

Entitlements = Dict[str, Any]

log = logging.getLogger("Entitlements")


def compose_entitlements(
    spec: TargetSpec, host: HostApp, characteristics: TypeCharacteristics
) -> Entitlements:
    """Capability document of one target.

    Starts from the target's declared entitlements. App Clips always get
    their parent application and on-demand install keys. Kinds sharing
    storage with the host receive the host's app groups, but only when the
    target does not declare groups of its own; lists are never merged.
    """
    if not host.bundle_identifier:
        raise ConfigurationError(
            "the host app has no bundle identifier, entitlements cannot be derived",
            fatal_for_run=True,
        )
    entitlements: Entitlements = dict(spec.entitlements)

    if characteristics.standalone:
        entitlements[PARENT_APPLICATION_IDENTIFIERS_KEY] = [
            f"$(AppIdentifierPrefix){host.bundle_identifier}"
        ]
        entitlements[ON_DEMAND_INSTALL_CAPABLE_KEY] = True

    if APP_GROUPS_KEY not in entitlements:
        if spec.app_group:
            entitlements[APP_GROUPS_KEY] = [spec.app_group]
        elif characteristics.uses_app_groups and host.app_groups:
            entitlements[APP_GROUPS_KEY] = list(host.app_groups)

    if characteristics.requires_app_group and not entitlements.get(APP_GROUPS_KEY):
        raise ConfigurationError(
            f"target '{spec.name}' ({spec.kind.value}) requires an app group, "
            "declare app_group= or add app_groups to the host",
            target=spec.name,
        )
    return entitlements


def write_entitlements(path: Path, entitlements: Entitlements) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            plistlib.dump(entitlements, f, sort_keys=True)
    except OSError as e:
        raise IOWarning(f"failed to write {path}: {e}") from e


def _extension_list(manifest: Dict[str, Any]) -> List[Dict[str, Any]]:
    node = manifest
    for key in APP_EXTENSIONS_PATH[:-1]:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    if not isinstance(node.get(APP_EXTENSIONS_PATH[-1]), list):
        node[APP_EXTENSIONS_PATH[-1]] = []
    return node[APP_EXTENSIONS_PATH[-1]]


def upsert_app_extension(
    manifest: Dict[str, Any],
    target_name: str,
    bundle_identifier: str,
    entitlements: Optional[Entitlements] = None,
) -> Dict[str, Any]:
    extensions = _extension_list(manifest)
    entry: Dict[str, Any] = {
        "targetName": target_name,
        "bundleIdentifier": bundle_identifier,
    }
    if entitlements:
        entry["entitlements"] = entitlements
    for index, existing in enumerate(extensions):
        if existing.get("bundleIdentifier") == bundle_identifier:
            log.debug("Updating credentials for %s", target_name)
            extensions[index] = entry
            return manifest
    log.debug("Adding credentials for %s", target_name)
    extensions.append(entry)
    return manifest


def load_credentials_manifest(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return data


def save_credentials_manifest(path: Path, manifest: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(manifest, f, indent=2, sort_keys=True)
        f.write("\n")
