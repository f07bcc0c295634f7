# Info.plist generation for integrated targets.
#
# Every kind starts from a template that is deep merged with the target's
# info_plist overrides. Generated files carry a signature of their inputs in
# a side file so unchanged targets are not rewritten on every run.

import copy
import hashlib
import json
import plistlib
from pathlib import Path
from typing import Any, Dict, List, Optional

from xctargets.details.errors import IOWarning
from xctargets.details.kinds import EXTENSIONKIT_EXTENSION, TargetKind, TypeCharacteristics
from xctargets.details.target_spec import TargetSpec

SIGNATURE_FILENAME = ".infoplist-signature"

REACT_NATIVE_PRINCIPAL_CLASS = "$(PRODUCT_MODULE_NAME).ReactNativeViewController"

BUNDLE_KEYS: Dict[str, Any] = {
    "CFBundleDevelopmentRegion": "$(DEVELOPMENT_LANGUAGE)",
    "CFBundleDisplayName": "$(PRODUCT_NAME)",
    "CFBundleExecutable": "$(EXECUTABLE_NAME)",
    "CFBundleIdentifier": "$(PRODUCT_BUNDLE_IDENTIFIER)",
    "CFBundleInfoDictionaryVersion": "6.0",
    "CFBundleName": "$(PRODUCT_NAME)",
    "CFBundlePackageType": "$(PRODUCT_BUNDLE_PACKAGE_TYPE)",
    "CFBundleShortVersionString": "$(MARKETING_VERSION)",
    "CFBundleVersion": "$(CURRENT_PROJECT_VERSION)",
}

# Extension attributes per kind on top of the extension point identifier
EXTENSION_ATTRIBUTES: Dict[TargetKind, Dict[str, Any]] = {
    TargetKind.STICKERS: {
        "NSExtensionPrincipalClass": "StickerBrowserViewController",
    },
    TargetKind.MESSAGES: {
        "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).MessagesViewController",
    },
    TargetKind.SHARE: {
        "NSExtensionMainStoryboard": "MainInterface",
        "NSExtensionAttributes": {"NSExtensionActivationRule": "TRUEPREDICATE"},
    },
    TargetKind.ACTION: {
        "NSExtensionMainStoryboard": "MainInterface",
        "NSExtensionAttributes": {"NSExtensionActivationRule": "TRUEPREDICATE"},
    },
    TargetKind.NOTIFICATION_CONTENT: {
        "NSExtensionMainStoryboard": "MainInterface",
        "NSExtensionAttributes": {
            "UNNotificationExtensionCategory": "myNotificationCategory",
            "UNNotificationExtensionInitialContentSizeRatio": 1,
        },
    },
    TargetKind.NOTIFICATION_SERVICE: {
        "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).NotificationService",
    },
    TargetKind.INTENT: {
        "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).IntentHandler",
        "NSExtensionAttributes": {"IntentsSupported": []},
    },
    TargetKind.INTENT_UI: {
        "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).IntentViewController",
        "NSExtensionAttributes": {"IntentsSupported": []},
    },
    TargetKind.SAFARI: {
        "NSExtensionPrincipalClass": "$(PRODUCT_MODULE_NAME).SafariWebExtensionHandler",
    },
}


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overrides into a copy of base, recursing into nested dicts.

    Lists and scalars from overrides replace the base value.
    """
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _template(spec: TargetSpec, characteristics: TypeCharacteristics) -> Dict[str, Any]:
    data: Dict[str, Any] = dict(BUNDLE_KEYS)
    kind = spec.kind

    if kind == TargetKind.CLIP:
        data["UIApplicationSupportsIndirectInputEvents"] = True
        data["UIUserInterfaceStyle"] = "Automatic"
        data["NSAppClip"] = {
            "NSAppClipRequestEphemeralUserNotification": False,
            "NSAppClipRequestLocationConfirmation": False,
        }
    elif kind == TargetKind.WATCH:
        data["WKApplication"] = True
    elif characteristics.product_type == EXTENSIONKIT_EXTENSION:
        data["EXAppExtensionAttributes"] = {
            "EXExtensionPointIdentifier": characteristics.extension_point_identifier,
        }
    elif characteristics.extension_point_identifier:
        extension: Dict[str, Any] = {
            "NSExtensionPointIdentifier": characteristics.extension_point_identifier,
        }
        extension.update(copy.deepcopy(EXTENSION_ATTRIBUTES.get(kind, {})))
        if spec.uses_react_native:
            extension.pop("NSExtensionMainStoryboard", None)
            extension["NSExtensionPrincipalClass"] = REACT_NATIVE_PRINCIPAL_CLASS
        data["NSExtension"] = extension
    return data


def info_plist_for(
    spec: TargetSpec,
    characteristics: TypeCharacteristics,
    schemes: Optional[List[str]] = None,
) -> Dict[str, Any]:
    data = _template(spec, characteristics)
    # Lets target code open the host app through its URL schemes
    if schemes:
        data["LSApplicationQueriesSchemes"] = list(schemes)
    return deep_merge(data, spec.info_plist)


def plist_signature(inputs: Dict[str, Any]) -> str:
    normalized = json.dumps(inputs, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


def signature_inputs(spec: TargetSpec, schemes: Optional[List[str]]) -> Dict[str, Any]:
    return {
        "type": spec.kind.value,
        "entry": spec.entry,
        "info_plist": spec.info_plist,
        "schemes": schemes or None,
        "icon": spec.icon,
    }


def is_stale(path: Path, signature: str) -> bool:
    if not path.is_file():
        return True
    signature_path = path.with_name(SIGNATURE_FILENAME)
    if not signature_path.is_file():
        return True
    try:
        return signature_path.read_text().strip() != signature
    except OSError:
        return True


def write_info_plist(
    path: Path, data: Dict[str, Any], signature: str, clean: bool = False
) -> bool:
    """Write the Info.plist unless the existing one can be reused.

    A missing file is always generated. An existing file is regenerated
    when its signature changed, except in clean mode where it is kept.
    Returns whether the file was written.
    """
    if path.is_file() and (clean or not is_stale(path, signature)):
        return False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            plistlib.dump(data, f)
        path.with_name(SIGNATURE_FILENAME).write_text(signature)
    except OSError as e:
        raise IOWarning(f"failed to write {path}: {e}") from e
    return True
