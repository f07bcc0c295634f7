# Target kind characteristics.
#
# Every declarative target kind maps to exactly one entry in
# TYPE_CHARACTERISTICS. Adding a kind means adding an enum member and a
# table row; nothing else dispatches on the tag string.

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from xctargets.details.errors import ConfigurationError


# Minimum deployment target imposed by the embedded React Native runtime.
REACT_NATIVE_MINIMUM_DEPLOYMENT_TARGET = "15.1"

FALLBACK_DEPLOYMENT_TARGET = "13.0"


class TargetKind(Enum):
    WIDGET = "widget"
    CLIP = "clip"
    STICKERS = "stickers"
    MESSAGES = "messages"
    SHARE = "share"
    ACTION = "action"
    SAFARI = "safari"
    NOTIFICATION_CONTENT = "notification-content"
    NOTIFICATION_SERVICE = "notification-service"
    INTENT = "intent"
    INTENT_UI = "intent-ui"
    SPOTLIGHT = "spotlight"
    BG_DOWNLOAD = "bg-download"
    QUICKLOOK_THUMBNAIL = "quicklook-thumbnail"
    LOCATION_PUSH = "location-push"
    CREDENTIALS_PROVIDER = "credentials-provider"
    ACCOUNT_AUTH = "account-auth"
    APP_INTENT = "app-intent"
    DEVICE_ACTIVITY_MONITOR = "device-activity-monitor"
    MATTER = "matter"
    WATCH = "watch"
    WALLET = "wallet"

    @staticmethod
    def parse(tag: str) -> "TargetKind":
        try:
            return TargetKind(tag)
        except ValueError:
            known = ", ".join(k.value for k in TargetKind)
            raise ConfigurationError(
                f"unknown target type '{tag}', expected one of: {known}"
            ) from None


class EmbedType(Enum):
    FOUNDATION_EXTENSION = "foundation-extension"
    APP_CLIP = "app-clip"
    NONE = "none"


APP_EXTENSION = "com.apple.product-type.app-extension"
APPLICATION = "com.apple.product-type.application"
ON_DEMAND_APPLICATION = "com.apple.product-type.application.on-demand-install-capable"
EXTENSIONKIT_EXTENSION = "com.apple.product-type.extensionkit-extension"
STICKER_PACK = "com.apple.product-type.app-extension.messages-sticker-pack"


@dataclass(frozen=True)
class TypeCharacteristics:
    minimum_deployment_target: str
    product_type: str
    extension_point_identifier: Optional[str]
    frameworks: Tuple[str, ...] = ()
    bundle_identifier_suffix: Optional[str] = None  # None: derive from target name
    requires_entitlements: bool = True
    requires_code: bool = True
    uses_app_groups: bool = False  # copy host app groups into entitlements
    requires_app_group: bool = False  # refuse to build without an app group
    supports_react_native: bool = False
    embed_type: EmbedType = EmbedType.FOUNDATION_EXTENSION
    build_settings: Dict[str, str] = field(default_factory=dict)

    @property
    def standalone(self) -> bool:
        return self.embed_type == EmbedType.APP_CLIP

    @property
    def product_extension(self) -> str:
        if self.product_type in (APPLICATION, ON_DEMAND_APPLICATION):
            return "app"
        return "appex"


TYPE_CHARACTERISTICS: Dict[TargetKind, TypeCharacteristics] = {
    TargetKind.WIDGET: TypeCharacteristics(
        minimum_deployment_target="14.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.widgetkit-extension",
        frameworks=("WidgetKit", "SwiftUI", "ActivityKit", "AppIntents"),
        uses_app_groups=True,
        requires_app_group=True,
        build_settings={
            "ASSETCATALOG_COMPILER_GLOBAL_ACCENT_COLOR_NAME": "$accent",
            "ASSETCATALOG_COMPILER_WIDGET_BACKGROUND_COLOR_NAME": "$widgetBackground",
            "SWIFT_EMIT_LOC_STRINGS": "YES",
        },
    ),
    TargetKind.CLIP: TypeCharacteristics(
        minimum_deployment_target="14.0",
        product_type=ON_DEMAND_APPLICATION,
        extension_point_identifier=None,
        bundle_identifier_suffix="clip",
        uses_app_groups=True,
        requires_app_group=True,
        supports_react_native=True,
        embed_type=EmbedType.APP_CLIP,
        build_settings={
            "ASSETCATALOG_COMPILER_APPICON_NAME": "AppIcon",
            "ASSETCATALOG_COMPILER_GLOBAL_ACCENT_COLOR_NAME": "$accent",
        },
    ),
    TargetKind.STICKERS: TypeCharacteristics(
        minimum_deployment_target="10.0",
        product_type=STICKER_PACK,
        extension_point_identifier="com.apple.message-payload-provider",
        requires_entitlements=False,
        requires_code=False,
        build_settings={
            "ASSETCATALOG_COMPILER_APPICON_NAME": "iMessage App Icon",
        },
    ),
    TargetKind.MESSAGES: TypeCharacteristics(
        minimum_deployment_target="10.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.message-payload-provider",
        frameworks=("Messages",),
        uses_app_groups=True,
        supports_react_native=True,
        build_settings={
            "ASSETCATALOG_COMPILER_APPICON_NAME": "iMessage App Icon",
        },
    ),
    TargetKind.SHARE: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.share-services",
        frameworks=("Social", "MobileCoreServices"),
        uses_app_groups=True,
        requires_app_group=True,
        supports_react_native=True,
    ),
    TargetKind.ACTION: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.services",
        supports_react_native=True,
    ),
    TargetKind.SAFARI: TypeCharacteristics(
        minimum_deployment_target="15.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.Safari.web-extension",
        frameworks=("SafariServices",),
    ),
    TargetKind.NOTIFICATION_CONTENT: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.usernotifications.content-extension",
        frameworks=("UserNotifications", "UserNotificationsUI"),
    ),
    TargetKind.NOTIFICATION_SERVICE: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.usernotifications.service",
        frameworks=("UserNotifications",),
    ),
    TargetKind.INTENT: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.intents-service",
        frameworks=("Intents",),
    ),
    TargetKind.INTENT_UI: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.intents-ui-service",
        frameworks=("IntentsUI",),
    ),
    TargetKind.SPOTLIGHT: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.spotlight.import",
        frameworks=("CoreSpotlight",),
    ),
    TargetKind.BG_DOWNLOAD: TypeCharacteristics(
        minimum_deployment_target="16.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.background-asset-downloader-extension",
        frameworks=("BackgroundAssets",),
        uses_app_groups=True,
        requires_app_group=True,
    ),
    TargetKind.QUICKLOOK_THUMBNAIL: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.quicklook.thumbnail",
        frameworks=("QuickLookThumbnailing",),
    ),
    TargetKind.LOCATION_PUSH: TypeCharacteristics(
        minimum_deployment_target="15.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.location.push.service",
        frameworks=("CoreLocation",),
    ),
    TargetKind.CREDENTIALS_PROVIDER: TypeCharacteristics(
        minimum_deployment_target="13.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.authentication-services-credential-provider-ui",
        frameworks=("AuthenticationServices",),
    ),
    TargetKind.ACCOUNT_AUTH: TypeCharacteristics(
        minimum_deployment_target="14.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.authentication-services-account-authentication-modification-ui",
        frameworks=("AuthenticationServices",),
    ),
    TargetKind.APP_INTENT: TypeCharacteristics(
        minimum_deployment_target="16.0",
        product_type=EXTENSIONKIT_EXTENSION,
        extension_point_identifier="com.apple.appintents-extension",
        frameworks=("AppIntents",),
    ),
    TargetKind.DEVICE_ACTIVITY_MONITOR: TypeCharacteristics(
        minimum_deployment_target="15.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.deviceactivity.monitor-extension",
        frameworks=("DeviceActivity",),
    ),
    TargetKind.MATTER: TypeCharacteristics(
        minimum_deployment_target="16.1",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.matter.support.extension.device-setup",
        frameworks=("MatterSupport",),
    ),
    TargetKind.WATCH: TypeCharacteristics(
        minimum_deployment_target="14.0",
        product_type=APPLICATION,
        extension_point_identifier=None,
        bundle_identifier_suffix="watchkitapp",
        embed_type=EmbedType.NONE,
        build_settings={
            "SDKROOT": "watchos",
            "WATCHOS_DEPLOYMENT_TARGET": "9.0",
        },
    ),
    TargetKind.WALLET: TypeCharacteristics(
        minimum_deployment_target="14.0",
        product_type=APP_EXTENSION,
        extension_point_identifier="com.apple.PassKit.issuer-provider",
        frameworks=("PassKit",),
    ),
}

assert set(TYPE_CHARACTERISTICS) == set(TargetKind), "characteristics table is not exhaustive"

# Kinds sharing the single message payload provider slot of an app.
MESSAGE_PAYLOAD_PROVIDERS = frozenset({TargetKind.MESSAGES, TargetKind.STICKERS})


def characteristics_for(kind: TargetKind) -> TypeCharacteristics:
    return TYPE_CHARACTERISTICS[kind]
