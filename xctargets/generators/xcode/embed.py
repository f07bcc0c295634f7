# Embedding of target products into the host application.
#
# Extensions and App Clips use different containers inside the host bundle
# and are wired by two independent code paths:
#
#   - extensions are copied to PlugIns/ by the host's single plugin copy
#     phase; the build file for the product already exists (create_target
#     adds it) and only needs its copy attributes.
#   - App Clips are copied to AppClips/ by a dedicated phase; their build
#     file is created here because nothing routes them at creation time.

from xctargets.details.errors import GraphIntegrityWarning
from xctargets.details.kinds import EmbedType
from xctargets.details.run_context import RunContext
from xctargets.generators.xcode.model import (
    CODE_SIGN_ON_COPY,
    REMOVE_HEADERS_ON_COPY,
    DstSubfolderSpec,
    PBXBuildFile,
    PBXFileReference,
    PBXNativeTarget,
    XcodeProject,
)
from xctargets.generators.xcode.model_editor import (
    ensure_copy_phase,
    find_copy_phase,
    get_product_reference,
)

EMBED_EXTENSIONS_PHASE_NAME = "Embed Foundation Extensions"
EMBED_APP_CLIPS_PHASE_NAME = "Embed App Clips"
APP_CLIPS_DST_PATH = "$(CONTENTS_FOLDER_PATH)/AppClips"


def _product_file_name(project: XcodeProject, target: PBXNativeTarget, extension: str) -> str:
    product_ref = get_product_reference(project, target)
    if product_ref is not None:
        return product_ref.path
    return f"{target.productName}.{extension}"


def configure_extension_embed(
    project: XcodeProject,
    host: PBXNativeTarget,
    target: PBXNativeTarget,
    run: RunContext,
) -> None:
    try:
        phase = find_copy_phase(project, host, DstSubfolderSpec.PLUGINS)
        if phase is None:
            raise GraphIntegrityWarning(
                f"{host.name} has no extension embedding phase"
            )
        product_file = _product_file_name(project, target, "appex")
        for ref in phase.files:
            build_file = project.resolve(ref, PBXBuildFile)
            if build_file is None:
                continue
            file_ref = project.resolve(build_file.fileRef, PBXFileReference)
            if file_ref is None:
                continue
            if product_file in (file_ref.path, file_ref.name):
                build_file.ensure_attributes(REMOVE_HEADERS_ON_COPY, CODE_SIGN_ON_COPY)
                phase.name = EMBED_EXTENSIONS_PHASE_NAME
                run.verbose("Configured %s in '%s'", product_file, phase.name)
                return
        raise GraphIntegrityWarning(
            f"{product_file} is not embedded by {host.name}"
        )
    except GraphIntegrityWarning as e:
        run.warn("Could not configure extension embedding: %s", e)


def configure_app_clip_embed(
    project: XcodeProject,
    host: PBXNativeTarget,
    target: PBXNativeTarget,
    run: RunContext,
) -> None:
    try:
        product_ref = get_product_reference(project, target)
        if product_ref is None:
            raise GraphIntegrityWarning(f"{target.name} has no product reference")
        phase = ensure_copy_phase(
            project,
            host,
            DstSubfolderSpec.PRODUCTS_DIRECTORY,
            dst_path=APP_CLIPS_DST_PATH,
            name=EMBED_APP_CLIPS_PHASE_NAME,
        )
        for ref in phase.files:
            build_file = project.resolve(ref, PBXBuildFile)
            if build_file is not None and build_file.fileRef.id == product_ref.id:
                build_file.ensure_attributes(REMOVE_HEADERS_ON_COPY)
                return
        build_file = project.add(
            PBXBuildFile(
                fileRef=product_ref.ref(),
                name=product_ref.name,
                owner=phase.id,
                settings={"ATTRIBUTES": [REMOVE_HEADERS_ON_COPY]},
            )
        )
        phase.files.append(build_file.ref(f"{product_ref.name} in {phase.name}"))
        run.verbose("Embedded %s in '%s'", product_ref.name, phase.name)
    except GraphIntegrityWarning as e:
        run.warn("Could not configure App Clip embedding: %s", e)


def configure_embed(
    project: XcodeProject,
    host: PBXNativeTarget,
    target: PBXNativeTarget,
    embed_type: EmbedType,
    run: RunContext,
) -> None:
    if embed_type == EmbedType.FOUNDATION_EXTENSION:
        configure_extension_embed(project, host, target, run)
    elif embed_type == EmbedType.APP_CLIP:
        configure_app_clip_embed(project, host, target, run)
