"""Manifest schemas returned by a Docker registry and their resolution to an Image.

A registry can answer a manifest request with one of several documents:

- a schema 2 (or OCI) manifest describing a single image,
- a manifest list (or OCI index) enumerating per-platform manifests,
- a legacy schema 1 signed manifest.

Which one it is, is decided by the Content-Type the registry reports,
before the body is decoded.
"""
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dockreg.errors import (
    ResponseDecodeError,
    SchemaUnknownError,
    SchemaV1UnsupportedError,
)
from dockreg.image import Image, Platform

logger = logging.getLogger(__name__)

MEDIA_TYPE_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"
MEDIA_TYPE_SIGNED_MANIFEST = "application/vnd.docker.distribution.manifest.v1+prettyjws"
MEDIA_TYPE_MANIFEST_V1 = "application/vnd.docker.distribution.manifest.v1+json"

# Single manifests are preferred, manifest lists are accepted with a lower weight
ACCEPT_IMAGE = (
    f"{MEDIA_TYPE_MANIFEST},{MEDIA_TYPE_OCI_MANIFEST},"
    f"{MEDIA_TYPE_MANIFEST_LIST};q=0.9,{MEDIA_TYPE_OCI_INDEX};q=0.9"
)


class Descriptor(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md
    """

    mediaType: str = ""
    digest: str
    size: int = 0
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None


class ManifestPlatform(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    model_config = ConfigDict(populate_by_name=True)

    architecture: str = ""
    os: str = ""
    osVersion: str = Field(default="", alias="os.version")
    osFeatures: list[str] = Field(default=[], alias="os.features")
    features: list[str] = []
    variant: str = ""


class PlatformDescriptor(Descriptor):
    platform: ManifestPlatform = Field(default_factory=ManifestPlatform)


class Manifest(BaseModel):
    """
    ref: https://distribution.github.io/distribution/spec/manifest-v2-2/
    """

    schemaVersion: int = 2
    mediaType: str = MEDIA_TYPE_MANIFEST
    config: Descriptor | None = None
    layers: list[Descriptor] = []


class ManifestList(BaseModel):
    """
    ref: https://distribution.github.io/distribution/spec/manifest-v2-2/#manifest-list
    """

    schemaVersion: int = 2
    mediaType: str = MEDIA_TYPE_MANIFEST_LIST
    manifests: list[PlatformDescriptor] = []


class SignedManifest(BaseModel):
    """Legacy schema 1 manifest, only decoded for its metadata.

    ref: https://distribution.github.io/distribution/spec/deprecated-schema-v1/
    """

    schemaVersion: int = 1
    name: str = ""
    tag: str = ""
    architecture: str = ""


_SHAPES: dict[str, type[BaseModel]] = {
    MEDIA_TYPE_MANIFEST: Manifest,
    MEDIA_TYPE_OCI_MANIFEST: Manifest,
    MEDIA_TYPE_MANIFEST_LIST: ManifestList,
    MEDIA_TYPE_OCI_INDEX: ManifestList,
    MEDIA_TYPE_SIGNED_MANIFEST: SignedManifest,
    MEDIA_TYPE_MANIFEST_V1: SignedManifest,
}


def _media_type(content_type: str, data: bytes) -> str:
    media_type = content_type.split(";", 1)[0].strip()
    if media_type not in ("", "application/json"):
        return media_type

    # Generic content type, look at the document itself
    try:
        document = json.loads(data)
    except json.JSONDecodeError as err:
        raise ResponseDecodeError("manifest is not valid JSON") from err
    if not isinstance(document, dict):
        return media_type
    if document.get("mediaType"):
        return document["mediaType"]
    if document.get("schemaVersion") == 1:
        return MEDIA_TYPE_SIGNED_MANIFEST
    return media_type


def unmarshal_manifest(
    content_type: str, data: bytes
) -> Manifest | ManifestList | SignedManifest:
    """Decode a manifest according to the content type reported by the registry"""
    media_type = _media_type(content_type, data)
    shape = _SHAPES.get(media_type)
    if shape is None:
        raise SchemaUnknownError(
            f"registry returned an unknown manifest schema '{content_type}'"
        )
    try:
        return shape.model_validate_json(data)
    except ValidationError as err:
        raise ResponseDecodeError(f"decoding manifest of type '{media_type}'") from err


def resolve(content_type: str, data: bytes, digest: str) -> Image:
    """Normalize a manifest into an Image.

    `digest` is the value of the Docker-Content-Digest response header, the body
    is never used to determine the image digest.

    A single manifest does not say which platform it was built for.
    It is reported as one synthetic platform: architecture "amd64",
    os "linux" and the digest of the image itself. This is a convention,
    not data returned by the registry.

    The identity fields (domain, repository, tag) of the returned Image
    are left empty.
    """
    manifest = unmarshal_manifest(content_type, data)
    image = Image(digest=digest)

    if isinstance(manifest, ManifestList):
        for entry in manifest.manifests:
            image.platforms.append(
                Platform(
                    architecture=entry.platform.architecture,
                    os=entry.platform.os,
                    digest=entry.digest,
                    media_type=entry.mediaType,
                    os_version=entry.platform.osVersion,
                    os_features=list(entry.platform.osFeatures),
                    features=list(entry.platform.features),
                    variant=entry.platform.variant,
                    size=entry.size,
                )
            )
    elif isinstance(manifest, Manifest):
        image.platforms.append(
            Platform(
                architecture="amd64",
                os="linux",
                digest=digest,
                media_type=content_type,
            )
        )
    elif isinstance(manifest, SignedManifest):
        raise SchemaV1UnsupportedError(
            "registry schema v1 is not supported by this library"
        )
    else:
        raise SchemaUnknownError("registry returned an unknown manifest schema")

    logger.debug("Resolved %s to %d platform(s)", digest, len(image.platforms))
    return image
