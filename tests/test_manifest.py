import json

import pytest

from dockreg.errors import (
    ResponseDecodeError,
    SchemaUnknownError,
    SchemaV1UnsupportedError,
)
from dockreg.manifest import (
    ACCEPT_IMAGE,
    MEDIA_TYPE_MANIFEST,
    MEDIA_TYPE_MANIFEST_LIST,
    MEDIA_TYPE_OCI_INDEX,
    MEDIA_TYPE_SIGNED_MANIFEST,
    Manifest,
    ManifestList,
    SignedManifest,
    resolve,
    unmarshal_manifest,
)

DIGEST = "sha256:0de3f9d6b5a5ac8b6e2cc6a4d24c3c2e4ba4fda5e0a3e1a8e6cc4e2e6cb9dd11"


def test_resolve_manifest_list(testdata):
    data = (testdata / "manifest_list.json").read_bytes()
    entries = json.loads(data)["manifests"]

    image = resolve(MEDIA_TYPE_MANIFEST_LIST, data, DIGEST)

    assert image.digest == DIGEST
    assert len(image.platforms) == len(entries) == 3
    for platform, entry in zip(image.platforms, entries):
        assert platform.architecture == entry["platform"]["architecture"]
        assert platform.os == entry["platform"]["os"]
        assert platform.os_version == entry["platform"].get("os.version", "")
        assert platform.os_features == entry["platform"].get("os.features", [])
        assert platform.features == entry["platform"].get("features", [])
        assert platform.variant == entry["platform"].get("variant", "")
        assert platform.digest == entry["digest"]
        assert platform.media_type == entry["mediaType"]
        assert platform.size == entry["size"]
    assert image.tag == image.domain == image.repository == ""


def test_resolve_oci_index(testdata):
    data = (testdata / "manifest_list.json").read_bytes()
    image = resolve(MEDIA_TYPE_OCI_INDEX, data, DIGEST)
    assert [p.architecture for p in image.platforms] == ["amd64", "arm64", "amd64"]


def test_resolve_empty_manifest_list():
    image = resolve(MEDIA_TYPE_MANIFEST_LIST, b'{"schemaVersion": 2}', DIGEST)
    assert image.digest == DIGEST
    assert image.platforms == []


@pytest.mark.parametrize(
    "data",
    [
        "manifest_v2.json",
        None,
    ],
)
def test_resolve_single_manifest(testdata, data):
    body = (testdata / data).read_bytes() if data else b"{}"

    image = resolve(MEDIA_TYPE_MANIFEST, body, DIGEST)

    assert image.digest == DIGEST
    assert len(image.platforms) == 1
    platform = image.platforms[0]
    assert platform.architecture == "amd64"
    assert platform.os == "linux"
    assert platform.digest == DIGEST
    assert platform.media_type == MEDIA_TYPE_MANIFEST
    assert platform.size == 0


def test_resolve_schema_v1(testdata):
    data = (testdata / "manifest_v1_signed.json").read_bytes()
    with pytest.raises(SchemaV1UnsupportedError):
        resolve(MEDIA_TYPE_SIGNED_MANIFEST, data, DIGEST)


@pytest.mark.parametrize(
    "content_type",
    [
        "text/html",
        "application/vnd.docker.container.image.v1+json",
        "application/vnd.oci.artifact.manifest.v1+json",
    ],
)
def test_resolve_unknown_schema(testdata, content_type):
    data = (testdata / "manifest_v2.json").read_bytes()
    with pytest.raises(SchemaUnknownError):
        resolve(content_type, data, DIGEST)


def test_resolve_invalid_body():
    with pytest.raises(ResponseDecodeError):
        resolve(MEDIA_TYPE_MANIFEST_LIST, b'{"manifests": "nope"}', DIGEST)


@pytest.mark.parametrize(
    "content_type,filename,expected",
    [
        (f"{MEDIA_TYPE_MANIFEST}; charset=utf-8", "manifest_v2.json", Manifest),
        ("application/json", "manifest_list.json", ManifestList),
        ("", "manifest_v2.json", Manifest),
        ("application/json", "manifest_v1_signed.json", SignedManifest),
        ("", "manifest_v1_signed.json", SignedManifest),
    ],
)
def test_unmarshal_manifest_content_type(testdata, content_type, filename, expected):
    data = (testdata / filename).read_bytes()
    assert isinstance(unmarshal_manifest(content_type, data), expected)


def test_unmarshal_manifest_generic_content_type_not_json():
    with pytest.raises(ResponseDecodeError):
        unmarshal_manifest("application/json", b"<html></html>")


def test_unmarshal_manifest_generic_content_type_without_media_type():
    with pytest.raises(SchemaUnknownError):
        unmarshal_manifest("application/json", b'{"schemaVersion": 2}')


def test_unmarshal_signed_manifest(testdata):
    data = (testdata / "manifest_v1_signed.json").read_bytes()
    manifest = unmarshal_manifest(MEDIA_TYPE_SIGNED_MANIFEST, data)
    assert manifest.name == "e2e"
    assert manifest.tag == "test"


def test_accept_image_prefers_single_manifest():
    types = [t.strip() for t in ACCEPT_IMAGE.split(",")]
    assert types[0] == MEDIA_TYPE_MANIFEST
    assert f"{MEDIA_TYPE_MANIFEST_LIST};q=0.9" in types
