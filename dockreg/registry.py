from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ValidationError

from dockreg.auth import Authenticator, NullAuthenticator
from dockreg.client import Requester
from dockreg.errors import (
    ResourceNotFoundError,
    ResponseDecodeError,
    SchemaUnknownError,
    UnexpectedStatusError,
)
from dockreg.image import Image
from dockreg.manifest import (
    ACCEPT_IMAGE,
    MEDIA_TYPE_MANIFEST,
    MEDIA_TYPE_SIGNED_MANIFEST,
    Manifest,
    SignedManifest,
    resolve,
    unmarshal_manifest,
)
from dockreg.reference import parse_image_name

logger = logging.getLogger(__name__)


class CatalogResponse(BaseModel):
    repositories: list[str] | None = None


class TagListResponse(BaseModel):
    name: str = ""
    tags: list[str] | None = None


class Registry:
    """Exposes the repositories in a registry."""

    def __init__(
        self,
        domain: str,
        auth: Authenticator | None = None,
        client: httpx.Client | None = None,
        protocol: str = "https",
        proxy: str = "",
    ):
        self.requester = Requester(
            domain=domain,
            auth=auth if auth is not None else NullAuthenticator(),
            client=client,
            protocol=protocol,
            proxy=proxy,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def domain(self) -> str:
        return self.requester.domain

    def close(self):
        self.requester.close()
        close_auth = getattr(self.requester.auth, "close", None)
        if close_auth is not None:
            close_auth()

    def repositories(self) -> list[Repository]:
        """Query the registry and return all available repositories.

        Only the first page of the catalog is returned.
        """
        request = self.requester.new_request("GET", "/_catalog")
        catalog, _ = self.requester.get_json(request, CatalogResponse)
        return [self.repository(name) for name in catalog.repositories or []]

    def repository(self, name: str) -> Repository:
        """Return one repository in the registry.

        It does not check if the repository actually exists in the registry.
        """
        return Repository(registry=self, name=name)

    def repository_from_string(self, name: str) -> Repository:
        """Create a repository from an image name as used in `docker pull`"""
        domain, path, _, _ = parse_image_name(name)
        if domain != self.domain:
            raise ValueError(
                f"domain in image '{domain}' not equal domain in registry "
                f"object '{self.domain}'"
            )
        return self.repository(path)


class Repository:
    """Exposes the images in a repository in a registry."""

    def __init__(self, registry: Registry, name: str):
        self.registry = registry
        self.name = name
        self.images = ImageService(self)
        self.manifests = ManifestService(self)
        self.tags = TagService(self)
        self.configs = ConfigService(self)

    def __repr__(self):
        return f"Repository({self.domain}/{self.name})"

    @property
    def domain(self) -> str:
        return self.registry.domain

    @property
    def requester(self) -> Requester:
        return self.registry.requester

    def http_path(self, path: str) -> str:
        return f"/{self.name}{path}"


class _Service:
    def __init__(self, repository: Repository):
        self.repo = repository

    @property
    def requester(self) -> Requester:
        return self.repo.requester


class ImageService(_Service):
    """Exposes images."""

    def get_by_tag(self, tag: str) -> Image:
        """Query the repository for an image identified by its tag."""
        image = self._get(tag)
        image.tag = tag
        return image

    def get_by_digest(self, digest: str) -> Image:
        """Query the repository for an image identified by its digest.

        The `tag` of an image returned by this method always is an empty string.
        """
        return self._get(digest)

    def delete_by_digest(self, digest: str):
        """Delete an image. It uses the digest of an image to reference it."""
        request = self.requester.new_request(
            "DELETE", self.repo.http_path(f"/manifests/{digest}")
        )
        response = self.requester.send(request)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise ResourceNotFoundError(
                f"deleting image '{self.repo.name}@{digest}': "
                "registry returned status 404 NOT FOUND"
            )
        if response.status_code != httpx.codes.ACCEPTED:
            raise UnexpectedStatusError(
                f"deleting image '{self.repo.name}@{digest}' returned status code "
                f"{response.status_code} expected 202",
                status_code=response.status_code,
            )
        logger.info(
            "Deleted image %s/%s@%s", self.repo.domain, self.repo.name, digest
        )

    def _get(self, reference: str) -> Image:
        request = self.requester.new_request(
            "GET",
            self.repo.http_path(f"/manifests/{reference}"),
            headers={"Accept": ACCEPT_IMAGE},
        )
        data, headers = self.requester.get_bytes(request)
        try:
            image = resolve(
                content_type=headers.get("Content-Type", ""),
                data=data,
                digest=headers.get("Docker-Content-Digest", ""),
            )
        except ResponseDecodeError as err:
            raise ResponseDecodeError(
                f"unmarshalling manifest '{reference}' of '{self.repo.name}'"
            ) from err

        image.domain = self.repo.domain
        image.repository = self.repo.name
        return image


class ManifestService(_Service):
    """Exposes the manifest of an image in a repository."""

    def get(self, digest: str) -> Manifest:
        """Return the schema 2 manifest of an image.

        Use the digest of one of the platforms of an Image.
        """
        request = self.requester.new_request(
            "GET",
            self.repo.http_path(f"/manifests/{digest}"),
            headers={"Accept": MEDIA_TYPE_MANIFEST},
        )
        data, headers = self.requester.get_bytes(request)
        try:
            manifest = unmarshal_manifest(headers.get("Content-Type", ""), data)
        except ResponseDecodeError as err:
            raise ResponseDecodeError(f"reading manifest '{digest}'") from err
        if not isinstance(manifest, Manifest):
            raise SchemaUnknownError(
                f"manifest '{digest}' is a {manifest.__class__.__name__}, "
                "not a single manifest"
            )
        return manifest


class TagService(_Service):
    """Exposes tags in a repository."""

    def get_all(self) -> list[str]:
        """Return all tags in the repository.

        Pagination as described by the Docker Registry API V2 is not implemented,
        only the first page of tags is returned.
        ref: https://github.com/docker/distribution/issues/1936
        """
        request = self.requester.new_request("GET", self.repo.http_path("/tags/list"))
        try:
            result, _ = self.requester.get_json(request, TagListResponse)
        except ResponseDecodeError as err:
            raise ResponseDecodeError(f"reading tags of '{self.repo.name}'") from err
        return result.tags or []


class ConfigService(_Service):
    """Exposes the legacy configuration of an image."""

    def get_v1(self, tag: str) -> SignedManifest:
        """Return the schema 1 manifest of a tag, decoded for its metadata only.

        Registries convert to schema 1 on the fly when asked for it,
        which only works for tags, never for digests.
        """
        request = self.requester.new_request(
            "GET",
            self.repo.http_path(f"/manifests/{tag}"),
            headers={"Accept": MEDIA_TYPE_SIGNED_MANIFEST},
        )
        data, _ = self.requester.get_bytes(request)
        try:
            return SignedManifest.model_validate_json(data)
        except ValidationError as err:
            raise ResponseDecodeError(
                f"unmarshalling config v1 of '{self.repo.name}:{tag}'"
            ) from err
