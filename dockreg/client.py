from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from dockreg.errors import (
    RegistryConnectionError,
    ResourceNotFoundError,
    ResponseDecodeError,
    UnexpectedStatusError,
)

if TYPE_CHECKING:
    from dockreg.auth import Authenticator

logger = logging.getLogger(__name__)

DOCKER_HUB = "index.docker.io"
DEFAULT_TIMEOUT = 2.0
# Number of times a request is sent again after the authenticator asked for it
MAX_AUTH_RETRIES = 1

Model = TypeVar("Model", bound=BaseModel)


def default_client() -> httpx.Client:
    """Return a httpx.Client with a reasonable timeout.

    Registries may be unreachable, don't wait on them forever.
    """
    return httpx.Client(
        timeout=DEFAULT_TIMEOUT,
        follow_redirects=True,
        max_redirects=2,
    )


class Requester:
    """Handles all communication with the Docker registry."""

    def __init__(
        self,
        domain: str,
        auth: Authenticator,
        client: httpx.Client | None = None,
        protocol: str = "https",
        proxy: str = "",
    ):
        self.domain = domain
        self.auth = auth
        self.protocol = protocol
        self.proxy = proxy
        self._client = client
        self._owns_client = client is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = default_client()
        return self._client

    def close(self):
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    @property
    def host(self) -> str:
        if self.proxy:
            return self.proxy
        if self.domain == "docker.io":
            return DOCKER_HUB
        return self.domain

    def new_request(
        self,
        method: str,
        path: str,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        """Create a new request to send to the registry.

        `path` is relative to the `/v2` API root.
        """
        url = f"{self.protocol}://{self.host}/v2{path}"
        return self.client.build_request(method, url, content=content, headers=headers)

    def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request to the registry, handling authentication.

        The request is sent again when the authenticator asks for it after
        seeing the response, at most `MAX_AUTH_RETRIES` times.
        The response to the last allowed attempt is returned as is,
        the authenticator does not see it.
        """
        for attempt in range(MAX_AUTH_RETRIES + 1):
            self.auth.prepare(request)
            logger.debug("%s %s", request.method, request.url)
            try:
                response = self.client.send(request)
            except httpx.HTTPError as err:
                raise RegistryConnectionError(f"querying '{request.url}'") from err

            if attempt == MAX_AUTH_RETRIES:
                break
            if not self.auth.observe(response):
                return response
            logger.debug("Sending %s %s again", request.method, request.url)

        if response.status_code == httpx.codes.UNAUTHORIZED:
            logger.warning(
                "Registry kept rejecting %s %s after re-authenticating",
                request.method,
                request.url,
            )
        return response

    def get_bytes(self, request: httpx.Request) -> tuple[bytes, httpx.Headers]:
        """Send a request and return the payload of the response as bytes."""
        response = self.send(request)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise ResourceNotFoundError(
                f"registry returned status 404 NOT FOUND for '{request.url}'"
            )
        if response.is_error:
            raise UnexpectedStatusError(
                f"registry returned status {response.status_code} for '{request.url}'",
                status_code=response.status_code,
            )
        return response.content, response.headers

    def get_json(
        self, request: httpx.Request, model: type[Model]
    ) -> tuple[Model, httpx.Headers]:
        """Send a request and return the payload of the response decoded from JSON."""
        data, headers = self.get_bytes(request)
        try:
            return model.model_validate_json(data), headers
        except ValidationError as err:
            raise ResponseDecodeError(
                f"unmarshalling JSON from '{request.url}'"
            ) from err
