"""Docker registry client library for Python

This module provides a Python API for the read side of the
Docker Registry HTTP API V2, including bearer token authentication.

    with Registry("docker.io", auth=TokenAuthenticator()) as registry:
        image = registry.repository("library/golang").images.get_by_tag("1.12.0")
"""
from dockreg.auth import (
    Authenticator,
    BasicAuthenticator,
    NullAuthenticator,
    TokenAuthenticator,
    parse_www_authenticate,
)
from dockreg.client import DEFAULT_TIMEOUT, Requester, default_client
from dockreg.errors import (
    AuthChallengeMalformedError,
    AuthError,
    AuthTokenFetchFailedError,
    RegistryConnectionError,
    RegistryError,
    ResourceNotFoundError,
    ResponseDecodeError,
    SchemaUnknownError,
    SchemaV1UnsupportedError,
    UnexpectedStatusError,
)
from dockreg.image import Image, Platform
from dockreg.manifest import resolve
from dockreg.reference import parse_image_name
from dockreg.registry import Registry, Repository

__all__ = [
    "AuthChallengeMalformedError",
    "AuthError",
    "AuthTokenFetchFailedError",
    "Authenticator",
    "BasicAuthenticator",
    "DEFAULT_TIMEOUT",
    "Image",
    "NullAuthenticator",
    "Platform",
    "Registry",
    "RegistryConnectionError",
    "RegistryError",
    "Repository",
    "Requester",
    "ResourceNotFoundError",
    "ResponseDecodeError",
    "SchemaUnknownError",
    "SchemaV1UnsupportedError",
    "TokenAuthenticator",
    "UnexpectedStatusError",
    "default_client",
    "parse_image_name",
    "parse_www_authenticate",
    "resolve",
]
