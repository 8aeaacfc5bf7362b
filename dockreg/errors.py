class RegistryError(Exception):
    """Base class for all errors raised by dockreg."""


class RegistryConnectionError(RegistryError):
    """Raised when the registry could not be reached."""


class ResponseDecodeError(RegistryError):
    """Raised when a registry response can not be decoded."""


class AuthError(RegistryError):
    """Raised when authentication fails."""


class AuthChallengeMalformedError(AuthError):
    """Raised when a WWW-Authenticate header does not start with 'Bearer '."""


class AuthTokenFetchFailedError(AuthError):
    """Raised when a bearer token could not be retrieved from the token endpoint."""


class ResourceNotFoundError(RegistryError):
    """Raised when the registry returns 404 NOT FOUND."""


class SchemaV1UnsupportedError(RegistryError):
    """Raised for legacy schema 1 manifests, which can not be resolved to an image."""


class SchemaUnknownError(RegistryError):
    """Raised when the registry returns an unknown manifest schema."""


class UnexpectedStatusError(RegistryError):
    """Raised when the registry answers with a status the operation does not accept."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
