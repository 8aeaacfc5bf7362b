"""Authentication against a Docker registry.

An authenticator is consulted twice for every request the
:class:`~dockreg.client.Requester` sends: ``prepare`` before the request goes
out and ``observe`` once the response came back. ``observe`` returns ``True``
when the request should be sent again, e.g. after a bearer token was fetched.

ref: https://distribution.github.io/distribution/spec/auth/token/
"""
from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Protocol

import httpx
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from dockreg.client import default_client
from dockreg.errors import AuthChallengeMalformedError, AuthTokenFetchFailedError

logger = logging.getLogger(__name__)

BEARER = "Bearer "
# Seconds subtracted from the lifetime the token endpoint reports.
TOKEN_EXPIRY_MARGIN = 30

_CHALLENGE_PARAM = re.compile(r'(\w+)=(?:"([^"]*)"|([^,\s"]*))')


class Authenticator(Protocol):
    def prepare(self, request: httpx.Request) -> None:
        """Called each time before a request is sent to the registry."""

    def observe(self, response: httpx.Response) -> bool:
        """Called each time after a response is received from the registry.

        Returns True if the request should be sent again.
        """


class NullAuthenticator:
    """Does not modify the request and never asks for a retry.

    Used as a fallback if no authenticator is set.
    """

    def prepare(self, request: httpx.Request) -> None:
        pass

    def observe(self, response: httpx.Response) -> bool:
        return False


class BasicAuthenticator:
    """Attaches HTTP Basic Authentication to requests when a username is set."""

    def __init__(self, username: str, password: str = ""):
        self.username = username
        self.password = password
        self._auth = httpx.BasicAuth(username, password)

    def prepare(self, request: httpx.Request) -> None:
        if not self.username:
            return
        next(self._auth.sync_auth_flow(request))

    def observe(self, response: httpx.Response) -> bool:
        return False


class Challenge(NamedTuple):
    realm: str
    scope: str
    service: str


def parse_www_authenticate(www_authenticate: str) -> Challenge:
    """Parse the WWW-Authenticate header of a 401 response

    Parameters are ``key="value"`` pairs in any order.
    Unknown keys are ignored, malformed pairs are skipped.
    """
    if not www_authenticate.startswith(BEARER):
        raise AuthChallengeMalformedError(
            f"WWW-Authenticate header value does not start with 'Bearer': "
            f"{www_authenticate!r}"
        )
    params = {}
    for match in _CHALLENGE_PARAM.finditer(www_authenticate.removeprefix(BEARER)):
        key, quoted, bare = match.groups()
        params[key] = quoted if quoted is not None else bare
    return Challenge(
        realm=params.get("realm", ""),
        scope=params.get("scope", ""),
        service=params.get("service", ""),
    )


class TokenResponse(BaseModel):
    token: str = Field(validation_alias=AliasChoices("token", "access_token"))
    # Lifetime is 60 seconds when the token endpoint omits it
    expiresIn: int = Field(
        default=60, validation_alias=AliasChoices("expiresIn", "expires_in")
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenAuthenticator:
    """Handles bearer token authentication.

    The first request is sent without credentials. When the registry answers
    with 401, the challenge is used to fetch a token from the token endpoint
    and the request is sent again. Subsequent requests carry the token, which
    is refreshed before use once it expired.

    An instance belongs to a single :class:`~dockreg.client.Requester`.
    """

    def __init__(self, client: httpx.Client | None = None):
        self._client = client
        self._owns_client = client is None
        self._lock = threading.Lock()
        self.token = ""
        self.expires_at = datetime.min.replace(tzinfo=timezone.utc)
        self.realm = ""
        self.scope = ""
        self.service = ""

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = default_client()
        return self._client

    def close(self):
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def prepare(self, request: httpx.Request) -> None:
        with self._lock:
            if not self.token:
                return
            if _now() >= self.expires_at:
                logger.debug("Token for '%s' expired, refreshing", self.scope)
                self._request_token()
            request.headers["Authorization"] = f"{BEARER}{self.token}"

    def observe(self, response: httpx.Response) -> bool:
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return False

        challenge = parse_www_authenticate(
            response.headers.get("WWW-Authenticate", "")
        )
        logger.debug(challenge)
        with self._lock:
            self.realm, self.scope, self.service = challenge
            self._request_token()
        return True

    def _request_token(self):
        try:
            response = self.client.get(
                self.realm,
                params={"scope": self.scope, "service": self.service},
            )
            response.raise_for_status()
            result = TokenResponse.model_validate_json(response.content)
        except (httpx.HTTPError, httpx.InvalidURL, ValidationError) as err:
            raise AuthTokenFetchFailedError(
                f"fetching token from '{self.realm}'"
            ) from err

        self.token = result.token
        self.expires_at = _now() + timedelta(
            seconds=result.expiresIn - TOKEN_EXPIRY_MARGIN
        )
        logger.debug(
            "Fetched token for '%s' valid until %s", self.scope, self.expires_at
        )
