"""Short-lived identity tokens scoped to a single publish.

In GitHub Actions the runner exposes an OIDC endpoint through
``ACTIONS_ID_TOKEN_REQUEST_URL`` / ``ACTIONS_ID_TOKEN_REQUEST_TOKEN``; a
token is requested per run with the publish audience and held only in
memory. Outside Actions a statically configured token can be used.
Token values are ``SecretStr`` so they never appear in logs or reprs.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Protocol

import requests
from pydantic import BaseModel, ConfigDict, SecretStr

from pagewright.errors import PublishAuthorizationError, PublishError

logger = logging.getLogger(__name__)


class IdentityToken(BaseModel):
    """A bearer credential for one publish operation."""

    model_config = ConfigDict(frozen=True)

    value: SecretStr
    audience: str
    issuer: str = ""

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.value.get_secret_value()}"}


class TokenProvider(Protocol):
    def request_token(self) -> IdentityToken:
        ...


class StaticTokenProvider:
    """Returns a pre-configured token (local runs, self-hosted targets)."""

    def __init__(self, token: str, audience: str = "pages") -> None:
        self._token = token
        self._audience = audience

    def request_token(self) -> IdentityToken:
        if not self._token:
            raise PublishAuthorizationError("No publish token configured")
        return IdentityToken(value=SecretStr(self._token), audience=self._audience, issuer="static")


class ActionsOidcTokenProvider:
    """Requests an OIDC token from the GitHub Actions runtime."""

    def __init__(
        self,
        audience: str = "pages",
        *,
        env: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._audience = audience
        self._env = os.environ if env is None else env
        self._session = session or requests.Session()
        self._timeout = timeout

    @staticmethod
    def available(env: Mapping[str, str] | None = None) -> bool:
        env = os.environ if env is None else env
        return bool(
            env.get("ACTIONS_ID_TOKEN_REQUEST_URL")
            and env.get("ACTIONS_ID_TOKEN_REQUEST_TOKEN")
        )

    def request_token(self) -> IdentityToken:
        url = self._env.get("ACTIONS_ID_TOKEN_REQUEST_URL", "")
        request_token = self._env.get("ACTIONS_ID_TOKEN_REQUEST_TOKEN", "")
        if not (url and request_token):
            raise PublishAuthorizationError(
                "OIDC token request is not permitted: missing id-token permission"
            )

        try:
            response = self._session.get(
                url,
                params={"audience": self._audience},
                headers={"Authorization": f"bearer {request_token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise PublishError(f"OIDC token request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise PublishAuthorizationError(
                f"OIDC token request rejected with HTTP {response.status_code}"
            )
        if response.status_code >= 400:
            raise PublishError(f"OIDC token request failed with HTTP {response.status_code}")

        try:
            value = response.json()["value"]
        except (ValueError, KeyError, TypeError) as exc:
            raise PublishError("OIDC token response did not contain a token") from exc

        logger.info("Obtained OIDC identity token for audience %r", self._audience)
        return IdentityToken(value=SecretStr(value), audience=self._audience, issuer="actions")
