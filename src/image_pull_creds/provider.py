"""Credential providers producing the registry pull-credential payload."""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import google.auth
import google.auth.exceptions
import google.auth.transport.requests

from . import constants as C
from .config import Settings
from .exceptions import ProviderConfigError, ProviderError

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """Supported credential provider kinds."""

    GCP = "gcp"


class Provider(Protocol):
    """Produces a dockercfg document for the configured registries."""

    def create_docker_cfg(self) -> bytes:
        ...


class GCPProvider:
    """Exchanges Google credentials for an OAuth access token.

    The token is used as the password for every configured registry, with the
    fixed ``oauth2accesstoken`` username that Artifact Registry and GCR accept.
    """

    def __init__(self, creds_json: bytes, registries: List[str]):
        if not creds_json:
            raise ProviderConfigError("JSON credentials are required")
        registries = [r.strip() for r in registries if r and r.strip()]
        if not registries:
            raise ProviderConfigError("must supply at least one registry")

        self.creds_json = creds_json
        self.registries = registries
        self._creds = None
        self._request = None

    def _ensure_creds(self):
        if self._creds is not None:
            return self._creds

        try:
            info = json.loads(self.creds_json)
        except ValueError as e:
            raise ProviderError(f"error parsing credentials: {e}") from e
        if not isinstance(info, dict):
            raise ProviderError("error parsing credentials: expected a JSON object")

        try:
            creds, _ = google.auth.load_credentials_from_dict(info, scopes=C.GCP_SCOPES)
        except google.auth.exceptions.GoogleAuthError as e:
            raise ProviderError(f"error parsing credentials: {e}") from e

        self._creds = creds
        return creds

    def _get_token(self) -> str:
        creds = self._ensure_creds()
        if not creds.valid:
            logger.debug("refreshing google access token")
            if self._request is None:
                self._request = google.auth.transport.requests.Request()
            try:
                creds.refresh(self._request)
            except google.auth.exceptions.GoogleAuthError as e:
                raise ProviderError(f"error getting token: {e}") from e
        return creds.token

    def create_docker_cfg(self) -> bytes:
        token = self._get_token()

        cfg: Dict[str, Any] = {}
        for registry in self.registries:
            cfg[registry] = {
                "username": C.GCP_TOKEN_USERNAME,
                "password": token,
                "email": C.GCP_TOKEN_EMAIL,
            }
        return json.dumps(cfg, sort_keys=True, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_settings(cls, settings: Settings) -> "GCPProvider":
        return cls(creds_json=settings.gcp_creds_json, registries=settings.gcp_registries)


PROVIDERS = {
    ProviderKind.GCP: GCPProvider.from_settings,
}


def new_provider(settings: Settings, kind: Optional[str] = None) -> Provider:
    """Build the provider selected by ``provider.type``."""
    name = kind or settings.provider_type
    try:
        provider_kind = ProviderKind(name)
    except ValueError:
        raise ProviderConfigError(f"unhandled provider kind of {name!r}") from None

    provider = PROVIDERS[provider_kind](settings)
    logger.info(f"Using {provider_kind.value} credential provider")
    return provider
