# src/services/amadeus_client.py

import logging
from typing import Any, Dict, Optional

import requests

from core.errors import ConfigurationError, NetworkError, UpstreamRejectedError
from services.settings import Settings
from services.token_cache import TokenCache

logger = logging.getLogger(__name__)


def _error_detail(resp: requests.Response) -> Optional[str]:
    """Amadeus reports failures as {"errors": [{"detail": ...}, ...]}."""
    try:
        payload = resp.json()
    except ValueError:
        return None
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("detail") or errors[0].get("title")
    return None


class AmadeusClient:
    """
    Minimal Amadeus REST client. The OAuth2 client-credentials token lives in
    a TokenCache owned by (and injectable into) each client instance.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        token_cache: Optional[TokenCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or Settings.from_env()
        if not self.settings.has_amadeus_credentials:
            raise ConfigurationError(
                "Missing Amadeus credentials. Set AMADEUS_CLIENT_ID and AMADEUS_CLIENT_SECRET."
            )

        self.base_url = self.settings.amadeus_base_url
        self.timeout_seconds = self.settings.amadeus_timeout_seconds
        self.token_cache = token_cache or TokenCache()
        self.http = session or requests

    def _fetch_token(self) -> str:
        url = f"{self.base_url}/v1/security/oauth2/token"
        data = {"grant_type": "client_credentials"}
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        try:
            # HTTP Basic Auth for the client_credentials grant
            resp = self.http.post(
                url,
                data=data,
                headers=headers,
                auth=(self.settings.amadeus_client_id, self.settings.amadeus_client_secret),
                timeout=self.timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(f"Amadeus token request failed: {e}") from e

        # Error detail only, never the credentials
        if resp.status_code != 200:
            detail = _error_detail(resp)
            raise UpstreamRejectedError(
                f"Amadeus auth failed: {resp.status_code} {detail or resp.text}",
                status_code=resp.status_code,
                detail=detail,
            )

        try:
            payload = resp.json()
            token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 1800))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise UpstreamRejectedError(
                "Amadeus auth response carried no usable access token",
                status_code=resp.status_code,
            ) from e

        self.token_cache.store(token, expires_in)
        logger.debug("Fetched Amadeus access token (expires in %ss)", payload.get("expires_in"))
        return token

    def _get_auth_header(self) -> Dict[str, str]:
        token = self.token_cache.get() or self._fetch_token()
        return {"Authorization": f"Bearer {token}"}

    def _send(self, url: str, params: Dict[str, Any]) -> requests.Response:
        try:
            return self.http.get(
                url,
                params=params,
                headers=self._get_auth_header(),
                timeout=self.timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(f"Amadeus request to {url} failed: {e}") from e

    def get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        resp = self._send(url, params)

        # If token expired unexpectedly, refresh once and resend
        if resp.status_code == 401:
            logger.info("Amadeus rejected the cached token, refreshing")
            self.token_cache.clear()
            resp = self._send(url, params)

        if not resp.ok:
            detail = _error_detail(resp)
            raise UpstreamRejectedError(
                detail or f"Amadeus search failed with status {resp.status_code}",
                status_code=resp.status_code,
                detail=detail,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamRejectedError(
                f"Amadeus returned a non-JSON body for {path}",
                status_code=resp.status_code,
            ) from e
