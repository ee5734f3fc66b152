import logging
from abc import ABC, abstractmethod
from urllib.parse import urlencode

import httpx

from flappy_server.errors import UpstreamFailure
from flappy_server.load_secrets import Settings
from flappy_server.models.dc_models import TokenBundle

PATREON_AUTH_URL = "https://www.patreon.com/oauth2/authorize"
PATREON_TOKEN_URL = "https://www.patreon.com/api/oauth2/token"
PATREON_IDENTITY_URL = "https://www.patreon.com/api/oauth2/v2/identity"
PATREON_SCOPE = "identity identity[email]"


class IdentityProvider(ABC):
    """OAuth collaborator used for the patron-login bypass. Stores no tokens."""

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> TokenBundle:
        ...

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> TokenBundle:
        ...

    @abstractmethod
    async def fetch_identity(self, access_token: str) -> dict:
        ...


class PatreonIdentityProvider(IdentityProvider):
    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.client_id = settings.patreon_client_id
        self.client_secret = settings.patreon_client_secret
        self.redirect_uri = settings.patreon_redirect_uri
        self.client = client

    def authorization_url(self, state: str) -> str:
        """Build the Patreon URL the user approves access on.

        Args:
            state (str): Anti-forgery token echoed back to the callback

        Returns:
            str: Authorization URL
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": PATREON_SCOPE,
            "state": state,
        }
        return f"{PATREON_AUTH_URL}?{urlencode(params)}"

    async def _token_request(self, form: dict, action: str) -> TokenBundle:
        response = await self.client.post(
            PATREON_TOKEN_URL,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not response.is_success:
            logging.error(f"Failed to {action}: {response.status_code} {response.reason_phrase}")
            raise UpstreamFailure(response.status_code, f"Failed to {action}")
        # ValueError covers bodies that are not JSON and pydantic validation errors
        try:
            return TokenBundle.model_validate(response.json())
        except ValueError as e:
            logging.error(f"Failed to {action}: unexpected token response: {e}")
            raise UpstreamFailure(response.status_code, f"Failed to {action}")

    async def exchange_code(self, code: str) -> TokenBundle:
        form = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        return await self._token_request(form, "get token")

    async def refresh_token(self, refresh_token: str) -> TokenBundle:
        form = {
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "refresh_token",
        }
        return await self._token_request(form, "refresh token")

    async def fetch_identity(self, access_token: str) -> dict:
        """Fetch the patron's profile, including their email.

        Args:
            access_token (str): Bearer token from exchange_code or refresh_token

        Raises:
            UpstreamFailure: Patreon answered with a non-2xx status or an unusable body

        Returns:
            dict: Patreon identity document
        """
        response = await self.client.get(
            PATREON_IDENTITY_URL,
            params={"include": "email"},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.is_success:
            logging.error(f"Failed to fetch user info: {response.status_code} {response.reason_phrase}")
            raise UpstreamFailure(response.status_code, "Failed to fetch user info")
        try:
            identity = response.json()
        except ValueError as e:
            logging.error(f"Failed to fetch user info: body is not JSON: {e}")
            raise UpstreamFailure(response.status_code, "Failed to fetch user info")
        if not isinstance(identity, dict):
            logging.error("Failed to fetch user info: body is not a JSON object")
            raise UpstreamFailure(response.status_code, "Failed to fetch user info")
        return identity
