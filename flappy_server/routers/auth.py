import json
import logging
from typing import Optional
from uuid import uuid4

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from flappy_server.dependencies import get_identity_provider
from flappy_server.errors import UpstreamFailure
from flappy_server.identity import IdentityProvider

auth_router = APIRouter(prefix="/api/auth/patreon")

CALLBACK_TEMPLATE = """<!DOCTYPE html><html><body><script>
  window.opener?.postMessage({{
    type: 'patreon-auth',
    token: {token},
    user: {user}
  }}, '*');
  window.close();
</script></body></html>"""


def script_json(value) -> str:
    """JSON that can be embedded in an inline <script> block."""
    return json.dumps(value).replace("</", "<\\/")


def render_callback_page(token: dict, user: dict) -> str:
    return CALLBACK_TEMPLATE.format(token=script_json(token), user=script_json(user))


class PatreonAuthAPI:
    @staticmethod
    @auth_router.get("/login")
    async def login(provider: IdentityProvider = Depends(get_identity_provider)):
        state = str(uuid4())
        return RedirectResponse(provider.authorization_url(state), status_code=status.HTTP_302_FOUND)

    @staticmethod
    @auth_router.get("/callback")
    async def callback(
        code: Optional[str] = None,
        provider: IdentityProvider = Depends(get_identity_provider),
    ):
        """Finish the popup login: hand the token and profile to the opener window.

        Args:
            code (Optional[str], optional): Authorization code from Patreon. Defaults to None.

        Returns:
            HTMLResponse: Page that posts the result to window.opener and closes itself
        """
        if not code:
            return PlainTextResponse("Missing code", status_code=status.HTTP_400_BAD_REQUEST)

        try:
            token = await provider.exchange_code(code)
            user = await provider.fetch_identity(token.access_token)
        except (UpstreamFailure, httpx.HTTPError) as e:
            logging.error(f"Patreon OAuth failed: {e}")
            return PlainTextResponse("OAuth error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return HTMLResponse(render_callback_page(token.model_dump(), user))
