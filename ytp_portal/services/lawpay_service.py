"""
LawPay OAuth2 client
Authorization URL, code exchange, gateway credentials and
merchant deauthorization against https://secure.lawpay.com
"""
import logging
from urllib.parse import urlencode

import httpx

from ..config import LAWPAY_CLIENT_ID, LAWPAY_CLIENT_SECRET, LAWPAY_REDIRECT_URI, LAWPAY_SCOPE

logger = logging.getLogger(__name__)

LAWPAY_OAUTH_URL = "https://secure.lawpay.com/oauth"
LAWPAY_API_BASE_URL = "https://secure.lawpay.com/api/v1"
REQUEST_TIMEOUT = 15.0


class LawPayError(Exception):
    """Raised when LawPay answers with a non-success status"""


def is_configured() -> bool:
    return bool(LAWPAY_CLIENT_ID and LAWPAY_CLIENT_SECRET)


def build_authorization_url(state: str, scope: str = LAWPAY_SCOPE) -> str:
    params = {
        "response_type": "code",
        "client_id": LAWPAY_CLIENT_ID,
        "redirect_uri": LAWPAY_REDIRECT_URI,
        "state": state,
        "scope": scope,
    }
    return f"{LAWPAY_OAUTH_URL}/authorize?{urlencode(params)}"


async def _request_token(data: dict) -> dict:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        response = await client.post(
            f"{LAWPAY_OAUTH_URL}/token",
            headers={
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data={
                **data,
                "client_id": LAWPAY_CLIENT_ID,
                "client_secret": LAWPAY_CLIENT_SECRET,
            },
        )

    if response.status_code != 200:
        logger.error(f"❌ LawPay token request failed: HTTP {response.status_code} {response.text}")
        raise LawPayError(f"LawPay token exchange failed: {response.text}")

    token_data = response.json()
    if not token_data.get("access_token"):
        raise LawPayError("Invalid token response from LawPay")
    return token_data


async def exchange_code_for_token(code: str) -> dict:
    """
    Exchange an authorization code for tokens.

    Returns the token response: access_token, token_type, expires_in,
    refresh_token (optional) and scope.
    """
    return await _request_token(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": LAWPAY_REDIRECT_URI,
        }
    )


async def get_gateway_credentials(access_token: str) -> dict:
    """Merchant details for the connected account (merchant_public_key, merchant_name)"""
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        response = await client.get(
            f"{LAWPAY_API_BASE_URL}/gateway-credentials",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )

    if response.status_code != 200:
        logger.error(f"❌ LawPay gateway credentials failed: HTTP {response.status_code}")
        raise LawPayError(f"Failed to get gateway credentials: {response.text}")

    return response.json()


async def deauthorize_merchant(access_token: str, merchant_public_key: str) -> None:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        response = await client.delete(
            f"{LAWPAY_API_BASE_URL}/merchants/{merchant_public_key}/deauthorize_application",
            headers={"Authorization": f"Bearer {access_token}"},
        )

    if response.status_code >= 400:
        raise LawPayError(f"Failed to deauthorize: {response.text}")
