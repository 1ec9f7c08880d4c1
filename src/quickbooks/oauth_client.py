"""
QuickBooks OAuth2 Authentication Client
"""

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from intuitlib.utils import generate_token, get_auth_header

from .errors import (
    AUTH_GRANT_ERRORS,
    QuickBooksError,
    QuickBooksErrorType,
    classify_error,
    error_from_response,
)
from .models import CredentialBundle, QuickBooksConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)

AUTHORIZATION_URL = "https://appcenter.intuit.com/connect/oauth2"
TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
REVOKE_URL = "https://developer.api.intuit.com/v2/oauth2/tokens/revoke"


def generate_state() -> str:
    """Random CSRF state token for the authorization redirect"""
    return generate_token(30)


class QuickBooksOAuthClient:
    """QuickBooks OAuth2 authentication client"""

    def __init__(self, config: QuickBooksConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """
        Build the Intuit authorization URL the user is redirected to

        Args:
            state: CSRF state token (generated when omitted)

        Returns:
            Authorization URL
        """
        params = {
            "client_id": self.config.client_id,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "redirect_uri": self.config.redirect_uri,
            "state": state or generate_state(),
        }
        logger.info("Generated authorization URL")
        return f"{AUTHORIZATION_URL}?{urlencode(params)}"

    def _basic_auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": get_auth_header(self.config.client_id, self.config.client_secret),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

    def _token_request(self, data: Dict[str, str], action: str) -> Dict[str, Any]:
        """POST to the token endpoint and return the JSON body or raise a classified error"""
        try:
            response = self.session.post(
                TOKEN_URL,
                data=data,
                headers=self._basic_auth_headers(),
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise classify_error(e) from e

        if response.status_code != 200:
            error = error_from_response(response, default_message=f"{action} failed")
            if _oauth_error_code(response) in AUTH_GRANT_ERRORS:
                error.error_type = QuickBooksErrorType.AUTHENTICATION
            logger.error(
                f"{action} failed: HTTP {response.status_code} "
                f"(intuit_tid={error.intuit_tid}): {error.message}"
            )
            raise error

        try:
            tokens = response.json()
        except ValueError as e:
            raise QuickBooksError(
                QuickBooksErrorType.UNKNOWN,
                f"{action} returned an unreadable response",
                status_code=response.status_code,
            ) from e

        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            raise QuickBooksError(
                QuickBooksErrorType.AUTHENTICATION,
                f"{action} returned no access token",
                status_code=response.status_code,
            )
        return tokens

    def exchange_code_for_tokens(self, authorization_code: str, realm_id: str) -> CredentialBundle:
        """
        Exchange an authorization code for access and refresh tokens

        Args:
            authorization_code: The ``code`` query parameter from the callback
            realm_id: The ``realmId`` query parameter from the callback

        Returns:
            New credential bundle
        """
        tokens = self._token_request(
            {
                "grant_type": "authorization_code",
                "code": authorization_code,
                "redirect_uri": self.config.redirect_uri,
            },
            action="Token exchange",
        )
        if not tokens.get("refresh_token"):
            raise QuickBooksError(
                QuickBooksErrorType.AUTHENTICATION,
                "Token exchange returned no refresh token",
            )
        logger.info(f"Exchanged authorization code for tokens (realm {realm_id})")
        return CredentialBundle.from_token_response(tokens, realm_id)

    def refresh_tokens(self, refresh_token: str) -> Dict[str, Any]:
        """
        Trade a refresh token for a new token pair

        Any failure is reported as an authentication error, since the caller
        cannot continue without re-authorizing.
        """
        try:
            tokens = self._token_request(
                {"grant_type": "refresh_token", "refresh_token": refresh_token},
                action="Token refresh",
            )
        except QuickBooksError as e:
            raise QuickBooksError(
                QuickBooksErrorType.AUTHENTICATION,
                f"Token refresh failed: {e.message}",
                status_code=e.status_code,
                intuit_tid=e.intuit_tid,
            ) from e

        logger.info("Successfully refreshed access token")
        return tokens

    def revoke_token(self, token: str) -> bool:
        """Revoke an access or refresh token, returns True when Intuit accepted it"""
        try:
            response = self.session.post(
                REVOKE_URL,
                json={"token": token},
                headers={
                    "Authorization": get_auth_header(self.config.client_id, self.config.client_secret),
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise classify_error(e) from e

        if response.status_code != 200:
            raise error_from_response(response, default_message="Token revoke failed")

        logger.info("Successfully revoked token")
        return True


def _oauth_error_code(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return None
