"""
OAuth routes for the QuickBooks integration
Handles the connect/callback/disconnect flow and the result pages
"""

import html
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from config.settings import Settings
from .dependencies import (
    AUTH_COOKIE,
    AUTH_COOKIE_MAX_AGE,
    STATE_COOKIE,
    STATE_COOKIE_MAX_AGE,
    encode_auth_cookie,
    get_oauth_client,
    get_settings,
    get_store,
    load_credentials,
)
from .schemas import AuthorizationUrlResponse, DisconnectResponse
from ..quickbooks.errors import QuickBooksError, classify_error, parse_error_type
from ..quickbooks.oauth_client import QuickBooksOAuthClient, generate_state
from ..quickbooks.registry import install_credentials, reset_client
from ..quickbooks.storage import QuickBooksStore
from ..utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/quickbooks/auth", tags=["oauth"])
pages_router = APIRouter(prefix="/integrations/quickbooks", tags=["pages"])

CONNECTED_PATH = "/integrations/quickbooks/connected"
ERROR_PATH = "/integrations/quickbooks/error"


def _page_url(settings: Settings, path: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}{path}"


def _set_state_cookie(response: Response, state: str, settings: Settings) -> None:
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


@router.get("/connect")
def connect_quickbooks(settings: Settings = Depends(get_settings),
                       oauth_client: QuickBooksOAuthClient = Depends(get_oauth_client)):
    """
    Step 1: Redirect the user to the QuickBooks authorization page

    The state token is kept in a short-lived cookie and checked in the callback.
    """
    state = generate_state()
    response = RedirectResponse(url=oauth_client.get_authorization_url(state=state))
    _set_state_cookie(response, state, settings)
    return response


@router.get("/url", response_model=AuthorizationUrlResponse)
def get_authorization_url(response: Response,
                          settings: Settings = Depends(get_settings),
                          oauth_client: QuickBooksOAuthClient = Depends(get_oauth_client)):
    """Same as /connect, but returns the URL for the frontend to open"""
    state = generate_state()
    _set_state_cookie(response, state, settings)
    return AuthorizationUrlResponse(
        authorization_url=oauth_client.get_authorization_url(state=state),
        state=state,
    )


@router.get("/callback")
def oauth_callback(request: Request,
                   code: Optional[str] = None,
                   state: Optional[str] = None,
                   realmId: Optional[str] = None,
                   settings: Settings = Depends(get_settings),
                   store: QuickBooksStore = Depends(get_store),
                   oauth_client: QuickBooksOAuthClient = Depends(get_oauth_client)):
    """
    Step 2: Handle the OAuth callback from QuickBooks

    Query Parameters:
        code: Authorization code to exchange for tokens
        state: CSRF protection token
        realmId: QuickBooks company ID

    Returns: Redirect to the connected page, or to the error page with the
    classified error
    """
    if not code or not state or not realmId:
        logger.warning("OAuth callback is missing code, state or realmId")
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})

    if settings.qb_verify_state and request.cookies.get(STATE_COOKIE) != state:
        logger.warning("OAuth callback state does not match the issued state")
        return JSONResponse(status_code=400, content={"error": "Invalid state parameter"})

    try:
        credentials = oauth_client.exchange_code_for_tokens(code, realmId)
        store.save_credentials(credentials)
    except Exception as e:
        error = classify_error(e)
        logger.error(f"Error in OAuth callback ({error.error_type.value}): {error.message}")
        query = urlencode({"type": error.error_type.value, "message": error.message})
        response = RedirectResponse(url=f"{_page_url(settings, ERROR_PATH)}?{query}")
        response.delete_cookie(STATE_COOKIE, path="/")
        return response

    install_credentials(credentials)
    logger.info(f"Connected QuickBooks company {realmId}")

    response = RedirectResponse(url=_page_url(settings, CONNECTED_PATH))
    response.set_cookie(
        AUTH_COOKIE,
        encode_auth_cookie(credentials),
        max_age=AUTH_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    response.delete_cookie(STATE_COOKIE, path="/")
    return response


@router.post("/disconnect", response_model=DisconnectResponse)
def disconnect_quickbooks(request: Request,
                          response: Response,
                          store: QuickBooksStore = Depends(get_store),
                          oauth_client: QuickBooksOAuthClient = Depends(get_oauth_client)):
    """
    Disconnect from QuickBooks

    Revokes the refresh token when possible, then forgets the credentials and
    the synced data.
    """
    revoked = False
    credentials = load_credentials(request, store)
    if credentials is not None:
        try:
            revoked = oauth_client.revoke_token(credentials.refresh_token)
        except QuickBooksError as e:
            logger.warning(f"Failed to revoke QuickBooks token: {e.message}")

    store.clear()
    reset_client()
    response.delete_cookie(AUTH_COOKIE, path="/")

    logger.info("Disconnected from QuickBooks")
    return DisconnectResponse(success=True, message="Disconnected from QuickBooks", revoked=revoked)


# -----------------------------------------------------------------------------
# Result pages
# -----------------------------------------------------------------------------

PAGE_TEMPLATE = """
<html>
    <head>
        <title>{title}</title>
        <style>
            body {{
                font-family: Arial, sans-serif;
                max-width: 600px;
                margin: 100px auto;
                padding: 40px;
                text-align: center;
                background-color: #f5f5f5;
            }}
            .box {{
                background: white;
                padding: 40px;
                border-radius: 10px;
                box-shadow: 0 2px 10px rgba(0,0,0,0.1);
            }}
            h1 {{
                color: {color};
            }}
            .detail {{
                color: #666;
                font-size: 14px;
                margin-top: 20px;
            }}
        </style>
    </head>
    <body>
        <div class="box">
            {body}
        </div>
    </body>
</html>
"""


@pages_router.get("/connected", response_class=HTMLResponse)
def connected_page():
    body = (
        "<h1>✓ Connected to QuickBooks</h1>"
        "<p>Your QuickBooks company is connected. You can now sync accounts, "
        "customers, invoices, bills, payments and reports.</p>"
        '<p class="detail">You can close this window and return to your application.</p>'
    )
    return HTMLResponse(PAGE_TEMPLATE.format(title="QuickBooks Connected", color="#2ca01c", body=body))


@pages_router.get("/error", response_class=HTMLResponse)
def error_page(error_type: Optional[str] = Query(None, alias="type"), message: Optional[str] = None):
    error = QuickBooksError(parse_error_type(error_type), message or "")
    body = (
        f"<h1>⚠ {html.escape(error.title)}</h1>"
        f"<p>{html.escape(error.help_text)}</p>"
    )
    if error.message:
        body += f'<p class="detail"><strong>Error:</strong> {html.escape(error.message)}</p>'
    body += '<p><a href="/api/quickbooks/auth/connect">Reconnect to QuickBooks</a></p>'
    return HTMLResponse(PAGE_TEMPLATE.format(title="Connection Error", color="#cc0000", body=body))
