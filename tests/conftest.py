"""
Shared fixtures for the QuickBooks connector tests
"""

import json
from datetime import timedelta
from unittest.mock import Mock

import pytest
import requests

from src.quickbooks.models import CredentialBundle, QuickBooksConfig, utcnow


@pytest.fixture
def qb_config():
    return QuickBooksConfig(
        client_id="test_client_id",
        client_secret="test_client_secret",
        redirect_uri="http://localhost:8000/api/quickbooks/auth/callback",
        environment="sandbox",
        timeout_seconds=5,
    )


@pytest.fixture
def make_response():
    """Factory for real requests.Response objects with a JSON body"""

    def _make(status_code=200, body=None, headers=None, url="https://quickbooks.test/"):
        response = requests.Response()
        response.status_code = status_code
        response._content = json.dumps(body).encode() if body is not None else b""
        response.headers.update(headers or {})
        response.url = url
        return response

    return _make


@pytest.fixture
def make_credentials():
    """Factory for credentials expiring ``expires_in`` seconds from now"""

    def _make(expires_in=3600, realm_id="123145", access_token="access-1", refresh_token="refresh-1"):
        return CredentialBundle(
            access_token=access_token,
            refresh_token=refresh_token,
            realm_id=realm_id,
            expires_at=utcnow() + timedelta(seconds=expires_in),
        )

    return _make


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def token_body():
    return {
        "access_token": "access-2",
        "refresh_token": "refresh-2",
        "expires_in": 3600,
        "x_refresh_token_expires_in": 8726400,
        "token_type": "bearer",
    }
