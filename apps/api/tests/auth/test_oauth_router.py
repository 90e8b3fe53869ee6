"""Tests for the GitHub OAuth sign-in endpoints."""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
from httpx import ASGITransport, AsyncClient

from app.auth.router import STATE_COOKIE
from app.auth.session import decode_session_token
from app.core.config import Settings, get_settings
from app.github.client import OAuthError
from tests.conftest import STUB_LOGIN, _override_settings

PROFILE = {"login": STUB_LOGIN, "id": 583231}


async def _callback(app, params: dict, state_cookie: str = "xyz"):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={STATE_COOKIE: state_cookie} if state_cookie else None,
    ) as ac:
        return await ac.get("/auth/callback", params=params)


class TestLogin:
    async def test_redirects_to_github_with_state_cookie(self, client: AsyncClient) -> None:
        res = await client.get("/auth/login")

        assert res.status_code == 302
        location = urlparse(res.headers["location"])
        assert location.netloc == "github.com"
        assert location.path == "/login/oauth/authorize"
        query = parse_qs(location.query)
        assert query["client_id"] == ["test-client-id"]
        assert query["scope"] == ["repo"]
        assert query["state"][0] == res.cookies[STATE_COOKIE]

    async def test_unconfigured_client_id_is_503(self, app, client: AsyncClient) -> None:
        app.dependency_overrides[get_settings] = lambda: Settings(github_client_id="")

        res = await client.get("/auth/login")

        assert res.status_code == 503


class TestCallback:
    async def test_success_sets_session_cookie_and_redirects(self, app) -> None:
        with patch("app.github.client.exchange_oauth_code", new=AsyncMock(return_value="gho_new")) as mock_exchange, \
             patch("app.github.client.get_authenticated_user", new=AsyncMock(return_value=PROFILE)):
            res = await _callback(app, {"code": "abc", "state": "xyz"})

        assert res.status_code == 303
        assert res.headers["location"] == "http://dashboard.test"
        assert mock_exchange.await_args.kwargs["client_secret"] == "test-client-secret"

        user = decode_session_token(res.cookies["janitor_session"], _override_settings())
        assert user.login == STUB_LOGIN
        assert user.access_token == "gho_new"

    async def test_state_mismatch_is_400(self, app) -> None:
        with patch("app.github.client.exchange_oauth_code", new=AsyncMock()) as mock_exchange:
            res = await _callback(app, {"code": "abc", "state": "forged"})

        assert res.status_code == 400
        mock_exchange.assert_not_called()

    async def test_missing_state_cookie_is_400(self, app) -> None:
        res = await _callback(app, {"code": "abc", "state": "xyz"}, state_cookie="")
        assert res.status_code == 400

    async def test_github_error_param_is_400(self, app) -> None:
        res = await _callback(app, {"error": "access_denied", "state": "xyz"})
        assert res.status_code == 400
        assert "access_denied" in res.json()["detail"]

    async def test_rejected_code_is_502(self, app) -> None:
        with patch("app.github.client.exchange_oauth_code", new=AsyncMock(side_effect=OAuthError("bad_verification_code"))):
            res = await _callback(app, {"code": "abc", "state": "xyz"})

        assert res.status_code == 502

    async def test_github_unreachable_is_502(self, app) -> None:
        with patch("app.github.client.exchange_oauth_code", new=AsyncMock(return_value="gho_new")), \
             patch("app.github.client.get_authenticated_user", new=AsyncMock(side_effect=httpx.ConnectError("down"))):
            res = await _callback(app, {"code": "abc", "state": "xyz"})

        assert res.status_code == 502

    async def test_incomplete_profile_is_502(self, app) -> None:
        for profile in ({"id": 583231}, {"login": STUB_LOGIN}, {"login": STUB_LOGIN, "id": None}):
            with patch("app.github.client.exchange_oauth_code", new=AsyncMock(return_value="gho_new")), \
                 patch("app.github.client.get_authenticated_user", new=AsyncMock(return_value=profile)):
                res = await _callback(app, {"code": "abc", "state": "xyz"})

            assert res.status_code == 502, f"{profile!r} returned {res.status_code}"
            assert res.json()["detail"] == "GitHub API error during sign-in"
            assert "janitor_session" not in res.cookies


class TestLogout:
    async def test_logout_discards_workspace(self, app, authed_client: AsyncClient, app_workspace) -> None:
        app_workspace.log.append("something")

        res = await authed_client.post("/auth/logout")

        assert res.status_code == 200
        assert res.json() == {"signed_out": True}
        assert STUB_LOGIN not in app.state.workspaces

    async def test_logout_without_session_succeeds(self, client: AsyncClient) -> None:
        res = await client.post("/auth/logout")
        assert res.status_code == 200
