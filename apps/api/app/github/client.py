"""GitHub REST client for the artifact workflow and OAuth sign-in.

Uses httpx for async HTTP calls, one ``AsyncClient`` per operation. All
repository-scoped calls take the signed-in user's OAuth access token.

Operations:
1. List repositories for the authenticated user (sorted by last update)
2. List Actions artifacts for a repository
3. Delete an Actions artifact
4. Exchange an OAuth code for an access token, and read the user profile

Listing calls fetch a single page by default. GitHub caps a page at 100
items, so users with more repositories (or repositories with more
artifacts) only see the first 100 unless ``max_pages`` is raised; the
truncation is logged either way.
"""

import logging
from typing import Any, Optional

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
GITHUB_OAUTH_BASE = "https://github.com/login/oauth"


class OAuthError(Exception):
    """Raised when GitHub refuses an OAuth code exchange."""


def _auth_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }


def _timeout(timeout: Optional[float]) -> float:
    return timeout if timeout is not None else get_settings().github_timeout_seconds


async def _get_paginated(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str],
    params: dict[str, Any],
    max_pages: int,
    item_key: Optional[str] = None,
) -> list[dict]:
    """Collect items across up to *max_pages* pages, following ``Link: rel=next``.

    *item_key* names the array inside an object response (the artifacts
    endpoint wraps its list); when None the response body is the list.
    """
    items: list[dict] = []
    next_url: Optional[str] = url
    next_params: Optional[dict[str, Any]] = params
    pages = 0

    while next_url and pages < max_pages:
        response = await client.get(next_url, headers=headers, params=next_params)
        response.raise_for_status()
        body = response.json()
        items.extend(body.get(item_key, []) if item_key else body)
        pages += 1
        next_url = response.links.get("next", {}).get("url")
        # The next link already carries the query string.
        next_params = None

    if next_url:
        logger.warning(
            "GitHub listing %s truncated after %d page(s) (%d items); more pages available",
            url, pages, len(items),
        )
    return items


async def list_repositories_for_user(
    token: str,
    per_page: int = 100,
    max_pages: int = 1,
    timeout: Optional[float] = None,
) -> list[dict]:
    """GET /user/repos sorted by most recently updated."""
    async with httpx.AsyncClient(timeout=_timeout(timeout)) as client:
        return await _get_paginated(
            client,
            f"{GITHUB_API_BASE}/user/repos",
            headers=_auth_headers(token),
            params={"per_page": per_page, "sort": "updated"},
            max_pages=max_pages,
        )


async def list_artifacts(
    token: str,
    owner: str,
    repo: str,
    per_page: int = 100,
    max_pages: int = 1,
    timeout: Optional[float] = None,
) -> list[dict]:
    """GET /repos/{owner}/{repo}/actions/artifacts"""
    async with httpx.AsyncClient(timeout=_timeout(timeout)) as client:
        return await _get_paginated(
            client,
            f"{GITHUB_API_BASE}/repos/{owner}/{repo}/actions/artifacts",
            headers=_auth_headers(token),
            params={"per_page": per_page},
            max_pages=max_pages,
            item_key="artifacts",
        )


async def delete_artifact(
    token: str,
    owner: str,
    repo: str,
    artifact_id: int,
    timeout: Optional[float] = None,
) -> None:
    """DELETE /repos/{owner}/{repo}/actions/artifacts/{artifact_id}

    GitHub answers 204 on success. Any error status raises
    ``httpx.HTTPStatusError``.
    """
    async with httpx.AsyncClient(timeout=_timeout(timeout)) as client:
        response = await client.delete(
            f"{GITHUB_API_BASE}/repos/{owner}/{repo}/actions/artifacts/{artifact_id}",
            headers=_auth_headers(token),
        )
        response.raise_for_status()


async def exchange_oauth_code(
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    timeout: Optional[float] = None,
) -> str:
    """Exchange an OAuth authorization code for a user access token.

    GitHub reports a bad or reused code with HTTP 200 and an ``error``
    field, so the body is inspected as well as the status.
    """
    if not client_id or not client_secret:
        raise OAuthError(
            "GitHub OAuth credentials not configured. "
            "Set GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET."
        )

    async with httpx.AsyncClient(timeout=_timeout(timeout)) as client:
        response = await client.post(
            f"{GITHUB_OAUTH_BASE}/access_token",
            headers={"Accept": "application/json"},
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        response.raise_for_status()
        data = response.json()

    if "error" in data or not data.get("access_token"):
        raise OAuthError(data.get("error_description") or data.get("error") or "No access token returned")
    return data["access_token"]


async def get_authenticated_user(token: str, timeout: Optional[float] = None) -> dict:
    """GET /user: the profile of the token's owner."""
    async with httpx.AsyncClient(timeout=_timeout(timeout)) as client:
        response = await client.get(
            f"{GITHUB_API_BASE}/user",
            headers=_auth_headers(token),
        )
        response.raise_for_status()
        return response.json()
