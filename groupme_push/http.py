"""HTTP client for the GroupMe REST endpoints a push session depends on.

A push session needs the numeric user id and, for group channels, the ids of
the groups the token's owner belongs to. Both can be looked up here.
"""

from __future__ import annotations

from typing import Any

import aiohttp

from .config import DEFAULT_API_URL
from .errors import (
    PushConnectionError,
    PushResponseError,
    PushTimeout,
)

# Upper bound of the API's per_page parameter for /groups.
MAX_GROUPS_PER_PAGE = 500


class GroupMeHttpClient:
    """HTTP client wrapper for the GroupMe v3 API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: str,
        *,
        api_url: str = DEFAULT_API_URL,
    ) -> None:
        self._session = session
        self._access_token = access_token
        self._api_url = api_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._api_url}{path}"

    def _auth_headers(self) -> dict[str, str]:
        return {"X-Access-Token": self._access_token}

    async def _get_response(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> Any:
        """GET path and return the "response" member of the JSON envelope."""
        url = self._url(path)
        try:
            async with self._session.get(
                url,
                headers=self._auth_headers(),
                params=params,
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                if resp.status != 200:
                    raise PushResponseError(
                        resp.status, f"GET {path} failed with status {resp.status}"
                    )
                data = await resp.json()
        except TimeoutError as err:
            raise PushTimeout(f"GET {path} timed out") from err
        except aiohttp.ClientError as err:
            raise PushConnectionError(f"GET {path} failed") from err

        if not isinstance(data, dict) or "response" not in data:
            raise PushResponseError(200, f"GET {path} returned no response member")
        return data["response"]

    async def fetch_user_id(self) -> str:
        """Fetch the id of the user that owns the access token."""
        me = await self._get_response("/users/me")
        if not isinstance(me, dict):
            raise PushResponseError(200, "User profile is not an object")
        user_id = me.get("id") or me.get("user_id")
        if not user_id:
            raise PushResponseError(200, "User profile has no id")
        return str(user_id)

    async def fetch_group_ids(self, *, per_page: int = 100) -> list[str]:
        """Fetch the ids of every group the token's owner belongs to.

        Pages through /groups until an empty page is returned.
        """
        per_page = max(1, min(per_page, MAX_GROUPS_PER_PAGE))
        group_ids: list[str] = []
        page = 1
        while True:
            groups = await self._get_response(
                "/groups",
                params={"page": page, "per_page": per_page, "omit": "memberships"},
            )
            if not groups:
                break
            if not isinstance(groups, list) or not all(
                isinstance(group, dict) for group in groups
            ):
                raise PushResponseError(200, f"Group page {page} is not a list of objects")
            group_ids.extend(str(group["id"]) for group in groups if group.get("id"))
            if len(groups) < per_page:
                break
            page += 1
        return group_ids
