"""Thin async wrapper over the chat HTTP endpoints."""

from __future__ import annotations

from typing import Any

import httpx


class ChatApiError(RuntimeError):
    """Raised when a chat request fails in transport or with an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatApiClient:
    """Bearer-authenticated client for the ``/chat`` routes.

    ``base_url`` points at the API root (for example ``http://host/api``).
    A custom ``transport`` can be passed to talk to an in-process app.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise ChatApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            detail: Any = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and "detail" in body:
                detail = body["detail"]
            raise ChatApiError(
                f"{method} {path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )
        return response.json()

    async def list_rooms(self) -> dict[str, Any]:
        return await self._request("GET", "/chat/rooms")

    async def get_messages(self, room_id: int, *, mark_read: bool = False) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"/chat/rooms/{room_id}/messages",
            params={"mark_read": "true" if mark_read else "false"},
        )

    async def send_text(self, room_id: int, text: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/chat/rooms/{room_id}/messages",
            data={"message": text, "type": "text"},
        )

    async def send_file(
        self,
        room_id: int,
        file_name: str,
        content: bytes,
        *,
        content_type: str | None = None,
        caption: str | None = None,
    ) -> dict[str, Any]:
        content_type = content_type or "application/octet-stream"
        kind = "image" if content_type.startswith("image/") else "file"
        return await self._request(
            "POST",
            f"/chat/rooms/{room_id}/messages",
            data={"message": caption if caption is not None else file_name, "type": kind},
            files={"file": (file_name, content, content_type)},
        )

    async def create_direct_room(self, user_id: int) -> dict[str, Any]:
        return await self._request(
            "POST", "/chat/rooms", json={"type": "direct", "user_ids": [user_id]}
        )

    async def create_group_room(
        self, name: str, user_ids: list[int], project_id: int | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": "group", "name": name, "user_ids": user_ids}
        if project_id is not None:
            payload["project_id"] = project_id
        return await self._request("POST", "/chat/rooms", json=payload)

    async def mark_read(self, room_id: int) -> dict[str, Any]:
        return await self._request("POST", f"/chat/rooms/{room_id}/mark-read")

    async def heartbeat(self, is_online: bool) -> dict[str, Any]:
        return await self._request("POST", "/chat/online-status", json={"is_online": is_online})

    async def online_users(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/chat/online-users")

    async def team_members(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/chat/team-members")
