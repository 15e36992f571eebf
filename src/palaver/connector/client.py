"""REST client for a channel's connector service (Bot Framework v3 API)."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from palaver.infrastructure.metrics import record_connector_request
from palaver.models import (
    Activity,
    ChannelAccount,
    ConversationParameters,
    ConversationResourceResponse,
    ConversationsResult,
    PagedMembersResult,
    ResourceResponse,
    Transcript,
)

from .auth import MicrosoftAppCredentials
from .errors import ConnectorAuthenticationError, ConnectorError, NotFoundError, ThrottledError

logger = logging.getLogger(__name__)


def _escape(value: str | None) -> str:
    if not value:
        raise ValueError("Path parameter cannot be empty")
    return quote(value, safe="")


class ConnectorClient:
    """Calls the connector service at `base_url` on behalf of the bot.

    A bearer token from `credentials` is attached only when the service URL
    has been trusted (see `MicrosoftAppCredentials.trust_service_url`).
    """

    def __init__(
        self,
        base_url: str,
        credentials: MicrosoftAppCredentials | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30,
    ):
        if not base_url:
            raise ValueError("ConnectorClient(): base_url is required")
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self._http_client = http_client
        self.conversations = ConversationsOperations(self)

    async def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json; charset=utf-8"}
        if (
            self.credentials is not None
            and self.credentials.microsoft_app_id
            and MicrosoftAppCredentials.is_trusted_service(self.base_url)
        ):
            token = await self.credentials.get_token()
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        operation: str,
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty).

        Raises:
            ConnectorAuthenticationError: On 401/403.
            ThrottledError: On 429, with the `retry-after` header.
            NotFoundError: On 404.
            ConnectorError: On timeouts and other failures.
        """
        url = f"{self.base_url}/{path}"
        headers = await self._headers()
        start = time.perf_counter()

        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, json=body, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, json=body, params=params, headers=headers)
        except httpx.TimeoutException:
            record_connector_request(operation, "timeout", time.perf_counter() - start)
            raise ConnectorError(f"{operation} timed out", retryable=True)
        except httpx.RequestError as err:
            record_connector_request(operation, "error", time.perf_counter() - start)
            raise ConnectorError(f"{operation} failed: {err}", retryable=True) from err

        record_connector_request(operation, str(response.status_code), time.perf_counter() - start)

        if response.status_code in (401, 403):
            raise ConnectorAuthenticationError(
                f"{operation} was not authorized by {self.base_url}", status_code=response.status_code
            )

        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise ThrottledError(retry_after=int(retry_after) if retry_after else None)

        if response.status_code == 404:
            raise NotFoundError(path)

        if response.status_code >= 400:
            raise ConnectorError(
                f"{operation} failed: {response.text}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        if not response.content:
            return None
        return response.json()

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()


class ConversationsOperations:
    """The `v3/conversations` operations group."""

    def __init__(self, client: ConnectorClient):
        self._client = client

    async def get_conversations(self, continuation_token: str | None = None) -> ConversationsResult:
        params = {"continuationToken": continuation_token} if continuation_token else None
        data = await self._client.request("GET", "v3/conversations", "get_conversations", params=params)
        return ConversationsResult.model_validate(data or {})

    async def create_conversation(self, parameters: ConversationParameters) -> ConversationResourceResponse:
        data = await self._client.request(
            "POST", "v3/conversations", "create_conversation", body=parameters.to_dict()
        )
        return ConversationResourceResponse.model_validate(data or {})

    async def send_to_conversation(self, conversation_id: str, activity: Activity) -> ResourceResponse:
        data = await self._client.request(
            "POST",
            f"v3/conversations/{_escape(conversation_id)}/activities",
            "send_to_conversation",
            body=activity.to_dict(),
        )
        return ResourceResponse.model_validate(data or {})

    async def send_conversation_history(self, conversation_id: str, history: Transcript) -> ResourceResponse:
        data = await self._client.request(
            "POST",
            f"v3/conversations/{_escape(conversation_id)}/activities/history",
            "send_conversation_history",
            body=history.to_dict(),
        )
        return ResourceResponse.model_validate(data or {})

    async def reply_to_activity(self, conversation_id: str, activity_id: str, activity: Activity) -> ResourceResponse:
        data = await self._client.request(
            "POST",
            f"v3/conversations/{_escape(conversation_id)}/activities/{_escape(activity_id)}",
            "reply_to_activity",
            body=activity.to_dict(),
        )
        return ResourceResponse.model_validate(data or {})

    async def update_activity(self, conversation_id: str, activity_id: str, activity: Activity) -> ResourceResponse:
        data = await self._client.request(
            "PUT",
            f"v3/conversations/{_escape(conversation_id)}/activities/{_escape(activity_id)}",
            "update_activity",
            body=activity.to_dict(),
        )
        return ResourceResponse.model_validate(data or {})

    async def delete_activity(self, conversation_id: str, activity_id: str) -> None:
        await self._client.request(
            "DELETE",
            f"v3/conversations/{_escape(conversation_id)}/activities/{_escape(activity_id)}",
            "delete_activity",
        )

    async def get_conversation_members(self, conversation_id: str) -> list[ChannelAccount]:
        data = await self._client.request(
            "GET", f"v3/conversations/{_escape(conversation_id)}/members", "get_conversation_members"
        )
        return [ChannelAccount.model_validate(item) for item in data or []]

    async def get_conversation_paged_members(
        self,
        conversation_id: str,
        page_size: int | None = None,
        continuation_token: str | None = None,
    ) -> PagedMembersResult:
        params = {}
        if page_size:
            params["pageSize"] = str(page_size)
        if continuation_token:
            params["continuationToken"] = continuation_token
        data = await self._client.request(
            "GET",
            f"v3/conversations/{_escape(conversation_id)}/pagedmembers",
            "get_conversation_paged_members",
            params=params or None,
        )
        return PagedMembersResult.model_validate(data or {})

    async def get_activity_members(self, conversation_id: str, activity_id: str) -> list[ChannelAccount]:
        data = await self._client.request(
            "GET",
            f"v3/conversations/{_escape(conversation_id)}/activities/{_escape(activity_id)}/members",
            "get_activity_members",
        )
        return [ChannelAccount.model_validate(item) for item in data or []]

    async def delete_conversation_member(self, conversation_id: str, member_id: str) -> None:
        await self._client.request(
            "DELETE",
            f"v3/conversations/{_escape(conversation_id)}/members/{_escape(member_id)}",
            "delete_conversation_member",
        )
