"""Adapter for the Bot Framework channel service over HTTP."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from palaver.connector import (
    AuthenticationConstants,
    ClaimsIdentity,
    ConnectorClient,
    CredentialProvider,
    JwtTokenValidation,
    MicrosoftAppCredentials,
    OpenIdMetadataKeyResolver,
    SimpleCredentialProvider,
    SkillValidation,
)
from palaver.core.adapter import BotAdapter, OnTurnErrorHandler
from palaver.core.middleware import BotCallback
from palaver.core.turn_context import TurnContext
from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ConversationParameters,
    ConversationReference,
    DeliveryModes,
    InvokeResponse,
    ResourceResponse,
    Settings,
)

logger = logging.getLogger(__name__)

CONNECTOR_CLIENT_KEY = "ConnectorClient"


@dataclass
class BotFrameworkAdapterSettings:
    app_id: str = ""
    app_password: str = ""
    channel_auth_tenant: str | None = None
    oauth_endpoint: str | None = None
    open_id_metadata: str | None = None
    credential_provider: CredentialProvider | None = None
    http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BotFrameworkAdapterSettings":
        return cls(
            app_id=settings.microsoft_app_id,
            app_password=settings.microsoft_app_password,
            channel_auth_tenant=settings.channel_auth_tenant or None,
            oauth_endpoint=settings.oauth_scope or None,
        )


class BotFrameworkAdapter(BotAdapter):
    """Authenticates inbound channel requests and sends replies through the connector API.

    Args:
        settings: App credentials and optional overrides
        on_turn_error: Handler for exceptions raised during a turn
    """

    def __init__(self, settings: BotFrameworkAdapterSettings, on_turn_error: OnTurnErrorHandler | None = None):
        super().__init__(on_turn_error)
        self.settings = settings or BotFrameworkAdapterSettings()
        self._credential_provider = self.settings.credential_provider or SimpleCredentialProvider(
            self.settings.app_id, self.settings.app_password
        )
        self._credentials = MicrosoftAppCredentials(
            self.settings.app_id,
            self.settings.app_password,
            self.settings.channel_auth_tenant,
            self.settings.oauth_endpoint,
            http_client=self.settings.http_client,
        )
        self._connector_clients: dict[str, ConnectorClient] = {}

        if self.settings.open_id_metadata:
            JwtTokenValidation.set_key_resolver(
                AuthenticationConstants.TO_BOT_FROM_CHANNEL_OPENID_METADATA_URL,
                OpenIdMetadataKeyResolver(self.settings.open_id_metadata, self.settings.http_client),
            )

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def process_activity(
        self, activity: Activity, auth_header: str | None, logic: BotCallback
    ) -> InvokeResponse | None:
        """Authenticate an inbound activity and run a turn for it.

        Returns:
            The invoke response for invoke activities (501 when the bot set
            none), the buffered replies for expectReplies requests, otherwise None.

        Raises:
            ConnectorAuthenticationError: If the request is not authorized.
        """
        identity = await JwtTokenValidation.authenticate_request(activity, auth_header, self._credential_provider)
        return await self.process_activity_with_identity(activity, identity, logic)

    async def process_activity_with_identity(
        self, activity: Activity, identity: ClaimsIdentity, logic: BotCallback
    ) -> InvokeResponse | None:
        context = TurnContext(self, activity)
        context.turn_state[self.BOT_IDENTITY_KEY] = identity
        context.turn_state[self.OAUTH_SCOPE_KEY] = self._oauth_scope_for(identity)
        context.turn_state[CONNECTOR_CLIENT_KEY] = self.create_connector_client(activity.service_url, identity)

        await self.run_pipeline(context, logic)

        if activity.type == ActivityTypes.INVOKE:
            invoke_response = context.turn_state.get(self.INVOKE_RESPONSE_KEY)
            if invoke_response is None:
                invoke_response = next(
                    (a for a in context.buffered_reply_activities if a.type == ActivityTypes.INVOKE_RESPONSE),
                    None,
                )
            if invoke_response is None:
                return InvokeResponse(status=501)
            value = invoke_response.value
            return value if isinstance(value, InvokeResponse) else InvokeResponse.model_validate(value or {})

        if activity.delivery_mode == DeliveryModes.EXPECT_REPLIES:
            replies = [reply.to_dict() for reply in context.buffered_reply_activities]
            return InvokeResponse(status=200, body={"activities": replies})

        return None

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def send_activities(self, context: TurnContext, activities: list[Activity]) -> list[ResourceResponse]:
        responses: list[ResourceResponse] = []
        for activity in activities:
            response: ResourceResponse | None = None

            if activity.type == ActivityTypes.DELAY:
                delay_ms = activity.value if isinstance(activity.value, (int, float)) else 1000
                await asyncio.sleep(delay_ms / 1000)
            elif activity.type == ActivityTypes.INVOKE_RESPONSE:
                context.turn_state[self.INVOKE_RESPONSE_KEY] = activity
            elif activity.type == ActivityTypes.TRACE and activity.channel_id != "emulator":
                logger.debug("Dropping trace activity %s for channel %s", activity.name, activity.channel_id)
            else:
                client = self._connector_client_for(context, activity.service_url)
                conversation_id = activity.conversation.id if activity.conversation else None
                if activity.reply_to_id:
                    response = await client.conversations.reply_to_activity(
                        conversation_id, activity.reply_to_id, activity
                    )
                else:
                    response = await client.conversations.send_to_conversation(conversation_id, activity)

            responses.append(response or ResourceResponse(id=activity.id or ""))
        return responses

    async def update_activity(self, context: TurnContext, activity: Activity) -> ResourceResponse | None:
        client = self._connector_client_for(context, activity.service_url)
        return await client.conversations.update_activity(activity.conversation.id, activity.id, activity)

    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        client = self._connector_client_for(context, reference.service_url)
        await client.conversations.delete_activity(reference.conversation.id, reference.activity_id)

    async def continue_conversation(
        self,
        reference: ConversationReference,
        callback: BotCallback,
        bot_id: str | None = None,
        claims_identity: Any = None,
        audience: str | None = None,
    ) -> Any:
        """Run a proactive turn; the bot's own app id stands in for channel claims when none are given."""
        if reference is None:
            raise TypeError("continue_conversation(): reference cannot be None")

        if claims_identity is None:
            app_id = bot_id or self.settings.app_id
            claims_identity = ClaimsIdentity(
                {
                    AuthenticationConstants.AUDIENCE_CLAIM: app_id,
                    AuthenticationConstants.APP_ID_CLAIM: app_id,
                },
                is_authenticated=True,
            )

        context = TurnContext(self, reference.get_continuation_activity())
        context.turn_state[self.BOT_IDENTITY_KEY] = claims_identity
        context.turn_state[self.OAUTH_SCOPE_KEY] = audience or self._oauth_scope_for(claims_identity)
        context.turn_state[CONNECTOR_CLIENT_KEY] = self.create_connector_client(reference.service_url, claims_identity)
        return await self.run_pipeline(context, callback)

    async def create_conversation(
        self,
        reference: ConversationReference,
        logic: BotCallback,
        conversation_parameters: ConversationParameters | None = None,
    ) -> Any:
        """Start a new conversation on the channel and run `logic` in it."""
        if not reference.service_url:
            raise TypeError("create_conversation(): reference.service_url is required")

        parameters = conversation_parameters or ConversationParameters(
            bot=reference.bot,
            members=[reference.user] if reference.user else None,
            is_group=False,
        )
        client = self.create_connector_client(reference.service_url)
        resource = await client.conversations.create_conversation(parameters)

        event = Activity(
            type=ActivityTypes.EVENT,
            name="CreateConversation",
            id=resource.activity_id,
            channel_id=reference.channel_id,
            service_url=reference.service_url,
            conversation=ConversationAccount(id=resource.id, tenant_id=parameters.tenant_id),
            channel_data=parameters.channel_data,
            recipient=parameters.bot,
        )
        context = TurnContext(self, event)
        identity = ClaimsIdentity(
            {
                AuthenticationConstants.AUDIENCE_CLAIM: self.settings.app_id,
                AuthenticationConstants.APP_ID_CLAIM: self.settings.app_id,
            },
            is_authenticated=True,
        )
        context.turn_state[self.BOT_IDENTITY_KEY] = identity
        context.turn_state[CONNECTOR_CLIENT_KEY] = client
        return await self.run_pipeline(context, logic)

    async def get_conversation_members(self, context: TurnContext) -> list[ChannelAccount]:
        client = self._connector_client_for(context, context.activity.service_url)
        return await client.conversations.get_conversation_members(context.activity.conversation.id)

    async def get_activity_members(self, context: TurnContext, activity_id: str | None = None) -> list[ChannelAccount]:
        client = self._connector_client_for(context, context.activity.service_url)
        return await client.conversations.get_activity_members(
            context.activity.conversation.id, activity_id or context.activity.id
        )

    async def delete_conversation_member(self, context: TurnContext, member_id: str) -> None:
        client = self._connector_client_for(context, context.activity.service_url)
        await client.conversations.delete_conversation_member(context.activity.conversation.id, member_id)

    # -------------------------------------------------------------------------
    # Connector clients
    # -------------------------------------------------------------------------

    def create_connector_client(self, service_url: str | None, identity: ClaimsIdentity | None = None) -> ConnectorClient:
        """Connector client for `service_url`, cached per service URL and app id."""
        if not service_url:
            raise TypeError("create_connector_client(): service_url is required")

        credentials = self._credentials
        if identity is not None and SkillValidation.is_skill_claim(identity.claims):
            credentials = MicrosoftAppCredentials(
                self.settings.app_id,
                self.settings.app_password,
                self.settings.channel_auth_tenant,
                JwtTokenValidation.get_app_id_from_claims(identity.claims),
                http_client=self.settings.http_client,
            )

        cache_key = f"{service_url}:{credentials.microsoft_app_id}:{credentials.oauth_scope}"
        client = self._connector_clients.get(cache_key)
        if client is None:
            client = ConnectorClient(service_url, credentials, http_client=self.settings.http_client)
            self._connector_clients[cache_key] = client
        return client

    def _connector_client_for(self, context: TurnContext, service_url: str | None) -> ConnectorClient:
        client = context.turn_state.get(CONNECTOR_CLIENT_KEY)
        if client is not None:
            return client
        return self.create_connector_client(service_url or context.activity.service_url)

    def _oauth_scope_for(self, identity: ClaimsIdentity | None) -> str:
        if identity is not None and SkillValidation.is_skill_claim(identity.claims):
            return JwtTokenValidation.get_app_id_from_claims(identity.claims) or ""
        return self.settings.oauth_endpoint or AuthenticationConstants.TO_CHANNEL_FROM_BOT_OAUTH_SCOPE
