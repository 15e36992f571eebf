"""Bot Framework activity schema.

Pydantic models for the JSON envelope exchanged between a channel and a bot.
Field names are snake_case in Python and camelCase on the wire; unknown
channel fields are preserved.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ActivityTypes(str, Enum):
    """Known activity types."""

    MESSAGE = "message"
    CONTACT_RELATION_UPDATE = "contactRelationUpdate"
    CONVERSATION_UPDATE = "conversationUpdate"
    TYPING = "typing"
    END_OF_CONVERSATION = "endOfConversation"
    EVENT = "event"
    INVOKE = "invoke"
    INVOKE_RESPONSE = "invokeResponse"
    DELETE_USER_DATA = "deleteUserData"
    MESSAGE_UPDATE = "messageUpdate"
    MESSAGE_DELETE = "messageDelete"
    INSTALLATION_UPDATE = "installationUpdate"
    MESSAGE_REACTION = "messageReaction"
    SUGGESTION = "suggestion"
    TRACE = "trace"
    HANDOFF = "handoff"
    COMMAND = "command"
    COMMAND_RESULT = "commandResult"
    DELAY = "delay"


class InputHints(str, Enum):
    """Hints about the bot's readiness to receive input."""

    ACCEPTING_INPUT = "acceptingInput"
    IGNORING_INPUT = "ignoringInput"
    EXPECTING_INPUT = "expectingInput"


class TextFormatTypes(str, Enum):
    MARKDOWN = "markdown"
    PLAIN = "plain"
    XML = "xml"


class ActionTypes(str, Enum):
    """Card action types."""

    OPEN_URL = "openUrl"
    IM_BACK = "imBack"
    POST_BACK = "postBack"
    PLAY_AUDIO = "playAudio"
    PLAY_VIDEO = "playVideo"
    SHOW_IMAGE = "showImage"
    DOWNLOAD_FILE = "downloadFile"
    SIGNIN = "signin"
    CALL = "call"
    MESSAGE_BACK = "messageBack"


class AttachmentLayoutTypes(str, Enum):
    LIST = "list"
    CAROUSEL = "carousel"


class EndOfConversationCodes(str, Enum):
    UNKNOWN = "unknown"
    COMPLETED_SUCCESSFULLY = "completedSuccessfully"
    USER_CANCELLED = "userCancelled"
    BOT_TIMED_OUT = "botTimedOut"
    BOT_ISSUED_INVALID_MESSAGE = "botIssuedInvalidMessage"
    CHANNEL_FAILED = "channelFailed"


class DeliveryModes(str, Enum):
    NORMAL = "normal"
    NOTIFICATION = "notification"
    EXPECT_REPLIES = "expectReplies"
    EPHEMERAL = "ephemeral"


class RoleTypes(str, Enum):
    USER = "user"
    BOT = "bot"
    SKILL = "skill"


class SchemaModel(BaseModel):
    """Base model: camelCase aliases, populate by name, keep unknown fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        use_enum_values=True,
        validate_assignment=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to wire format."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# =============================================================================
# Accounts and references
# =============================================================================


class ChannelAccount(SchemaModel):
    """A user or bot on a channel."""

    id: str | None = None
    name: str | None = None
    aad_object_id: str | None = None
    role: str | None = None


class ConversationAccount(SchemaModel):
    """A conversation on a channel."""

    id: str | None = None
    name: str | None = None
    is_group: bool | None = None
    conversation_type: str | None = None
    tenant_id: str | None = None
    role: str | None = None


class MessageReaction(SchemaModel):
    type: str | None = None


class ConversationReference(SchemaModel):
    """Enough information to address a conversation proactively."""

    activity_id: str | None = None
    user: ChannelAccount | None = None
    bot: ChannelAccount | None = None
    conversation: ConversationAccount | None = None
    channel_id: str | None = None
    locale: str | None = None
    service_url: str | None = None

    def get_continuation_activity(self) -> "Activity":
        """Create the event activity used to resume a conversation proactively."""
        return Activity(
            type=ActivityTypes.EVENT,
            name="ContinueConversation",
            id=_new_id(),
            channel_id=self.channel_id,
            locale=self.locale,
            service_url=self.service_url,
            conversation=self.conversation,
            recipient=self.bot,
            from_property=self.user,
            relates_to=self,
        )


# =============================================================================
# Attachments and cards
# =============================================================================


class CardAction(SchemaModel):
    """A clickable action on a card or suggested action list."""

    type: str | None = None
    title: str | None = None
    image: str | None = None
    text: str | None = None
    display_text: str | None = None
    value: Any = None
    channel_data: Any = None


class CardImage(SchemaModel):
    url: str | None = None
    alt: str | None = None
    tap: CardAction | None = None


class Attachment(SchemaModel):
    content_type: str | None = None
    content_url: str | None = None
    content: Any = None
    name: str | None = None
    thumbnail_url: str | None = None


class HeroCard(SchemaModel):
    """A card with a single large image, text and buttons."""

    CONTENT_TYPE: ClassVar[str] = "application/vnd.microsoft.card.hero"

    title: str | None = None
    subtitle: str | None = None
    text: str | None = None
    images: list[CardImage] | None = None
    buttons: list[CardAction] | None = None
    tap: CardAction | None = None

    def to_attachment(self) -> Attachment:
        """Wrap the card in an attachment."""
        return Attachment(content_type=self.CONTENT_TYPE, content=self)


class SuggestedActions(SchemaModel):
    to: list[str] | None = None
    actions: list[CardAction] = Field(default_factory=list)


class Entity(SchemaModel):
    type: str | None = None


class Mention(Entity):
    mentioned: ChannelAccount | None = None
    text: str | None = None


# =============================================================================
# Responses
# =============================================================================


class ResourceResponse(SchemaModel):
    id: str | None = None


class InvokeResponse(SchemaModel):
    """Response to an invoke activity, relayed as the HTTP response."""

    status: int = 200
    body: Any = None

    def is_successful_status_code(self) -> bool:
        return 200 <= self.status <= 299


class ConversationParameters(SchemaModel):
    is_group: bool | None = None
    bot: ChannelAccount | None = None
    members: list[ChannelAccount] | None = None
    topic_name: str | None = None
    activity: "Activity | None" = None
    channel_data: Any = None
    tenant_id: str | None = None


class ConversationResourceResponse(SchemaModel):
    activity_id: str | None = None
    service_url: str | None = None
    id: str | None = None


class ConversationMembers(SchemaModel):
    id: str | None = None
    members: list[ChannelAccount] = Field(default_factory=list)


class ConversationsResult(SchemaModel):
    continuation_token: str | None = None
    conversations: list[ConversationMembers] = Field(default_factory=list)


class PagedMembersResult(SchemaModel):
    continuation_token: str | None = None
    members: list[ChannelAccount] = Field(default_factory=list)


class Transcript(SchemaModel):
    activities: list["Activity"] = Field(default_factory=list)


# =============================================================================
# Activity
# =============================================================================


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Activity(SchemaModel):
    """The basic communication type of the Bot Framework protocol."""

    type: str | None = None
    id: str | None = None
    timestamp: datetime | None = None
    local_timestamp: datetime | None = None
    local_timezone: str | None = None
    service_url: str | None = None
    channel_id: str | None = None
    from_property: ChannelAccount | None = Field(default=None, alias="from")
    conversation: ConversationAccount | None = None
    recipient: ChannelAccount | None = None
    text_format: str | None = None
    attachment_layout: str | None = None
    members_added: list[ChannelAccount] | None = None
    members_removed: list[ChannelAccount] | None = None
    reactions_added: list[MessageReaction] | None = None
    reactions_removed: list[MessageReaction] | None = None
    topic_name: str | None = None
    locale: str | None = None
    text: str | None = None
    speak: str | None = None
    input_hint: str | None = None
    summary: str | None = None
    suggested_actions: SuggestedActions | None = None
    attachments: list[Attachment] | None = None
    entities: list[Entity] | None = None
    channel_data: Any = None
    action: str | None = None
    reply_to_id: str | None = None
    label: str | None = None
    value_type: str | None = None
    value: Any = None
    name: str | None = None
    relates_to: ConversationReference | None = None
    code: str | None = None
    expiration: datetime | None = None
    importance: str | None = None
    delivery_mode: str | None = None
    listen_for: list[str] | None = None
    caller_id: str | None = None

    # -- factories ------------------------------------------------------------

    @classmethod
    def create_message_activity(cls) -> "Activity":
        return cls(type=ActivityTypes.MESSAGE, attachments=[], entities=[])

    @classmethod
    def create_event_activity(cls) -> "Activity":
        return cls(type=ActivityTypes.EVENT)

    @classmethod
    def create_conversation_update_activity(cls) -> "Activity":
        return cls(type=ActivityTypes.CONVERSATION_UPDATE, members_added=[], members_removed=[])

    @classmethod
    def create_end_of_conversation_activity(cls) -> "Activity":
        return cls(type=ActivityTypes.END_OF_CONVERSATION)

    @classmethod
    def create_typing_activity(cls) -> "Activity":
        return cls(type=ActivityTypes.TYPING)

    @classmethod
    def create_trace_activity(
        cls,
        name: str,
        value: Any = None,
        value_type: str | None = None,
        label: str | None = None,
    ) -> "Activity":
        """Create a standalone trace activity."""
        return cls(
            type=ActivityTypes.TRACE,
            name=name,
            label=label,
            value_type=value_type or (type(value).__name__ if value is not None else None),
            value=value,
        )

    # -- helpers --------------------------------------------------------------

    def is_type(self, activity_type: str) -> bool:
        """Case-insensitive type check that also matches `type/subtype` forms."""
        if not self.type:
            return False
        current = self.type.lower()
        wanted = str(activity_type.value if isinstance(activity_type, Enum) else activity_type)
        wanted = wanted.lower()
        return current == wanted or current.startswith(wanted + "/")

    def has_content(self) -> bool:
        if self.text and self.text.strip():
            return True
        if self.summary and self.summary.strip():
            return True
        if self.attachments:
            return True
        return self.channel_data is not None

    def get_mentions(self) -> list[Mention]:
        """Return the mention entities of this activity."""
        result = []
        for entity in self.entities or []:
            if (entity.type or "").lower() == "mention":
                result.append(Mention.model_validate(entity.model_dump(by_alias=True)))
        return result

    def create_reply(self, text: str | None = None, locale: str | None = None) -> "Activity":
        """Create a message addressed back to the sender of this activity."""
        return Activity(
            type=ActivityTypes.MESSAGE,
            timestamp=_utc_now(),
            from_property=ChannelAccount(
                id=self.recipient.id if self.recipient else None,
                name=self.recipient.name if self.recipient else None,
            ),
            recipient=ChannelAccount(
                id=self.from_property.id if self.from_property else None,
                name=self.from_property.name if self.from_property else None,
            ),
            reply_to_id=self.id,
            service_url=self.service_url,
            channel_id=self.channel_id,
            conversation=ConversationAccount(
                is_group=self.conversation.is_group if self.conversation else None,
                id=self.conversation.id if self.conversation else None,
                name=self.conversation.name if self.conversation else None,
            ),
            text=text or "",
            locale=locale or self.locale,
            attachments=[],
            entities=[],
        )

    def create_trace(
        self,
        name: str,
        value: Any = None,
        value_type: str | None = None,
        label: str | None = None,
    ) -> "Activity":
        """Create a trace activity addressed like a reply to this activity."""
        reply = self.create_reply()
        reply.type = ActivityTypes.TRACE
        reply.name = name
        reply.label = label
        reply.value_type = value_type or (type(value).__name__ if value is not None else None)
        reply.value = value
        reply.text = None
        reply.attachments = None
        reply.entities = None
        return reply

    def get_conversation_reference(self) -> ConversationReference:
        """Build a conversation reference from this (incoming) activity."""
        return ConversationReference(
            activity_id=self.id if self.type != ActivityTypes.CONVERSATION_UPDATE else None,
            user=self.from_property,
            bot=self.recipient,
            conversation=self.conversation,
            channel_id=self.channel_id,
            locale=self.locale,
            service_url=self.service_url,
        )

    def apply_conversation_reference(
        self, reference: ConversationReference, is_incoming: bool = False
    ) -> "Activity":
        """Address this activity using a conversation reference.

        Args:
            reference: The reference to apply.
            is_incoming: True to treat the activity as coming from the user.

        Returns:
            The same activity, updated in place.
        """
        self.channel_id = reference.channel_id
        self.service_url = reference.service_url
        self.conversation = reference.conversation
        if reference.locale is not None:
            self.locale = reference.locale

        if is_incoming:
            self.from_property = reference.user
            self.recipient = reference.bot
            if reference.activity_id is not None:
                self.id = reference.activity_id
        else:
            self.from_property = reference.bot
            self.recipient = reference.user
            if reference.activity_id is not None:
                self.reply_to_id = reference.activity_id

        return self


ConversationParameters.model_rebuild()
Transcript.model_rebuild()
