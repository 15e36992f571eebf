"""Schema models and configuration."""

from .activity import (
    ActionTypes,
    Activity,
    ActivityTypes,
    Attachment,
    AttachmentLayoutTypes,
    CardAction,
    CardImage,
    ChannelAccount,
    ConversationAccount,
    ConversationMembers,
    ConversationParameters,
    ConversationReference,
    ConversationResourceResponse,
    ConversationsResult,
    DeliveryModes,
    EndOfConversationCodes,
    Entity,
    HeroCard,
    InputHints,
    InvokeResponse,
    Mention,
    MessageReaction,
    PagedMembersResult,
    ResourceResponse,
    RoleTypes,
    SuggestedActions,
    TextFormatTypes,
    Transcript,
)
from .config import Settings, get_settings

__all__ = [
    # Activity schema
    "Activity",
    "ActivityTypes",
    "ActionTypes",
    "AttachmentLayoutTypes",
    "DeliveryModes",
    "EndOfConversationCodes",
    "InputHints",
    "RoleTypes",
    "TextFormatTypes",
    "ChannelAccount",
    "ConversationAccount",
    "ConversationReference",
    "MessageReaction",
    "Entity",
    "Mention",
    # Cards
    "Attachment",
    "CardAction",
    "CardImage",
    "HeroCard",
    "SuggestedActions",
    # Responses
    "ResourceResponse",
    "InvokeResponse",
    "ConversationParameters",
    "ConversationResourceResponse",
    "ConversationMembers",
    "ConversationsResult",
    "PagedMembersResult",
    "Transcript",
    # Config
    "Settings",
    "get_settings",
]
