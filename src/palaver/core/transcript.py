"""Transcript logging: records every activity that flows through a turn."""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from palaver.infrastructure.logging_config import get_logger
from palaver.models import Activity, ActivityTypes, ConversationReference, RoleTypes

from .middleware import Middleware, NextDelegate
from .turn_context import TurnContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_SIZE = 20


@dataclass
class PagedResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    continuation_token: str | None = None


@dataclass
class TranscriptInfo:
    channel_id: str
    id: str
    created: datetime | None = None


class TranscriptLogger(ABC):
    """Receives every activity sent or received during a turn."""

    @abstractmethod
    async def log_activity(self, activity: Activity) -> None:
        """Log an activity to the transcript.

        Args:
            activity: The activity to log.
        """
        pass


class TranscriptStore(TranscriptLogger):
    """A transcript logger that can also be queried."""

    @abstractmethod
    async def get_transcript_activities(
        self,
        channel_id: str,
        conversation_id: str,
        continuation_token: str | None = None,
        start_date: datetime | None = None,
    ) -> PagedResult[Activity]:
        """Get a page of activities for a conversation.

        Args:
            channel_id: Channel of the conversation.
            conversation_id: Id of the conversation.
            continuation_token: Token returned by the previous page.
            start_date: Only return activities at or after this time.
        """
        pass

    @abstractmethod
    async def list_transcripts(
        self, channel_id: str, continuation_token: str | None = None
    ) -> PagedResult[TranscriptInfo]:
        """List the conversations recorded for a channel."""
        pass

    @abstractmethod
    async def delete_transcript(self, channel_id: str, conversation_id: str) -> None:
        pass


def _timestamp_key(activity: Activity) -> datetime:
    return activity.timestamp or datetime.min.replace(tzinfo=timezone.utc)


class MemoryTranscriptStore(TranscriptStore):
    """In-memory transcript store for tests and development."""

    def __init__(self):
        self._channels: dict[str, dict[str, list[Activity]]] = {}

    async def log_activity(self, activity: Activity) -> None:
        if activity is None:
            raise TypeError("activity cannot be None for log_activity()")
        conversation_id = activity.conversation.id if activity.conversation else None
        channel = self._channels.setdefault(activity.channel_id or "", {})
        transcript = channel.setdefault(conversation_id or "", [])
        transcript.append(activity)
        transcript.sort(key=_timestamp_key)

    async def get_transcript_activities(
        self,
        channel_id: str,
        conversation_id: str,
        continuation_token: str | None = None,
        start_date: datetime | None = None,
    ) -> PagedResult[Activity]:
        if not channel_id:
            raise ValueError("Missing channel_id")
        if not conversation_id:
            raise ValueError("Missing conversation_id")

        transcript = self._channels.get(channel_id, {}).get(conversation_id, [])
        if start_date is not None:
            transcript = [a for a in transcript if _timestamp_key(a) >= start_date]
        return _page(transcript, continuation_token, lambda activity: activity.id)

    async def list_transcripts(
        self, channel_id: str, continuation_token: str | None = None
    ) -> PagedResult[TranscriptInfo]:
        if not channel_id:
            raise ValueError("Missing channel_id")

        infos = []
        for conversation_id, activities in self._channels.get(channel_id, {}).items():
            created = activities[0].timestamp if activities else None
            infos.append(TranscriptInfo(channel_id=channel_id, id=conversation_id, created=created))
        infos.sort(key=lambda info: info.created or datetime.min.replace(tzinfo=timezone.utc))
        return _page(infos, continuation_token, lambda info: info.id)

    async def delete_transcript(self, channel_id: str, conversation_id: str) -> None:
        if not channel_id:
            raise ValueError("Missing channel_id")
        if not conversation_id:
            raise ValueError("Missing conversation_id")
        self._channels.get(channel_id, {}).pop(conversation_id, None)


def _page(items: list, continuation_token: str | None, get_id) -> PagedResult:
    start = 0
    if continuation_token:
        for index, item in enumerate(items):
            if get_id(item) == continuation_token:
                start = index + 1
                break
    page = items[start : start + PAGE_SIZE]
    result = PagedResult(items=page)
    if len(page) == PAGE_SIZE:
        result.continuation_token = get_id(page[-1])
    return result


class ConsoleTranscriptLogger(TranscriptLogger):
    """Writes each activity to the structured log."""

    def __init__(self):
        self._log = get_logger("palaver.transcript")

    async def log_activity(self, activity: Activity) -> None:
        if activity is None:
            raise TypeError("Activity is required.")
        self._log.info("transcript_activity", activity=activity.to_dict())


class TranscriptLoggerMiddleware(Middleware):
    """Logs incoming and outgoing activities to a TranscriptLogger."""

    def __init__(self, transcript_logger: TranscriptLogger):
        if transcript_logger is None:
            raise TypeError("TranscriptLoggerMiddleware requires a TranscriptLogger.")
        self.logger = transcript_logger

    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        transcript: list[Activity] = []

        if context.activity is not None:
            incoming = context.activity
            if incoming.from_property is not None and not incoming.from_property.role:
                incoming.from_property.role = RoleTypes.USER
            self._queue_activity(transcript, copy.deepcopy(incoming))

        async def send_handler(ctx: TurnContext, activities: list[Activity], next_send) -> Any:
            responses = await next_send()
            for activity in activities:
                self._queue_activity(transcript, copy.deepcopy(activity))
            return responses

        async def update_handler(ctx: TurnContext, activity: Activity, next_update) -> Any:
            response = await next_update()
            updated = copy.deepcopy(activity)
            updated.type = ActivityTypes.MESSAGE_UPDATE
            self._queue_activity(transcript, updated)
            return response

        async def delete_handler(ctx: TurnContext, reference: ConversationReference, next_delete) -> Any:
            await next_delete()
            deleted = Activity(type=ActivityTypes.MESSAGE_DELETE, id=reference.activity_id)
            deleted.apply_conversation_reference(reference, is_incoming=False)
            self._queue_activity(transcript, deleted)

        context.on_send_activities(send_handler)
        context.on_update_activity(update_handler)
        context.on_delete_activity(delete_handler)

        if logic:
            await logic()

        await self._flush(transcript)

    async def _flush(self, transcript: list[Activity]) -> None:
        try:
            await asyncio.gather(*(self.logger.log_activity(a) for a in transcript))
        except Exception:
            logger.exception("Transcript log_activity failed")

    @staticmethod
    def _queue_activity(transcript: list[Activity], activity: Activity) -> None:
        if activity.timestamp is None:
            activity.timestamp = datetime.now(timezone.utc)
        transcript.append(activity)
