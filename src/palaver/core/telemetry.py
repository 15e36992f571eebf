"""Telemetry clients and the telemetry logging middleware."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from palaver.infrastructure.logging_config import get_logger
from palaver.infrastructure.metrics import record_telemetry_event
from palaver.models import Activity

from .middleware import Middleware, NextDelegate
from .turn_context import TurnContext


class Severity(int, Enum):
    VERBOSE = 0
    INFORMATION = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class BotTelemetryClient(ABC):
    """Destination for bot telemetry events."""

    @abstractmethod
    def track_event(
        self,
        name: str,
        properties: dict[str, str] | None = None,
        metrics: dict[str, float] | None = None,
    ) -> None:
        """Record a named event.

        Args:
            name: Event name
            properties: String properties attached to the event
            metrics: Numeric measurements attached to the event
        """
        pass

    @abstractmethod
    def track_exception(
        self,
        exception: BaseException,
        properties: dict[str, str] | None = None,
        metrics: dict[str, float] | None = None,
    ) -> None:
        pass

    @abstractmethod
    def track_dependency(
        self,
        name: str,
        data: str,
        type_name: str | None = None,
        target: str | None = None,
        duration: float | None = None,
        success: bool | None = None,
        result_code: str | None = None,
        properties: dict[str, str] | None = None,
    ) -> None:
        pass

    @abstractmethod
    def track_trace(
        self, message: str, severity: Severity = Severity.INFORMATION, properties: dict[str, str] | None = None
    ) -> None:
        pass

    @abstractmethod
    def flush(self) -> None:
        pass


class NullTelemetryClient(BotTelemetryClient):
    """Telemetry client that discards everything."""

    def track_event(self, name, properties=None, metrics=None) -> None:
        pass

    def track_exception(self, exception, properties=None, metrics=None) -> None:
        pass

    def track_dependency(
        self, name, data, type_name=None, target=None, duration=None, success=None,
        result_code=None, properties=None,
    ) -> None:
        pass

    def track_trace(self, message, severity=Severity.INFORMATION, properties=None) -> None:
        pass

    def flush(self) -> None:
        pass


class StructlogTelemetryClient(BotTelemetryClient):
    """Emits telemetry as structured log lines and Prometheus counters."""

    def __init__(self, logger_name: str = "palaver.telemetry"):
        self._log = get_logger(logger_name)

    def track_event(self, name, properties=None, metrics=None) -> None:
        record_telemetry_event(name)
        self._log.info(name, properties=properties or {}, metrics=metrics or {})

    def track_exception(self, exception, properties=None, metrics=None) -> None:
        record_telemetry_event("exception")
        self._log.error(
            "exception",
            error=str(exception),
            error_type=type(exception).__name__,
            properties=properties or {},
            metrics=metrics or {},
        )

    def track_dependency(
        self, name, data, type_name=None, target=None, duration=None, success=None,
        result_code=None, properties=None,
    ) -> None:
        record_telemetry_event("dependency")
        self._log.info(
            "dependency",
            name=name,
            data=data,
            type_name=type_name,
            target=target,
            duration=duration,
            success=success,
            result_code=result_code,
            properties=properties or {},
        )

    def track_trace(self, message, severity=Severity.INFORMATION, properties=None) -> None:
        level = {
            Severity.VERBOSE: "debug",
            Severity.INFORMATION: "info",
            Severity.WARNING: "warning",
            Severity.ERROR: "error",
            Severity.CRITICAL: "critical",
        }[Severity(severity)]
        getattr(self._log, level)(message, properties=properties or {})

    def flush(self) -> None:
        pass


class TelemetryConstants:
    """Property names used in telemetry events."""

    ACTIVITY_ID_PROPERTY = "activityId"
    ATTACHMENTS_PROPERTY = "attachments"
    CHANNEL_ID_PROPERTY = "channelId"
    CONVERSATION_ID_PROPERTY = "conversationId"
    CONVERSATION_NAME_PROPERTY = "conversationName"
    DIALOG_ID_PROPERTY = "dialogId"
    FROM_ID_PROPERTY = "fromId"
    FROM_NAME_PROPERTY = "fromName"
    LOCALE_PROPERTY = "locale"
    RECIPIENT_ID_PROPERTY = "recipientId"
    RECIPIENT_NAME_PROPERTY = "recipientName"
    REPLY_ACTIVITY_ID_PROPERTY = "replyActivityId"
    TEXT_PROPERTY = "text"
    SPEAK_PROPERTY = "speak"
    USER_ID_PROPERTY = "userId"


class TelemetryLoggerConstants:
    """Event names emitted by the telemetry middleware."""

    BOT_MSG_RECEIVE_EVENT = "BotMessageReceived"
    BOT_MSG_SEND_EVENT = "BotMessageSend"
    BOT_MSG_UPDATE_EVENT = "BotMessageUpdate"
    BOT_MSG_DELETE_EVENT = "BotMessageDelete"


class TelemetryLoggerMiddleware(Middleware):
    """Tracks received, sent, updated and deleted messages as telemetry events.

    Text, user names and other personal information are included only when
    `log_personal_information` is set.
    """

    def __init__(self, telemetry_client: BotTelemetryClient | None, log_personal_information: bool = False):
        self.telemetry_client = telemetry_client or NullTelemetryClient()
        self.log_personal_information = log_personal_information

    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        if context is None:
            raise TypeError("context cannot be None")

        if context.activity is not None:
            await self.on_receive_activity(context.activity)

        async def send_handler(ctx, activities, next_send):
            responses = await next_send()
            for activity in activities:
                await self.on_send_activity(activity)
            return responses

        async def update_handler(ctx, activity, next_update):
            response = await next_update()
            await self.on_update_activity(activity)
            return response

        async def delete_handler(ctx, reference, next_delete):
            await next_delete()
            deleted = Activity(type="messageDelete", id=reference.activity_id)
            deleted.apply_conversation_reference(reference, is_incoming=False)
            await self.on_delete_activity(deleted)

        context.on_send_activities(send_handler)
        context.on_update_activity(update_handler)
        context.on_delete_activity(delete_handler)

        if logic:
            await logic()

    async def on_receive_activity(self, activity: Activity) -> None:
        self.telemetry_client.track_event(
            TelemetryLoggerConstants.BOT_MSG_RECEIVE_EVENT,
            await self.fill_receive_event_properties(activity),
        )

    async def on_send_activity(self, activity: Activity) -> None:
        self.telemetry_client.track_event(
            TelemetryLoggerConstants.BOT_MSG_SEND_EVENT,
            await self.fill_send_event_properties(activity),
        )

    async def on_update_activity(self, activity: Activity) -> None:
        self.telemetry_client.track_event(
            TelemetryLoggerConstants.BOT_MSG_UPDATE_EVENT,
            await self.fill_update_event_properties(activity),
        )

    async def on_delete_activity(self, activity: Activity) -> None:
        self.telemetry_client.track_event(
            TelemetryLoggerConstants.BOT_MSG_DELETE_EVENT,
            await self.fill_delete_event_properties(activity),
        )

    async def fill_receive_event_properties(
        self, activity: Activity, additional_properties: dict[str, str] | None = None
    ) -> dict[str, Any]:
        sender = activity.from_property
        properties = {
            TelemetryConstants.FROM_ID_PROPERTY: sender.id if sender else None,
            TelemetryConstants.CONVERSATION_NAME_PROPERTY: activity.conversation.name if activity.conversation else None,
            TelemetryConstants.LOCALE_PROPERTY: activity.locale,
            TelemetryConstants.RECIPIENT_ID_PROPERTY: activity.recipient.id if activity.recipient else None,
            TelemetryConstants.RECIPIENT_NAME_PROPERTY: activity.recipient.name if activity.recipient else None,
        }
        if self.log_personal_information:
            if sender is not None and sender.name:
                properties[TelemetryConstants.FROM_NAME_PROPERTY] = sender.name
            if activity.text:
                properties[TelemetryConstants.TEXT_PROPERTY] = activity.text
            if activity.speak:
                properties[TelemetryConstants.SPEAK_PROPERTY] = activity.speak
        return _with_additional(properties, additional_properties)

    async def fill_send_event_properties(
        self, activity: Activity, additional_properties: dict[str, str] | None = None
    ) -> dict[str, Any]:
        properties = {
            TelemetryConstants.REPLY_ACTIVITY_ID_PROPERTY: activity.reply_to_id,
            TelemetryConstants.RECIPIENT_ID_PROPERTY: activity.recipient.id if activity.recipient else None,
            TelemetryConstants.CONVERSATION_NAME_PROPERTY: activity.conversation.name if activity.conversation else None,
            TelemetryConstants.LOCALE_PROPERTY: activity.locale,
        }
        if self.log_personal_information:
            if activity.recipient is not None and activity.recipient.name:
                properties[TelemetryConstants.RECIPIENT_NAME_PROPERTY] = activity.recipient.name
            if activity.text:
                properties[TelemetryConstants.TEXT_PROPERTY] = activity.text
            if activity.speak:
                properties[TelemetryConstants.SPEAK_PROPERTY] = activity.speak
            if activity.attachments:
                properties[TelemetryConstants.ATTACHMENTS_PROPERTY] = str(
                    [a.to_dict() for a in activity.attachments]
                )
        return _with_additional(properties, additional_properties)

    async def fill_update_event_properties(
        self, activity: Activity, additional_properties: dict[str, str] | None = None
    ) -> dict[str, Any]:
        properties = {
            TelemetryConstants.RECIPIENT_ID_PROPERTY: activity.recipient.id if activity.recipient else None,
            TelemetryConstants.CONVERSATION_ID_PROPERTY: activity.conversation.id if activity.conversation else None,
            TelemetryConstants.CONVERSATION_NAME_PROPERTY: activity.conversation.name if activity.conversation else None,
            TelemetryConstants.LOCALE_PROPERTY: activity.locale,
        }
        if self.log_personal_information and activity.text:
            properties[TelemetryConstants.TEXT_PROPERTY] = activity.text
        return _with_additional(properties, additional_properties)

    async def fill_delete_event_properties(
        self, activity: Activity, additional_properties: dict[str, str] | None = None
    ) -> dict[str, Any]:
        properties = {
            TelemetryConstants.RECIPIENT_ID_PROPERTY: activity.recipient.id if activity.recipient else None,
            TelemetryConstants.CONVERSATION_ID_PROPERTY: activity.conversation.id if activity.conversation else None,
            TelemetryConstants.CONVERSATION_NAME_PROPERTY: activity.conversation.name if activity.conversation else None,
        }
        return _with_additional(properties, additional_properties)


def _with_additional(properties: dict[str, Any], additional: dict[str, str] | None) -> dict[str, Any]:
    if additional:
        properties.update(additional)
    return properties
