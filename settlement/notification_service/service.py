"""
Fire-and-forget notification delivery.

dispatch() is scheduled as a background task after the triggering settlement
operation has already committed and answered its caller. It never raises:
every outcome (sent, failed, skipped) is logged, counted and written to the
notification audit trail, and nothing is retried.
"""
import httpx
import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from shared.config.database import get_session_factory
from shared.config.settings import Settings, get_settings
from shared.errors import CollaboratorFailure
from shared.observability import settlement_notifications_total
from .models import NotificationLog
from .repository import NotificationLogRepository
from .schemas import NotificationEvent
from .templates import render

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, settings: Settings, session_factory: async_sessionmaker, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.session_factory = session_factory
        self.transport = transport

    async def dispatch(self, event: NotificationEvent) -> str:
        status, error = "sent", None
        if not event.recipient_email:
            status, error = "skipped", "no recipient email"
        elif not self.settings.email_api_key:
            status, error = "skipped", "email API key not configured"
        else:
            try:
                await self._send(event)
            except Exception as e:
                status, error = "failed", str(e)

        log = logger.warning if status == "failed" else logger.info
        log(
            "notification_dispatched",
            event_type=event.event_type,
            reference_id=event.reference_id,
            status=status,
            error=error,
        )
        settlement_notifications_total.labels(event_type=event.event_type, status=status).inc()
        await self._audit(event, status, error)
        return status

    async def _send(self, event: NotificationEvent):
        subject, html = render(event)
        payload = {
            "from": self.settings.email_from,
            "to": [event.recipient_email],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.settings.email_api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.settings.email_timeout_seconds, transport=self.transport) as client:
                resp = await client.post(self.settings.email_api_url, json=payload, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise CollaboratorFailure(f"email API call failed: {e}") from e

    async def _audit(self, event: NotificationEvent, status: str, error: str | None):
        entry = NotificationLog(
            event_type=event.event_type,
            recipient_email=event.recipient_email,
            reference_id=event.reference_id,
            status=status,
            error=error,
        )
        try:
            async with self.session_factory() as db:
                await NotificationLogRepository.create(db, entry)
        except Exception as e:
            logger.error("notification_audit_failed", reference_id=event.reference_id, error=str(e))


def get_dispatcher(
    settings: Settings = Depends(get_settings),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> NotificationDispatcher:
    return NotificationDispatcher(settings, session_factory)
