"""Outgoing user notifications. Delivery itself lives outside this service."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from coinbox.core.exceptions import ValidationError

from .context import WorkflowContext

logger = logging.getLogger(__name__)

CONFIRM_EMAIL_SUBJECT = "Verify your Coinbox Account"
CONFIRM_EMAIL_TEMPLATE = "email/confirm_email.html"


class Notifier(Protocol):
    async def send(
        self,
        *,
        recipient: str,
        recipient_name: Optional[str],
        subject: str,
        template: str,
        context: dict[str, Any],
    ) -> None:
        ...


class LoggingNotifier:
    """Notifier that only records what would have been sent."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        *,
        recipient: str,
        recipient_name: Optional[str],
        subject: str,
        template: str,
        context: dict[str, Any],
    ) -> None:
        self.sent.append(
            {
                "recipient": recipient,
                "recipient_name": recipient_name,
                "subject": subject,
                "template": template,
                "context": context,
            }
        )
        logger.info("Notification %r for %s rendered from %s", subject, recipient, template)


async def send_confirmation_email(context: WorkflowContext, payload: dict[str, Any]) -> dict[str, Any]:
    email = payload.get("email")
    token = payload.get("token")
    if not email or not token:
        raise ValidationError("email and token are required")
    if context.notifier is None:
        raise ValidationError("No notifier configured")
    first_name = payload.get("first_name") or payload.get("display_name")
    await context.notifier.send(
        recipient=email,
        recipient_name=first_name,
        subject=CONFIRM_EMAIL_SUBJECT,
        template=CONFIRM_EMAIL_TEMPLATE,
        context={"firstName": first_name, "token": token},
    )
    return {"recipient": email}
