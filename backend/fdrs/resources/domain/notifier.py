"""Owner notification contract and message templates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

APPROVAL_SUBJECT = "Resource Approval Status"


class Notifier(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> bool:
        """Deliver a message; ``False`` means delivery failed and was logged."""
        ...


@dataclass(frozen=True, slots=True)
class Message:
    template: str
    subject: str
    body: str


def approved_message(title: str) -> Message:
    return Message(
        template="approved",
        subject=APPROVAL_SUBJECT,
        body=f"Your resource has been approved.\n\nTitle: {title}\n",
    )


def declined_message(title: str) -> Message:
    return Message(
        template="declined",
        subject=APPROVAL_SUBJECT,
        body=f"Your resource has been declined.\n\nTitle: {title}\n",
    )
