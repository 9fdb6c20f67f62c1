"""Context of the WhatsApp event currently being reconciled, for log records."""

from contextvars import ContextVar
from typing import Optional

wa_event_var: ContextVar[Optional[str]] = ContextVar("wa_event", default=None)
wa_message_id_var: ContextVar[Optional[str]] = ContextVar("wa_message_id", default=None)


def set_event_context(event: str | None, message_id: str | None) -> None:
    """Set the current event context.

    Args:
        event: Transport event name (message, message_create)
        message_id: Transport message id
    """
    wa_event_var.set(event)
    wa_message_id_var.set(message_id)


def get_event_context() -> tuple[str | None, str | None]:
    """Get the current (event, message_id) pair."""
    return wa_event_var.get(), wa_message_id_var.get()


def clear_event_context() -> None:
    """Clear the current event context."""
    wa_event_var.set(None)
    wa_message_id_var.set(None)
