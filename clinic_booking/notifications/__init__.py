from clinic_booking.notifications.dispatcher import (
    NotificationDispatcher,
    encode_message,
    render_message,
)
from clinic_booking.notifications.transports import (
    LogTransport,
    NotificationError,
    WebhookTransport,
    WhatsAppLinkTransport,
    create_transport,
)

__all__ = [
    "NotificationDispatcher", "render_message", "encode_message",
    "LogTransport", "WhatsAppLinkTransport", "WebhookTransport",
    "NotificationError", "create_transport",
]
