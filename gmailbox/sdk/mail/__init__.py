"""Gmail transports for gmailbox.

Provides the async Gmail API client, outbound SMTP sender, and helpers
for flattening message resources.
"""

from .service import RemoteMailClient, build_gmail_service
from .send import OutboundSender, build_message
from .read import summarize_message, parse_message, decode_attachment

__all__ = [
    "RemoteMailClient",
    "build_gmail_service",
    "OutboundSender",
    "build_message",
    "summarize_message",
    "parse_message",
    "decode_attachment",
]
