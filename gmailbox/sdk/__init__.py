"""gmailbox SDK - async facade over one Gmail account.

Example usage:
    import asyncio
    from gmailbox.sdk import Mailbox, load_mailbox_config

    async def main():
        async with Mailbox(load_mailbox_config()) as mailbox:
            for label in await mailbox.list_labels():
                print(f"{label['name']} ({label['id']})")

    asyncio.run(main())
"""

from .auth import Authorizer
from .batch import run_batch
from .config import MailboxConfig, load_mailbox_config
from .exceptions import (
    GmailboxError,
    ValidationError,
    ConfigError,
    AuthError,
    RemoteError,
    BatchError,
    SendError,
)
from .mailbox import Mailbox

__all__ = [
    "Authorizer",
    "run_batch",
    "MailboxConfig",
    "load_mailbox_config",
    "Mailbox",
    "GmailboxError",
    "ValidationError",
    "ConfigError",
    "AuthError",
    "RemoteError",
    "BatchError",
    "SendError",
]
