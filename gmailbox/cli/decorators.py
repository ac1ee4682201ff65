"""CLI decorators that run SDK coroutines against the selected mailbox."""

import asyncio
import json
import logging
import sys
from functools import wraps

import click

from gmailbox.sdk.config import load_mailbox_config
from gmailbox.sdk.exceptions import GmailboxError
from gmailbox.sdk.mailbox import Mailbox

logger = logging.getLogger(__name__)


def load_selected_config():
    """Load the MailboxConfig chosen with --mailbox, exiting on config errors."""
    ctx = click.get_current_context()
    mailbox_name = (ctx.find_root().obj or {}).get("mailbox")
    try:
        return load_mailbox_config(mailbox_name)
    except GmailboxError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


def mailbox_command(f):
    """
    Decorator for commands implemented as `async def cmd(mailbox, ...)`.

    Opens the configured Mailbox, awaits the command, prints its result as
    JSON, and exits with status 1 on any gmailbox error.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        config = load_selected_config()

        async def run():
            async with Mailbox(config) as mailbox:
                return await f(mailbox, *args, **kwargs)

        try:
            result = asyncio.run(run())
        except GmailboxError as e:
            logger.critical(f"An error occurred during {f.__name__}: {e}")
            logger.debug("Traceback:", exc_info=True)
            sys.exit(1)

        if result is not None:
            click.echo(json.dumps(result, indent=2))
    return decorated_function
