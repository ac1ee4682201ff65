"""gmailbox CLI - Command-line interface for one or more Gmail mailboxes."""

import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
import click

from gmailbox import __version__
from gmailbox.sdk.auth import Authorizer
from gmailbox.sdk.exceptions import GmailboxError

from .decorators import load_selected_config, mailbox_command


# Configure logging at the application level
if not logging.root.handlers:
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO),
                        stream=sys.stderr,
                        format='%(asctime)s - %(levelname)s - %(message)s')
# Suppress noisy INFO logs from googleapiclient and google_auth_oauthlib
logging.getLogger('googleapiclient.discovery').setLevel(logging.WARNING)
logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.WARNING)
logging.getLogger('google_auth_oauthlib.flow').setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@click.group()
@click.option('--mailbox', '-m', envvar='GMAILBOX_MAILBOX', default=None,
              help='Mailbox entry from the config file (defaults to default_mailbox).')
@click.version_option(__version__)
@click.pass_context
def gmailbox(ctx, mailbox):
    """gmailbox CLI.

    Label, read, trash and send mail for the Gmail accounts listed in
    ~/.config/gmailbox/config.yaml. Output is JSON.
    """
    ctx.ensure_object(dict)
    ctx.obj["mailbox"] = mailbox


@gmailbox.command()
def authorize():
    """Obtain or refresh the OAuth token for the mailbox (may open a browser)."""
    config = load_selected_config()
    authorizer = Authorizer.from_config(config, interactive=True)
    try:
        asyncio.run(authorizer.authorize())
    except GmailboxError as e:
        logger.critical(f"Authorization failed for mailbox '{config.name}': {e}")
        sys.exit(1)
    click.secho(f"Mailbox '{config.name}' authorized. Token: {config.token_path}", fg="green")


# Labels group
@gmailbox.group()
def labels():
    """Operations on Gmail labels."""
    pass


@labels.command('list')
@mailbox_command
async def list_labels_command(mailbox):
    """List all labels."""
    return await mailbox.list_labels()


@labels.command('create')
@click.argument('name')
@mailbox_command
async def create_label_command(mailbox, name):
    """Create a label and print its ID."""
    return {"id": await mailbox.create_label(name), "name": name}


@labels.command('delete')
@click.argument('label_id')
@mailbox_command
async def delete_label_command(mailbox, label_id):
    """Delete a label by ID."""
    await mailbox.delete_label(label_id)
    return {"id": label_id, "deleted": True}


@labels.command('resolve')
@click.argument('name')
@click.option('--create', is_flag=True, help='Create the label if it does not exist.')
@mailbox_command
async def resolve_label_command(mailbox, name, create):
    """Print the ID of the label NAME (null if absent)."""
    return {"name": name, "id": await mailbox.resolve_label_id(name, create_if_missing=create)}


# Messages group
@gmailbox.group()
def messages():
    """Operations on Gmail messages."""
    pass


@messages.command('list')
@click.option('--query', '-q', default=None, help='Gmail search query.')
@click.option('--label-id', 'label_ids', multiple=True, help='Only messages with this label ID (repeatable).')
@click.option('--max-results', type=int, default=None, help='Maximum number of messages to return.')
@mailbox_command
async def list_messages_command(mailbox, query, label_ids, max_results):
    """List message stubs (id, threadId)."""
    return await mailbox.list_messages(query=query, label_ids=label_ids, max_results=max_results)


@messages.command('search')
@click.argument('query')
@click.option('--max-results', type=int, default=25,
              help='Maximum number of messages to return (default 25).')
@click.option('--format', type=click.Choice(['metadata', 'full']), default='metadata',
              help="'metadata' is headers and labelIds only; 'full' adds body and snippet.")
@mailbox_command
async def search_command(mailbox, query, max_results, format):
    """Search for emails and print header summaries."""
    return await mailbox.search_messages(query, max_results=max_results, format=format)


@messages.command('get')
@click.argument('message_ids', nargs=-1, required=True)
@click.option('--format', type=click.Choice(['minimal', 'full', 'raw', 'metadata']), default=None)
@mailbox_command
async def get_messages_command(mailbox, message_ids, format):
    """Fetch raw message resources by ID."""
    if len(message_ids) == 1:
        return await mailbox.get_message(message_ids[0], format=format)
    return await mailbox.get_messages(message_ids, format=format)


@messages.command('read')
@click.argument('message_id')
@mailbox_command
async def read_command(mailbox, message_id):
    """Read a specific email by ID."""
    return await mailbox.read_message(message_id)


@messages.command('trash')
@click.argument('message_ids', nargs=-1, required=True)
@mailbox_command
async def trash_command(mailbox, message_ids):
    """Move messages to the trash."""
    if len(message_ids) == 1:
        return await mailbox.trash_message(message_ids[0])
    return await mailbox.trash_messages(message_ids)


@messages.command('label')
@click.argument('message_ids', nargs=-1, required=True)
@click.argument('label_name')
@click.option('--remove', is_flag=True, help='Remove the label instead of adding it.')
@mailbox_command
async def label_command(mailbox, message_ids, label_name, remove):
    """Add or remove a label (by name) on one or more emails."""
    target = message_ids[0] if len(message_ids) == 1 else list(message_ids)
    if remove:
        result = await mailbox.remove_label(target, label_name)
        if result is None:
            logger.warning(f"Label '{label_name}' does not exist; nothing removed")
        return result
    return await mailbox.add_label(target, label_name)


# Attachments group
@gmailbox.group()
def attachments():
    """Operations on message attachments."""
    pass


@attachments.command('get')
@click.argument('message_id')
@click.argument('attachment_id')
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False),
              help='File to write the attachment to.')
@mailbox_command
async def get_attachment_command(mailbox, message_id, attachment_id, output):
    """Download an attachment to a file."""
    attachment = await mailbox.get_attachment(message_id, attachment_id)
    Path(output).write_bytes(attachment["data"])
    return {"path": output, "size": attachment["size"]}


@gmailbox.command()
@click.option('--to', required=True, help='Recipient address (comma-separated for multiple).')
@click.option('--subject', required=True)
@click.option('--body', required=True, help='Plain text body.')
@click.option('--from', 'from_address', default=None, help='Sender (defaults to from_address in config).')
@click.option('--cc', default=None)
@click.option('--bcc', default=None)
@mailbox_command
async def send(mailbox, to, subject, body, from_address, cc, bcc):
    """Send an email over SMTP."""
    return await mailbox.send_message(to, subject, body, from_address=from_address, cc=cc, bcc=bcc)


def main():
    """Entry point for the CLI."""
    load_dotenv()
    gmailbox()


if __name__ == "__main__":
    main()
