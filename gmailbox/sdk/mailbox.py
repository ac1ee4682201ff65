"""Per-mailbox facade over the Gmail API and SMTP.

Example usage:
    from gmailbox.sdk import Mailbox, load_mailbox_config

    async with Mailbox(load_mailbox_config("personal")) as mailbox:
        label_id = await mailbox.resolve_label_id("Receipts", create_if_missing=True)
        stubs = await mailbox.list_messages(query="from:shop@example.com")
        await mailbox.update_message([m["id"] for m in stubs], add_label_ids=[label_id])
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from .auth import Authorizer
from .batch import run_batch
from .config import MailboxConfig
from .exceptions import AuthError, ValidationError
from .mail.read import decode_attachment, parse_message, summarize_message
from .mail.send import OutboundSender
from .mail.service import RemoteMailClient

# Upper bound on ids per messages.batchModify request.
BATCH_MODIFY_LIMIT = 1000

SUMMARY_HEADERS = ["Subject", "From", "To", "Date"]


def _id_list(message_ids: Sequence[str]) -> List[str]:
    # A bare string would otherwise be split into one-character ids.
    if isinstance(message_ids, str):
        raise ValidationError(
            f"Expected a sequence of message IDs, got the string {message_ids!r}"
        )
    return list(message_ids)


def _label_body(add_label_ids: Optional[Sequence[str]], remove_label_ids: Optional[Sequence[str]]) -> Dict[str, List[str]]:
    return {
        "addLabelIds": list(add_label_ids or []),
        "removeLabelIds": list(remove_label_ids or []),
    }


def _message_params(format: Optional[str], metadata_headers: Optional[Sequence[str]], fields: Optional[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if format:
        params["format"] = format
    if metadata_headers:
        params["metadataHeaders"] = list(metadata_headers)
    if fields:
        params["fields"] = fields
    return params


class Mailbox:
    """
    One Gmail account: labels, messages, attachments and sending.

    Every operation is a coroutine that authorizes first, then makes a
    single remote call or fans a list of ids out through run_batch. Results
    are returned directly; failures raise a GmailboxError subclass
    (AuthError, RemoteError, BatchError, SendError, ValidationError).

    The SMTP connection is opened on the first send and closed by aclose()
    or on leaving an `async with` block.
    """

    def __init__(
        self,
        config: MailboxConfig,
        authorizer: Any = None,
        client: Optional[RemoteMailClient] = None,
        sender: Optional[OutboundSender] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self._authorizer = authorizer or Authorizer.from_config(config)
        self._client = client or RemoteMailClient()
        self._sender = sender or OutboundSender(
            config.smtp_host,
            config.smtp_port,
            username=config.from_address,
            password=config.app_password,
            use_tls=config.smtp_use_tls,
        )
        if logger is None:
            logger = logging.getLogger(f"{__name__}.{config.name}")
            logger.setLevel(config.log_level)
        self.log = logger

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def user_id(self) -> str:
        return self.config.user_id

    async def __aenter__(self) -> "Mailbox":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        """Release the outbound mail connection."""
        await self._sender.close()

    async def _authorize(self) -> Any:
        try:
            auth = await self._authorizer.authorize()
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(f"Authorization failed for mailbox '{self.name}': {e}") from e
        self.log.debug("Authorized")
        return auth

    # Labels

    async def list_labels(self) -> List[Dict[str, Any]]:
        """List all labels in the account; an empty list is a valid result."""
        self.log.info("Listing labels")
        auth = await self._authorize()
        labels = await self._client.list_labels(auth, self.user_id)
        self.log.debug(f"Found {len(labels)} labels")
        return labels

    async def create_label(
        self,
        name: str,
        label_list_visibility: str = "labelShow",
        message_list_visibility: str = "show",
    ) -> str:
        """
        Create a label.

        Returns:
            The new label's ID

        Raises:
            RemoteError: If the API rejects the label (e.g. duplicate name)
        """
        if not name:
            raise ValidationError("Label name must not be empty")
        self.log.info(f"Creating label '{name}'")
        auth = await self._authorize()
        body = {
            "name": name,
            "labelListVisibility": label_list_visibility,
            "messageListVisibility": message_list_visibility,
        }
        created = await self._client.create_label(auth, self.user_id, body)
        self.log.info(f"Created label '{name}' with ID: {created['id']}")
        return created["id"]

    async def delete_label(self, label_id: str) -> None:
        """Delete a label by ID."""
        self.log.info(f"Deleting label {label_id}")
        auth = await self._authorize()
        await self._client.delete_label(auth, self.user_id, label_id)

    async def resolve_label_id(self, name: str, create_if_missing: bool = False) -> Optional[str]:
        """
        Get the ID of a label by name.

        The first label whose name matches exactly wins.

        Args:
            name: Name of the label
            create_if_missing: Create the label when no match exists

        Returns:
            The label ID, or None if the label does not exist and was not created
        """
        for label in await self.list_labels():
            if label.get("name") == name:
                self.log.debug(f"Label '{name}' exists with ID: {label['id']}")
                return label["id"]

        if not create_if_missing:
            self.log.debug(f"Label '{name}' not found")
            return None
        return await self.create_label(name)

    # Messages

    async def get_message(
        self,
        message_id: str,
        format: Optional[str] = None,
        metadata_headers: Optional[Sequence[str]] = None,
        fields: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch one message resource."""
        self.log.debug(f"Retrieving message with ID: {message_id}")
        auth = await self._authorize()
        params = _message_params(format, metadata_headers, fields)
        return await self._client.get_message(auth, self.user_id, message_id, **params)

    async def get_messages(
        self,
        message_ids: Sequence[str],
        format: Optional[str] = None,
        metadata_headers: Optional[Sequence[str]] = None,
        fields: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch many messages, at most `batch_concurrency` at a time.

        Returns:
            Messages in the same order as message_ids

        Raises:
            BatchError: Carrying the first fetch that failed
        """
        message_ids = _id_list(message_ids)
        self.log.info(f"Retrieving {len(message_ids)} messages")
        if not message_ids:
            return []
        auth = await self._authorize()
        params = _message_params(format, metadata_headers, fields)

        async def fetch(message_id):
            return await self._client.get_message(auth, self.user_id, message_id, **params)

        return await run_batch(message_ids, self.config.batch_concurrency, fetch)

    async def list_messages(
        self,
        query: Optional[str] = None,
        label_ids: Optional[Sequence[str]] = None,
        max_results: Optional[int] = None,
        fields: Optional[str] = None,
        page_token: Optional[str] = None,
        include_spam_trash: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        List message stubs (id, threadId) matching a query and/or labels.

        Returns:
            A list of message stubs; no match is an empty list
        """
        self.log.info(f"Listing messages (query={query!r}, labels={label_ids})")
        auth = await self._authorize()
        params: Dict[str, Any] = {}
        if query:
            params["q"] = query
        if label_ids:
            params["labelIds"] = list(label_ids)
        if max_results is not None:
            params["maxResults"] = max_results
        if fields:
            params["fields"] = fields
        if page_token:
            params["pageToken"] = page_token
        if include_spam_trash:
            params["includeSpamTrash"] = True

        response = await self._client.list_messages(auth, self.user_id, **params)
        messages = response.get("messages", [])
        if not messages:
            self.log.debug("No messages found matching the criteria.")
        return messages

    async def search_messages(self, query: str, max_results: int = 25, format: str = "metadata") -> List[Dict[str, Any]]:
        """
        Search messages and return header summaries.

        Args:
            query: Gmail search query (e.g. "from:someone@example.com")
            max_results: Maximum number of messages to return
            format: 'metadata' (headers only) or 'full' (adds body and snippet)
        """
        if format not in ("metadata", "full"):
            raise ValidationError(f"format must be 'metadata' or 'full', got {format!r}")
        stubs = await self.list_messages(query=query, max_results=max_results)
        headers = SUMMARY_HEADERS if format == "metadata" else None
        messages = await self.get_messages([m["id"] for m in stubs], format=format, metadata_headers=headers)
        return [summarize_message(msg, include_body=(format == "full")) for msg in messages]

    async def read_message(self, message_id: str) -> Dict[str, Any]:
        """Fetch a full message and flatten it into headers, bodies and attachment metadata."""
        msg = await self.get_message(message_id, format="full")
        return parse_message(msg)

    async def update_message(
        self,
        message_ids: Union[str, Sequence[str]],
        add_label_ids: Optional[Sequence[str]] = None,
        remove_label_ids: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Add and remove labels on one or many messages.

        A single ID uses messages.modify and returns the updated message.
        A sequence of IDs uses messages.batchModify and returns an
        acknowledgment dict with ids, addLabelIds and removeLabelIds.
        """
        body = _label_body(add_label_ids, remove_label_ids)

        if isinstance(message_ids, str):
            self.log.info(f"Modifying labels for message {message_ids}")
            auth = await self._authorize()
            return await self._client.modify_message(auth, self.user_id, message_ids, body)

        message_ids = list(message_ids)
        self.log.info(f"Modifying labels for {len(message_ids)} messages")
        acknowledgment = dict(body, ids=message_ids)
        if not message_ids:
            return acknowledgment

        auth = await self._authorize()
        for start in range(0, len(message_ids), BATCH_MODIFY_LIMIT):
            chunk = message_ids[start:start + BATCH_MODIFY_LIMIT]
            await self._client.batch_modify_messages(auth, self.user_id, dict(body, ids=chunk))
        return acknowledgment

    async def add_label(self, message_ids: Union[str, Sequence[str]], label_name: str) -> Dict[str, Any]:
        """Apply a label by name, creating the label if it does not exist."""
        label_id = await self.resolve_label_id(label_name, create_if_missing=True)
        return await self.update_message(message_ids, add_label_ids=[label_id])

    async def remove_label(self, message_ids: Union[str, Sequence[str]], label_name: str) -> Optional[Dict[str, Any]]:
        """
        Remove a label by name.

        Returns:
            The update result, or None if no label with that name exists
        """
        label_id = await self.resolve_label_id(label_name)
        if label_id is None:
            return None
        return await self.update_message(message_ids, remove_label_ids=[label_id])

    async def trash_message(self, message_id: str) -> Dict[str, Any]:
        """Move one message to the trash."""
        self.log.info(f"Trashing message {message_id}")
        auth = await self._authorize()
        return await self._client.trash_message(auth, self.user_id, message_id)

    async def trash_messages(self, message_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Move many messages to the trash, at most `batch_concurrency` at a time.

        Raises:
            BatchError: Carrying the first trash call that failed
        """
        message_ids = _id_list(message_ids)
        self.log.info(f"Trashing {len(message_ids)} messages")
        if not message_ids:
            return []
        auth = await self._authorize()

        async def trash(message_id):
            return await self._client.trash_message(auth, self.user_id, message_id)

        return await run_batch(message_ids, self.config.batch_concurrency, trash)

    # Attachments

    async def get_attachment(self, message_id: str, attachment_id: str) -> Dict[str, Any]:
        """
        Download an attachment.

        Returns:
            Dict containing 'data' (decoded bytes) and 'size'
        """
        self.log.debug(f"Downloading attachment {attachment_id} from message {message_id}")
        auth = await self._authorize()
        attachment = await self._client.get_attachment(auth, self.user_id, message_id, attachment_id)
        return decode_attachment(attachment)

    # Sending

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        from_address: Optional[str] = None,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        html_body: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a message over the mailbox's SMTP connection.

        Args:
            to: Recipient address (comma-separated for multiple)
            subject: Subject line
            body: Plain text body
            from_address: Sender; defaults to the configured from_address
            cc: Optional CC recipients
            bcc: Optional BCC recipients
            html_body: Optional HTML alternative

        Raises:
            ValidationError: If no sender address is known
            SendError: If the SMTP transport fails
        """
        sender = from_address or self.config.from_address
        self.log.info(f"Sending email to: {to}, subject: {subject}")
        await self._authorize()
        return await self._sender.send(sender, to, subject, body, cc=cc, bcc=bcc, html_body=html_body)
