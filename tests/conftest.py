"""
Shared fixtures and test doubles for gmailbox tests.

The doubles stand in for the three external collaborators of a Mailbox:
- FakeAuthorizer: counts authorize() calls, optionally fails
- FakeRemoteClient: in-memory labels and messages with the RemoteMailClient interface
- FakeSMTP: records connections and sent messages for OutboundSender
"""

import asyncio
import base64
from typing import Any, Dict, List

import pytest

from gmailbox.sdk.config import MailboxConfig
from gmailbox.sdk.exceptions import RemoteError
from gmailbox.sdk.mail.send import OutboundSender
from gmailbox.sdk.mailbox import Mailbox


class FakeAuthorizer:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = 0
        self.handle = object()

    async def authorize(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.handle


class FakeRemoteClient:
    """In-memory stand-in for RemoteMailClient."""

    def __init__(self, labels: List[Dict[str, Any]] = None, messages: Dict[str, Dict[str, Any]] = None):
        self.labels = [dict(label) for label in (labels or [])]
        self.messages = {
            message_id: dict(message, id=message_id, labelIds=list(message.get("labelIds", [])))
            for message_id, message in (messages or {}).items()
        }
        self.attachments: Dict[str, Dict[str, Any]] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self._next_label = 1

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))

    def calls_to(self, name):
        return [call for call in self.calls if call[0] == name]

    def _lookup(self, message_id):
        if message_id in self.failures:
            raise self.failures[message_id]
        if message_id not in self.messages:
            raise RemoteError("Gmail API error (404): Not Found", status=404, reason="Not Found")
        return self.messages[message_id]

    def _apply(self, message_id, body):
        message = self._lookup(message_id)
        labels = [l for l in message["labelIds"] if l not in body.get("removeLabelIds", [])]
        for label_id in body.get("addLabelIds", []):
            if label_id not in labels:
                labels.append(label_id)
        message["labelIds"] = labels
        return dict(message)

    async def list_labels(self, auth, user_id):
        self._record("list_labels", auth, user_id)
        await asyncio.sleep(0)
        return [dict(label) for label in self.labels]

    async def create_label(self, auth, user_id, body):
        self._record("create_label", auth, user_id, body)
        await asyncio.sleep(0)
        if any(label["name"] == body["name"] for label in self.labels):
            raise RemoteError("Gmail API error (409): Label name exists or conflicts", status=409)
        label = {"id": f"Label_{self._next_label}", "name": body["name"]}
        self._next_label += 1
        self.labels.append(label)
        return dict(label)

    async def delete_label(self, auth, user_id, label_id):
        self._record("delete_label", auth, user_id, label_id)
        await asyncio.sleep(0)
        self.labels = [label for label in self.labels if label["id"] != label_id]

    async def get_message(self, auth, user_id, message_id, **params):
        self._record("get_message", auth, user_id, message_id, **params)
        await asyncio.sleep(0)
        return dict(self._lookup(message_id))

    async def list_messages(self, auth, user_id, **params):
        self._record("list_messages", auth, user_id, **params)
        await asyncio.sleep(0)
        wanted = set(params.get("labelIds", []))
        matches = [
            {"id": m["id"], "threadId": m.get("threadId", m["id"])}
            for m in self.messages.values()
            if wanted.issubset(m["labelIds"])
        ]
        if "maxResults" in params:
            matches = matches[:params["maxResults"]]
        # The API omits the key entirely when nothing matches.
        return {"messages": matches, "resultSizeEstimate": len(matches)} if matches else {"resultSizeEstimate": 0}

    async def modify_message(self, auth, user_id, message_id, body):
        self._record("modify_message", auth, user_id, message_id, body)
        await asyncio.sleep(0)
        return self._apply(message_id, body)

    async def batch_modify_messages(self, auth, user_id, body):
        self._record("batch_modify_messages", auth, user_id, body)
        await asyncio.sleep(0)
        for message_id in body["ids"]:
            self._apply(message_id, body)

    async def trash_message(self, auth, user_id, message_id):
        self._record("trash_message", auth, user_id, message_id)
        await asyncio.sleep(0)
        return self._apply(message_id, {"addLabelIds": ["TRASH"], "removeLabelIds": ["INBOX"]})

    async def get_attachment(self, auth, user_id, message_id, attachment_id):
        self._record("get_attachment", auth, user_id, message_id, attachment_id)
        await asyncio.sleep(0)
        self._lookup(message_id)
        return self.attachments[attachment_id]


class FakeSMTP:
    """Stand-in for aiosmtplib.SMTP."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.connected = False
        self.login_args = None
        self.sent = []
        self.quit_called = False
        self.send_error = None

    async def connect(self):
        await asyncio.sleep(0)
        self.connected = True

    async def login(self, username, password):
        self.login_args = (username, password)

    async def send_message(self, message):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)
        return {}, "2.0.0 OK"

    async def quit(self):
        self.quit_called = True
        self.connected = False

    def close(self):
        self.connected = False


def encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


@pytest.fixture
def mailbox_config() -> MailboxConfig:
    return MailboxConfig(
        name="test",
        from_address="me@example.com",
        app_password="app-password",
        log_level="DEBUG",
    )


@pytest.fixture
def smtp_connections() -> List[FakeSMTP]:
    """Every FakeSMTP created by the smtp_factory fixture, in order."""
    return []


@pytest.fixture
def smtp_factory(smtp_connections):
    def factory(**kwargs):
        smtp = FakeSMTP(**kwargs)
        smtp_connections.append(smtp)
        return smtp
    return factory


@pytest.fixture
def fake_client() -> FakeRemoteClient:
    return FakeRemoteClient(
        labels=[
            {"id": "INBOX", "name": "INBOX"},
            {"id": "Label_10", "name": "Receipts"},
        ],
        messages={
            "a": {"threadId": "t1", "labelIds": ["INBOX"], "snippet": "first"},
            "b": {"threadId": "t2", "labelIds": ["INBOX", "Label_10"], "snippet": "second"},
            "c": {"threadId": "t3", "labelIds": ["INBOX"], "snippet": "third"},
        },
    )


@pytest.fixture
def fake_authorizer() -> FakeAuthorizer:
    return FakeAuthorizer()


@pytest.fixture
def mailbox(mailbox_config, fake_authorizer, fake_client, smtp_factory) -> Mailbox:
    sender = OutboundSender(
        mailbox_config.smtp_host,
        mailbox_config.smtp_port,
        username=mailbox_config.from_address,
        password=mailbox_config.app_password,
        smtp_factory=smtp_factory,
    )
    return Mailbox(mailbox_config, authorizer=fake_authorizer, client=fake_client, sender=sender)


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
