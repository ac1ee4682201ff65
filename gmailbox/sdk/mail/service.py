"""Async Gmail API client for gmailbox."""

import asyncio
import logging
from typing import Any, Dict, List

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..exceptions import RemoteError
from ..timing import time_api_call

logger = logging.getLogger(__name__)


def build_gmail_service() -> Any:
    """
    Build an unauthenticated Gmail v1 resource.

    Credentials are attached per request, so the same resource can serve
    any number of authorization handles.
    """
    return build("gmail", "v1", http=httplib2.Http(), cache_discovery=False)


class RemoteMailClient:
    """
    Gmail label, message and attachment calls.

    Every method takes the authorization handle and account id, runs the
    blocking request in a worker thread, and raises RemoteError on any
    HTTP failure. Requests are never retried.
    """

    def __init__(self, service: Any = None):
        self._service = service

    @property
    def service(self) -> Any:
        if self._service is None:
            self._service = build_gmail_service()
        return self._service

    async def _execute(self, request, auth) -> Any:
        # httplib2.Http is not thread-safe; each request gets its own.
        http = AuthorizedHttp(auth, http=httplib2.Http())
        try:
            return await asyncio.to_thread(request.execute, http=http, num_retries=0)
        except HttpError as e:
            raise RemoteError.from_http_error(e) from e

    @time_api_call
    async def list_labels(self, auth, user_id: str) -> List[Dict[str, Any]]:
        request = self.service.users().labels().list(userId=user_id)
        response = await self._execute(request, auth)
        return response.get("labels", []) if response else []

    @time_api_call
    async def create_label(self, auth, user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        request = self.service.users().labels().create(userId=user_id, body=body)
        return await self._execute(request, auth)

    @time_api_call
    async def delete_label(self, auth, user_id: str, label_id: str) -> None:
        request = self.service.users().labels().delete(userId=user_id, id=label_id)
        await self._execute(request, auth)

    @time_api_call
    async def get_message(self, auth, user_id: str, message_id: str, **params) -> Dict[str, Any]:
        request = self.service.users().messages().get(userId=user_id, id=message_id, **params)
        return await self._execute(request, auth)

    @time_api_call
    async def list_messages(self, auth, user_id: str, **params) -> Dict[str, Any]:
        request = self.service.users().messages().list(userId=user_id, **params)
        return await self._execute(request, auth) or {}

    @time_api_call
    async def modify_message(self, auth, user_id: str, message_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        request = self.service.users().messages().modify(userId=user_id, id=message_id, body=body)
        return await self._execute(request, auth)

    @time_api_call
    async def batch_modify_messages(self, auth, user_id: str, body: Dict[str, Any]) -> None:
        request = self.service.users().messages().batchModify(userId=user_id, body=body)
        await self._execute(request, auth)

    @time_api_call
    async def trash_message(self, auth, user_id: str, message_id: str) -> Dict[str, Any]:
        request = self.service.users().messages().trash(userId=user_id, id=message_id)
        return await self._execute(request, auth)

    @time_api_call
    async def get_attachment(self, auth, user_id: str, message_id: str, attachment_id: str) -> Dict[str, Any]:
        request = self.service.users().messages().attachments().get(
            userId=user_id, messageId=message_id, id=attachment_id
        )
        return await self._execute(request, auth)
