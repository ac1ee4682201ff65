"""Helpers that flatten Gmail message resources into plain dicts."""

import base64
import logging
from typing import Dict, Any, Optional, List

logger = logging.getLogger(__name__)


def _extract_attachments(payload: dict) -> List[Dict[str, Any]]:
    """
    Extract attachment metadata from a message payload.

    Recursively searches through MIME parts to find attachments.
    An attachment is identified by having a filename and attachmentId.

    Args:
        payload: The message payload from Gmail API

    Returns:
        List of attachment metadata dicts, each containing:
            - attachmentId: ID needed to download the attachment
            - filename: Original filename
            - mimeType: MIME type (e.g., "application/pdf")
            - size: Size in bytes
    """
    attachments = []

    def process_part(part: dict):
        filename = part.get('filename', '')
        body = part.get('body', {})
        attachment_id = body.get('attachmentId')

        if filename and attachment_id:
            attachments.append({
                'attachmentId': attachment_id,
                'filename': filename,
                'mimeType': part.get('mimeType', 'application/octet-stream'),
                'size': body.get('size', 0),
            })

        for subpart in part.get('parts', []):
            process_part(subpart)

    for part in payload.get('parts', []):
        process_part(part)

    return attachments


def _get_header(headers: list, name: str, default: str = 'N/A') -> str:
    """Get a header value by name."""
    for header in headers:
        if header['name'].lower() == name.lower():
            return header['value']
    return default


def _decode_body(part: dict) -> Optional[str]:
    data = part.get('body', {}).get('data')
    if data is None:
        return None
    return base64.urlsafe_b64decode(data).decode('utf-8', errors='ignore')


def _extract_body_parts(payload: dict) -> tuple:
    """
    Extract text and HTML body parts from a message payload.

    Returns:
        Tuple of (text_body, html_body)
    """
    text_body = None
    html_body = None

    def process_part(part: dict):
        nonlocal text_body, html_body

        mime_type = part.get('mimeType', '')

        if mime_type == 'text/plain' and text_body is None:
            text_body = _decode_body(part)
        elif mime_type == 'text/html' and html_body is None:
            html_body = _decode_body(part)

        for subpart in part.get('parts', []):
            process_part(subpart)

    if 'parts' in payload:
        for part in payload['parts']:
            process_part(part)
    elif payload.get('mimeType') == 'text/html':
        html_body = _decode_body(payload)
    else:
        text_body = _decode_body(payload)

    return text_body, html_body


def summarize_message(msg: Dict[str, Any], include_body: bool = False) -> Dict[str, Any]:
    """
    Reduce a message resource to its common headers.

    Args:
        msg: Message resource as returned by messages.get
        include_body: Also decode the plain text body and include the snippet

    Returns:
        Dict with id, threadId, subject, from, to, date, labelIds
        (plus body and snippet when include_body is set)
    """
    headers = msg.get('payload', {}).get('headers', [])
    summary = {
        "id": msg.get('id'),
        "threadId": msg.get('threadId'),
        "subject": _get_header(headers, 'Subject'),
        "from": _get_header(headers, 'From'),
        "to": _get_header(headers, 'To'),
        "date": _get_header(headers, 'Date'),
        "labelIds": msg.get('labelIds', []),
    }
    if include_body:
        text_body, _ = _extract_body_parts(msg.get('payload', {}))
        summary["body"] = text_body or ""
        summary["snippet"] = msg.get('snippet', '')
    return summary


def parse_message(msg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a message fetched with format='full'.

    Returns:
        Dict containing message details:
            - id, threadId, subject, from, to, date, snippet
            - body: Dict with 'text' and 'html' content
            - labelIds: List of label IDs
            - attachments: List of attachment metadata
    """
    payload = msg.get('payload', {})
    text_body, html_body = _extract_body_parts(payload)
    details = summarize_message(msg)
    details.update({
        "snippet": msg.get('snippet', ''),
        "body": {
            "text": text_body,
            "html": html_body,
        },
        "attachments": _extract_attachments(payload),
    })
    return details


def decode_attachment(attachment: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode an attachments.get response.

    Returns:
        Dict containing:
            - data: Base64-decoded binary content of the attachment
            - size: Size in bytes
    """
    data = base64.urlsafe_b64decode(attachment.get('data', ''))
    logger.debug(f"Decoded attachment: {len(data)} bytes")
    return {
        'data': data,
        'size': attachment.get('size', len(data)),
    }
