"""
Webhook Delivery Adapter

Posts report messages to a chat webhook (SeaTalk-style payloads):
- Text message: {"tag": "text", "text": {"content": ...}}
- File message: {"tag": "file", "file": {"filename": ..., "content": <base64>}}

Text delivery is best-effort; file delivery failures raise DeliveryError.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..config_loader import config
from ..errors import DeliveryError

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    """Data object describing one webhook POST."""
    tag: str
    status_code: int
    body: str
    
    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def build_text_payload(content: str) -> Dict[str, Any]:
    return {"tag": "text", "text": {"content": content}}


def build_file_payload(filename: str, data: bytes) -> Dict[str, Any]:
    return {
        "tag": "file",
        "file": {
            "filename": filename,
            "content": base64.b64encode(data).decode("ascii"),
        },
    }


def format_rows_as_text(
    rows: List[List[str]],
    header: Optional[str] = None,
    separator: Optional[str] = None
) -> str:
    """
    Flatten cell rows into a message body.
    
    Cells are joined with `separator`, blank rows are dropped and the
    optional header becomes the first line. Returns '' when nothing is left.
    """
    if separator is None:
        separator = config.get('webhook.text_cell_separator', ' | ')
    
    lines = []
    for row in rows:
        cells = [str(c).strip() for c in row]
        if any(cells):
            lines.append(separator.join(cells).strip())
    
    if not lines:
        return ""
    if header:
        lines.insert(0, header)
    return "\n".join(lines)


class WebhookClient:
    """
    Chat webhook client.
    
    One client per endpoint; reuses a requests.Session for all messages of a run.
    """
    
    def __init__(self, url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        """
        Args:
            url: Webhook endpoint
            timeout: Per-request timeout in seconds (defaults to config value)
            session: Optional pre-configured session (tests inject a mock)
        """
        self.url = url
        self.timeout = timeout or config.get('webhook.timeout', 60)
        self.session = session or requests.Session()
    
    def send(self, payload: Dict[str, Any]) -> DeliveryResult:
        """
        POST one JSON payload.
        
        Raises:
            DeliveryError: On transport errors or a non-2xx status
        """
        tag = payload.get("tag", "unknown")
        
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryError(f"Webhook {tag} message failed: {e}") from e
        
        result = DeliveryResult(tag=tag, status_code=response.status_code, body=response.text)
        logger.info(f"Webhook {tag} status: {result.status_code}")
        logger.info(f"Webhook {tag} body: {result.body[:500]}")
        
        if not result.ok:
            raise DeliveryError(
                f"Webhook {tag} message rejected with HTTP {result.status_code}",
                status_code=result.status_code
            )
        return result
    
    def send_text(self, content: str) -> bool:
        """
        Send a text message. Failures are logged and reported as False.
        """
        if not content:
            logger.info("No text to send")
            return False
        
        try:
            self.send(build_text_payload(content))
            return True
        except DeliveryError as e:
            logger.warning(f"[Non-Fatal] Text delivery failed: {e}")
            return False
    
    def send_file(self, filename: str, data: bytes) -> DeliveryResult:
        """
        Send an image inline as a base64 file message.
        
        Raises:
            DeliveryError: If the webhook does not accept the message
        """
        logger.info(f"Sending {filename} ({len(data)} bytes)")
        return self.send(build_file_payload(filename, data))
