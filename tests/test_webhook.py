"""
Webhook Delivery Tests

Payload shapes, status handling and best-effort text delivery with a
mocked requests session.
"""

import base64
import logging
import unittest
from unittest.mock import MagicMock

import requests

from sheetsnap.errors import DeliveryError
from sheetsnap.services.webhook import (
    WebhookClient,
    build_file_payload,
    build_text_payload,
    format_rows_as_text,
)

logging.basicConfig(level=logging.INFO)


def response(status=200, text='{"code":0}'):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    return resp


class TestPayloads(unittest.TestCase):

    def test_text_payload(self):
        self.assertEqual(
            build_text_payload("hello"),
            {"tag": "text", "text": {"content": "hello"}}
        )

    def test_file_payload(self):
        payload = build_file_payload("Report.png", b"\x89PNG")
        self.assertEqual(payload["tag"], "file")
        self.assertEqual(payload["file"]["filename"], "Report.png")
        self.assertEqual(base64.b64decode(payload["file"]["content"]), b"\x89PNG")

    def test_format_rows(self):
        rows = [["Region", "Sales"], [], ["  ", ""], ["North", "1,200"]]
        self.assertEqual(
            format_rows_as_text(rows, header="Daily", separator=" | "),
            "Daily\nRegion | Sales\nNorth | 1,200"
        )

    def test_format_rows_empty(self):
        self.assertEqual(format_rows_as_text([[""], []], header="Daily"), "")


class TestWebhookClient(unittest.TestCase):

    def setUp(self):
        self.session = MagicMock()
        self.session.post.return_value = response()
        self.client = WebhookClient("https://hooks.example/abc", timeout=5, session=self.session)

    def test_send_file_posts_json(self):
        result = self.client.send_file("Report.png", b"img")
        
        self.assertTrue(result.ok)
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "https://hooks.example/abc")
        self.assertEqual(kwargs["json"]["tag"], "file")
        self.assertEqual(kwargs["timeout"], 5)

    def test_send_file_rejected_is_fatal(self):
        self.session.post.return_value = response(status=500, text="oops")
        with self.assertRaises(DeliveryError) as ctx:
            self.client.send_file("Report.png", b"img")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_send_file_transport_error_is_fatal(self):
        self.session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(DeliveryError):
            self.client.send_file("Report.png", b"img")

    def test_send_text_failure_is_not_fatal(self):
        self.session.post.side_effect = requests.Timeout("slow")
        self.assertFalse(self.client.send_text("hello"))

    def test_send_text_success(self):
        self.assertTrue(self.client.send_text("hello"))
        self.assertEqual(self.session.post.call_args.kwargs["json"]["tag"], "text")

    def test_empty_text_is_skipped(self):
        self.assertFalse(self.client.send_text(""))
        self.session.post.assert_not_called()


if __name__ == "__main__":
    unittest.main()
