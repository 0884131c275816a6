"""Structured Logging — JSON output and customer id masking."""

import json
import logging

from chatshop.infrastructure.observability import JSONFormatter, MaskingFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("chatshop.test", logging.INFO, __file__, 1, "hello", None, None)
    record.__dict__.update(extra)
    return record


def test_json_formatter_masks_customer_id():
    line = JSONFormatter().format(_record(customer_id="628123456789", order_id="ORD-1"))
    payload = json.loads(line)
    assert payload["message"] == "hello"
    assert payload["customer_id"] == "***6789"
    assert payload["order_id"] == "ORD-1"
    assert "628123456789" not in line


def test_text_formatter_masks_customer_id():
    line = MaskingFormatter("%(message)s").format(_record(customer_id="628123456789"))
    assert line == "hello [customer=***6789]"


def test_setup_logging_does_not_stack_handlers():
    setup_logging("DEBUG", "json")
    setup_logging("INFO", "text")
    ours = [
        h for h in logging.root.handlers
        if isinstance(h.formatter, (JSONFormatter, MaskingFormatter))
    ]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, MaskingFormatter)
    assert logging.root.level == logging.INFO
