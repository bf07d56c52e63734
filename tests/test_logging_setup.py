from __future__ import annotations

import logging

import httpx

from poet_proxy.common.logging_setup import RedactKeyFilter, redact, setup_logging


def test_redact_masks_key_param() -> None:
    url = "https://x.test/v1beta/models/m:generateContent?key=AIzaSECRET&alt=json"
    assert redact(url) == "https://x.test/v1beta/models/m:generateContent?key=***&alt=json"


def test_filter_masks_args_including_urls() -> None:
    record = logging.LogRecord(
        "httpx", logging.INFO, __file__, 1, "HTTP Request: %s %s", ("POST", httpx.URL("https://x.test/a?key=SECRET")), None
    )
    assert RedactKeyFilter().filter(record)
    assert "SECRET" not in record.getMessage()


def test_setup_logging_accepts_level_name() -> None:
    setup_logging("debug")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    setup_logging("not-a-level")
    assert logging.getLogger().level == logging.INFO
