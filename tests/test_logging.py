from __future__ import annotations

import json
import logging

from namemapper.core.logging import JsonFormatter


def test_json_formatter_includes_mapping_fields() -> None:
    record = logging.LogRecord(
        name="namemapper.services.composite_service",
        level=logging.DEBUG,
        pathname=__file__,
        lineno=1,
        msg="Short name of user %s found by provider %s",
        args=("nobody@AD.COM", "A"),
        exc_info=None,
    )
    record.principal = "nobody@AD.COM"
    record.provider = "A"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "DEBUG"
    assert payload["message"] == "Short name of user nobody@AD.COM found by provider A"
    assert payload["principal"] == "nobody@AD.COM"
    assert payload["provider"] == "A"
    assert "short_name" not in payload


def test_json_formatter_ignores_unlisted_extras() -> None:
    record = logging.LogRecord(
        name="namemapper.services.composite_service",
        level=logging.DEBUG,
        pathname=__file__,
        lineno=1,
        msg="Loaded user name mapping providers",
        args=(),
        exc_info=None,
    )
    record.providers = ["A", "B"]
    record.source = "rules"

    payload = json.loads(JsonFormatter().format(record))

    assert "providers" not in payload
    assert payload["source"] == "rules"
