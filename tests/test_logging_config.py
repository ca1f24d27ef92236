from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.poller",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Polling error",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_known_extra_keys_are_appended_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(error="HTTP 503", address="10.0.0.2", unrelated="x"))

    assert line == "Polling error | address=10.0.0.2 error=HTTP 503"


def test_none_values_and_missing_keys_are_omitted() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["slot_id"])

    assert formatter.format(_record(slot_id=None)) == "Polling error"
    assert formatter.format(_record(slot_id=4)) == "Polling error | slot_id=4"
