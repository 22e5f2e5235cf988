import logging

from kbvault.core.logging_config import RequestContextFilter, request_id_var


def _record():
    return logging.LogRecord("kbvault.test", logging.INFO, __file__, 1, "hello", None, None)


def test_records_outside_a_request_get_placeholder_id():
    record = _record()
    assert RequestContextFilter().filter(record) is True
    assert record.request_id == "-"


def test_records_carry_current_request_id():
    token = request_id_var.set("req-42")
    try:
        record = _record()
        RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-42"
