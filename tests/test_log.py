from __future__ import annotations

import uuid

from bluezio.core import log
from bluezio.core.log import LOG__DEBUG, LOG__GENERAL, get_logger, print_and_log


def log_contents(log_type: str) -> str:
    for handler in log._handlers.values():
        handler.flush()
    path = log._LOG_PATHS[log_type]
    return path.read_text(encoding="utf-8") if path.exists() else ""


def test_debug_records_go_to_debug_log() -> None:
    marker = uuid.uuid4().hex
    get_logger("bluezio.dbuslayer.discovery").debug("walking %s", marker)
    assert marker in log_contents(LOG__DEBUG)
    assert marker not in log_contents(LOG__GENERAL)


def test_info_records_go_to_general_log() -> None:
    marker = uuid.uuid4().hex
    get_logger("bluezio.dbuslayer.session").info("session %s", marker)
    assert marker in log_contents(LOG__GENERAL)
    assert marker not in log_contents(LOG__DEBUG)


def test_print_and_log_debug_is_not_printed(capsys) -> None:
    marker = uuid.uuid4().hex
    print_and_log(f"[DEBUG] {marker}", LOG__DEBUG)
    assert capsys.readouterr().out == ""
    assert marker in log_contents(LOG__DEBUG)

    print_and_log(f"[*] {marker}", LOG__GENERAL)
    assert marker in capsys.readouterr().out
    assert marker in log_contents(LOG__GENERAL)
