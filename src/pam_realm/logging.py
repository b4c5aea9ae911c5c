"""Syslog wrapper for PAM realm authentication logging.

Messages often carry caller-supplied usernames, so control characters are
escaped before they reach syslog (which rejects NUL and would split lines).
"""

from __future__ import annotations

import syslog

SYSLOG_IDENT = "pam_realm"

_opened = False


def _ensure_open() -> None:
    global _opened
    if not _opened:
        syslog.openlog(SYSLOG_IDENT, syslog.LOG_PID, syslog.LOG_AUTH)
        _opened = True


def _clean(msg: str) -> str:
    if msg.isprintable():
        return msg
    return "".join(
        c if c.isprintable() else c.encode("unicode_escape", "backslashreplace").decode("ascii")
        for c in msg
    )


def _log(priority: int, msg: str) -> None:
    _ensure_open()
    syslog.syslog(priority, _clean(msg))


def log_info(msg: str) -> None:
    _log(syslog.LOG_INFO, msg)


def log_warning(msg: str) -> None:
    _log(syslog.LOG_WARNING, msg)


def log_error(msg: str) -> None:
    _log(syslog.LOG_ERR, msg)


def log_debug(msg: str) -> None:
    _log(syslog.LOG_DEBUG, msg)
