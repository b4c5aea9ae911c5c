"""Platform authentication service: PAM handles and Unix user records.

A ``PAM`` object is a short-lived handle bound to one PAM service. It is
opened per operation and released with ``close()`` (or a ``with`` block).
Verification itself is delegated to python-pam's ``PamAuthenticator``, which
talks to ``libpam`` through ctypes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from grp import getgrgid
from os import getgrouplist
from pwd import getpwnam

from pam import PamAuthenticator

from .logging import log_debug, log_warning

# Linux-PAM looks up per-service policies in these directories, in order
PAM_CONFIG_DIRS = ("/etc/pam.d", "/usr/lib/pam.d", "/usr/etc/pam.d")
# Legacy single-file configuration, used when no pam.d directory exists
PAM_CONF = "/etc/pam.conf"


class PAMError(Exception):
    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class UnixUser:
    username: str
    uid: int
    gid: int
    groups: tuple[str, ...] = field(default_factory=tuple)
    gecos: str = ""
    home: str = ""
    shell: str = ""

    @classmethod
    def from_name(cls, username: str) -> UnixUser:
        """Build a user record from the passwd and group databases.

        Groups are listed primary group first; duplicates are collapsed.
        """
        try:
            pw = getpwnam(username)
        except KeyError as exc:
            raise PAMError(f"no passwd entry for user '{username}'") from exc

        groups: dict[str, None] = {}
        for gid in getgrouplist(pw.pw_name, pw.pw_gid):
            try:
                groups[getgrgid(gid).gr_name] = None
            except KeyError:
                log_warning(f"gid {gid} of user '{pw.pw_name}' has no group entry")

        return cls(
            username=pw.pw_name,
            uid=pw.pw_uid,
            gid=pw.pw_gid,
            groups=tuple(groups),
            gecos=pw.pw_gecos,
            home=pw.pw_dir,
            shell=pw.pw_shell,
        )


def _service_in_pam_conf(service: str) -> bool:
    try:
        with open(PAM_CONF) as f:
            for line in f:
                fields = line.split()
                if fields and not fields[0].startswith("#") and fields[0] == service:
                    return True
    except OSError:
        return False
    return False


def find_service(service: str | None) -> str:
    """Return the path of the policy that configures *service*.

    Raises PAMError if the name is unusable or no policy exists.
    """
    if not service:
        raise PAMError("no PAM service configured")
    if "/" in service or service in (".", ".."):
        raise PAMError(f"invalid PAM service name: {service}")

    for config_dir in PAM_CONFIG_DIRS:
        path = os.path.join(config_dir, service)
        if os.path.isfile(path):
            return path

    # Linux-PAM ignores pam.conf once the pam.d directory exists
    if not os.path.isdir(PAM_CONFIG_DIRS[0]) and _service_in_pam_conf(service):
        return PAM_CONF

    raise PAMError(f"unknown PAM service: {service}")


class PAM:
    """Handle on the PAM subsystem for a single service."""

    def __init__(self, service: str | None):
        policy = find_service(service)
        try:
            self._authenticator = PamAuthenticator()
        except Exception as exc:
            # libpam missing or unloadable
            raise PAMError(f"cannot load PAM library: {exc}") from exc
        log_debug(f"opened PAM service '{service}' ({policy})")
        self.service = service
        self._closed = False

    def __enter__(self) -> PAM:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._authenticator.end()

    def authenticate(self, username: str, password: str | bytes) -> UnixUser:
        """Verify *username*/*password* against the service's PAM stack.

        Returns the record of *username* as submitted. The name is not
        re-read from PAM_USER afterwards, so a module that rewrites the user
        during the conversation is not reflected in the record.

        Raises PAMError on any failure; PAM itself does not reliably tell
        bad credentials apart from a broken stack, so neither does this.
        """
        if self._closed:
            raise PAMError("PAM handle is closed")
        if not username:
            raise PAMError("username must not be empty")

        try:
            ok = self._authenticator.authenticate(
                username, password, service=self.service, call_end=False
            )
        except (ValueError, UnicodeError) as exc:
            # NUL bytes or text libpam cannot take
            raise PAMError(f"credentials rejected by PAM binding: {exc}") from exc
        if not ok:
            raise PAMError(
                f"{self._authenticator.reason} (code {self._authenticator.code})",
                code=self._authenticator.code,
            )

        return UnixUser.from_name(username)
