"""Shared test fixtures: fake PAM stack, PAM config dir, user database."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from pam_realm import libpam

# ---------------------------------------------------------------------------
# Fake user database
# ---------------------------------------------------------------------------

GROUPS = {
    1000: "alice",
    27: "sudo",
    100: "users",
    1001: "bob",
    4242: "developers",
}

USERS = {
    "alice": {"uid": 1000, "gid": 1000, "groups": [1000, 27, 100, 27], "password": "s3cret"},
    "bob": {"uid": 1001, "gid": 1001, "groups": [1001, 100, 4242, 9999], "password": "hunter2"},
}


def fake_getpwnam(name):
    try:
        entry = USERS[name]
    except KeyError:
        raise KeyError(f"getpwnam(): name not found: '{name}'")
    return SimpleNamespace(
        pw_name=name,
        pw_passwd="x",
        pw_uid=entry["uid"],
        pw_gid=entry["gid"],
        pw_gecos=name.capitalize(),
        pw_dir=f"/home/{name}",
        pw_shell="/bin/bash",
    )


def fake_getgrouplist(name, gid):
    return [gid, *USERS[name]["groups"]]


def fake_getgrgid(gid):
    try:
        return SimpleNamespace(gr_name=GROUPS[gid], gr_gid=gid, gr_mem=[])
    except KeyError:
        raise KeyError(f"getgrgid(): gid not found: {gid}")


# ---------------------------------------------------------------------------
# Fake python-pam authenticator
# ---------------------------------------------------------------------------

PAM_SUCCESS = 0
PAM_AUTH_ERR = 7


@dataclass
class FakePamAuthenticator:
    """Minimal stand-in for pam.PamAuthenticator."""
    accounts: dict[str, str] = field(default_factory=dict)
    code: int = 0
    reason: str | None = None
    calls: list[tuple] = field(default_factory=list)
    passwords: list[bytes] = field(default_factory=list)
    end_calls: int = 0

    def authenticate(self, username, password, service="login", env=None,
                     call_end=True, encoding="utf-8", resetcreds=True,
                     print_failure_messages=False):
        self.calls.append((username, service))
        # python-pam encodes text itself and refuses NUL before pam_start
        username_b = username.encode(encoding) if isinstance(username, str) else username
        password_b = password.encode(encoding) if isinstance(password, str) else password
        if b"\x00" in username_b or b"\x00" in password_b:
            raise ValueError("none of username, password, or service may contain NUL")
        self.passwords.append(password_b)
        password = password_b.decode(encoding)
        if self.accounts.get(username) == password:
            self.code = PAM_SUCCESS
            self.reason = "Success"
            return True
        self.code = PAM_AUTH_ERR
        self.reason = "Authentication failure"
        return False

    def end(self):
        self.end_calls += 1
        return 0


@dataclass
class FakePamStack:
    """Records every authenticator handed out."""
    instances: list[FakePamAuthenticator] = field(default_factory=list)

    def __call__(self) -> FakePamAuthenticator:
        auth = FakePamAuthenticator(
            accounts={name: entry["password"] for name, entry in USERS.items()}
        )
        self.instances.append(auth)
        return auth


@pytest.fixture
def pam_dir(tmp_path, monkeypatch):
    """A PAM config directory providing the common-auth and my-app services."""
    config_dir = tmp_path / "pam.d"
    config_dir.mkdir()
    (config_dir / "common-auth").write_text("auth required pam_unix.so\n")
    (config_dir / "my-app").write_text("@include common-auth\n")
    monkeypatch.setattr(libpam, "PAM_CONFIG_DIRS", (str(config_dir),))
    monkeypatch.setattr(libpam, "PAM_CONF", str(tmp_path / "pam.conf"))
    return config_dir


@pytest.fixture
def fake_pam(pam_dir, monkeypatch):
    stack = FakePamStack()
    monkeypatch.setattr(libpam, "PamAuthenticator", stack)
    monkeypatch.setattr(libpam, "getpwnam", fake_getpwnam)
    monkeypatch.setattr(libpam, "getgrouplist", fake_getgrouplist)
    monkeypatch.setattr(libpam, "getgrgid", fake_getgrgid)
    return stack
