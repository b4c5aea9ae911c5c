"""Realm that authenticates against the host's PAM stack.

Credentials are verified by PAM for a configured service (the name of a
policy under /etc/pam.d). Roles are the authenticated user's Unix group
names. There is no default service; it must be set before init().

Example .ini declaration::

    [main]
    pamRealm = pam_realm.realm.PamRealm
    pamRealm.service = my-app
"""

from __future__ import annotations

from .config import PamRealmConfig
from .framework import (
    AuthenticationError,
    AuthenticationInfo,
    AuthorizationInfo,
    AuthorizingRealm,
    PrincipalCollection,
    RealmInitError,
    UsernamePasswordToken,
)
from .libpam import PAM, PAMError, UnixUser
from .logging import log_debug, log_error, log_info


class UnixUserPrincipal:
    """Identity retained by the caller after a successful PAM login."""

    __slots__ = ("_unix_user",)

    def __init__(self, unix_user: UnixUser):
        self._unix_user = unix_user

    @property
    def unix_user(self) -> UnixUser:
        return self._unix_user

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnixUserPrincipal):
            return NotImplemented
        return self._unix_user == other._unix_user

    def __hash__(self) -> int:
        return hash(self._unix_user)

    def __str__(self) -> str:
        return f"{self._unix_user.username}:{self._unix_user.uid}"

    def __repr__(self) -> str:
        return f"UnixUserPrincipal({self})"


class PamRealm(AuthorizingRealm):
    """Realm whose credentials and roles come from PAM and the Unix user database."""

    def __init__(self, service: str | None = None, name: str | None = None):
        super().__init__(name)
        self.service = service

    @classmethod
    def from_config(cls, config: PamRealmConfig) -> PamRealm:
        return cls(service=config.service, name=config.name)

    def set_service(self, service: str) -> None:
        self.service = service

    def get_pam(self) -> PAM:
        return PAM(self.service)

    def on_init(self) -> None:
        # Open and release a handle to prove the service is usable.
        try:
            with self.get_pam():
                pass
        except PAMError as exc:
            log_error(f"realm '{self.name}' cannot use PAM service '{self.service}': {exc}")
            raise RealmInitError(
                f"PAM service '{self.service}' is not usable: {exc}"
            ) from exc
        log_info(f"realm '{self.name}' initialized with PAM service '{self.service}'")

    def do_get_authentication_info(self, token: UsernamePasswordToken) -> AuthenticationInfo:
        username = token.username
        try:
            with self.get_pam() as pam:
                # python-pam needs immutable bytes; token.clear() cannot wipe this copy
                user = pam.authenticate(username, bytes(token.password))
        except PAMError as exc:
            log_error(f"authentication failed for user '{username}': {exc}")
            raise AuthenticationError(
                f"PAM authentication failed for user '{username}'"
            ) from exc

        log_info(f"authentication succeeded for user '{user.username}'")
        principals = PrincipalCollection(UnixUserPrincipal(user), self.name)
        return AuthenticationInfo(principals, token.password)

    def do_get_authorization_info(self, principals: PrincipalCollection) -> AuthorizationInfo:
        principal = principals.one_by_type(UnixUserPrincipal)
        if principal is None:
            log_debug(f"realm '{self.name}': no Unix user principal, granting no roles")
            return AuthorizationInfo()
        return AuthorizationInfo(principal.unix_user.groups)
