"""Authentication/authorization vocabulary shared by realms.

A realm is built in two phases: construct and configure it, then call
``init()`` once. Calling ``get_authentication_info`` or
``get_authorization_info`` on a realm that was never initialized is a caller
error and raises RealmInitError.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TypeVar

T = TypeVar("T")


class AuthenticationError(Exception):
    pass


class RealmInitError(Exception):
    pass


class UsernamePasswordToken:
    """Username plus a secret held in a mutable buffer that can be wiped."""

    def __init__(self, username: str, password: str | bytes | bytearray):
        if isinstance(password, str):
            password = password.encode("utf-8")
        self.username = username
        self.password = bytearray(password)

    def clear(self) -> None:
        for i in range(len(self.password)):
            self.password[i] = 0
        self.password.clear()

    def __repr__(self) -> str:
        return f"UsernamePasswordToken(username={self.username!r})"


class PrincipalCollection:
    """Principals keyed by the name of the realm that issued them."""

    def __init__(self, principal: object = None, realm_name: str | None = None):
        self._by_realm: dict[str, list[object]] = {}
        if principal is not None:
            if not realm_name:
                raise ValueError("realm_name is required with a principal")
            self.add(principal, realm_name)

    def add(self, principal: object, realm_name: str) -> None:
        self._by_realm.setdefault(realm_name, []).append(principal)

    def from_realm(self, realm_name: str) -> list[object]:
        return list(self._by_realm.get(realm_name, ()))

    @property
    def realm_names(self) -> list[str]:
        return list(self._by_realm)

    @property
    def primary_principal(self) -> object | None:
        return next(iter(self), None)

    def one_by_type(self, principal_type: type[T]) -> T | None:
        """Return the first principal of *principal_type*, or None."""
        for principal in self:
            if isinstance(principal, principal_type):
                return principal
        return None

    def by_type(self, principal_type: type[T]) -> list[T]:
        return [p for p in self if isinstance(p, principal_type)]

    def __iter__(self) -> Iterator[object]:
        for principals in self._by_realm.values():
            yield from principals

    def __len__(self) -> int:
        return sum(len(p) for p in self._by_realm.values())

    def __bool__(self) -> bool:
        return len(self) > 0


class AuthenticationInfo:
    def __init__(self, principals: PrincipalCollection, credentials: object):
        self.principals = principals
        self.credentials = credentials

    def __repr__(self) -> str:
        return f"AuthenticationInfo(principals={list(self.principals)!r})"


class AuthorizationInfo:
    """Role names granted to a subject, deduplicated in first-seen order."""

    def __init__(self, roles: Iterable[str] = ()):
        self.roles: tuple[str, ...] = tuple(dict.fromkeys(roles))

    @property
    def role_set(self) -> frozenset[str]:
        return frozenset(self.roles)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_all_roles(self, roles: Iterable[str]) -> bool:
        return self.role_set.issuperset(roles)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthorizationInfo):
            return NotImplemented
        return self.role_set == other.role_set

    def __hash__(self) -> int:
        return hash(self.role_set)

    def __repr__(self) -> str:
        return f"AuthorizationInfo(roles={list(self.roles)!r})"


class AuthorizingRealm:
    """Base class for realms that both authenticate and authorize."""

    token_type: type = UsernamePasswordToken

    def __init__(self, name: str | None = None):
        self.name = name or type(self).__name__
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self) -> None:
        if self._initialized:
            return
        self.on_init()
        self._initialized = True

    def on_init(self) -> None:
        """Lifecycle hook run once by init(); subclasses may raise RealmInitError."""

    def supports(self, token: object) -> bool:
        return isinstance(token, self.token_type)

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise RealmInitError(f"realm '{self.name}' used before init()")

    def get_authentication_info(self, token: object) -> AuthenticationInfo:
        self._check_initialized()
        if not self.supports(token):
            raise AuthenticationError(
                f"realm '{self.name}' does not support {type(token).__name__}"
            )
        return self.do_get_authentication_info(token)

    def get_authorization_info(self, principals: PrincipalCollection) -> AuthorizationInfo:
        self._check_initialized()
        return self.do_get_authorization_info(principals)

    def do_get_authentication_info(self, token) -> AuthenticationInfo:
        raise NotImplementedError

    def do_get_authorization_info(self, principals: PrincipalCollection) -> AuthorizationInfo:
        raise NotImplementedError
