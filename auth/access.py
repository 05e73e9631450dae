"""
auth/access.py -- Role-based access decisions.

The policy is a closed table: for each role an operation may require, the
exact set of caller roles that satisfy it. Anything the table does not list
is denied -- an unknown required role, a role with an empty allow-list, a
caller role that is not a member. There is no hierarchy: admin does not
implicitly satisfy other requirements, and nothing satisfies ban.

  required  | allowed callers
  ----------+----------------
  (none)    | everyone authenticated
  admin     | admin
  user      | nobody
  ban       | nobody

"Any authenticated caller" is expressed by declaring no requirement, not by
requiring user. Adding a role means adding a row here; until then the new
role is denied everywhere.

Layer rule: no imports from api/. FastAPI wiring lives in auth/dependencies.py.
"""

from __future__ import annotations

from types import MappingProxyType

from auth.models import Role, User
from core.errors import NotAuthorized

ROLE_POLICY: MappingProxyType[Role, frozenset[Role]] = MappingProxyType(
    {
        Role.admin: frozenset({Role.admin}),
        Role.user: frozenset(),
        Role.ban: frozenset(),
    }
)


def is_allowed(must_role: str | Role | None, caller_role: str | Role | None) -> bool:
    """Total decision function over (required role, caller role)."""
    if not must_role:
        return True
    required = Role.from_value(must_role)
    if required is None:
        return False
    caller = Role.from_value(caller_role)
    if caller is None:
        return False
    return caller in ROLE_POLICY.get(required, frozenset())


def is_banned(user: User) -> bool:
    return user.role == Role.ban.value


def is_admin(user: User | None) -> bool:
    return user is not None and user.role == Role.admin.value


def check_access(user: User, must_role: str | Role | None = None, *, check_ban: bool = False) -> None:
    """Raise NotAuthorized unless user satisfies must_role.

    check_ban additionally denies banned callers on operations that carry no
    role requirement. The error never names the required role.
    """
    if check_ban and is_banned(user):
        raise NotAuthorized()
    if not is_allowed(must_role, user.role):
        raise NotAuthorized()
