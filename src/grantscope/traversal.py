"""
Answer access questions by walking role inheritance.

A role R inherits from every role listed under R's `usage.role` grants. All
walks are breadth-first, so the shortest role chains come out first. Roles
reachable along several paths are visited once per path.

The role graph must be acyclic: with the default `max_depth=None` a cycle in
`usage.role` grants makes these functions loop forever. Pass `max_depth` to
fail with RoleGraphDepthError once a role chain holds more than `max_depth`
roles instead.
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Tuple

from grantscope.error import RoleGraphDepthError
from grantscope.logger import GLOBAL_LOGGER as logger
from grantscope.types import ObjectType, Privilege, Snapshot


@dataclass
class RoleMembership:
    name: str
    parents: List[str] = field(default_factory=list)

    @property
    def role_chain(self) -> List[str]:
        return self.parents + [self.name]


@dataclass
class ObjectAccess:
    object_type: str
    object_id: str
    role_chain: List[str]
    privilege: str


@dataclass
class UserAccess:
    username: str
    objects: List[ObjectAccess] = field(default_factory=list)


@dataclass
class UserRoles:
    username: str
    roles: List[RoleMembership] = field(default_factory=list)


@dataclass
class ObjectUser:
    username: str
    privilege: str
    role_chain: List[str]


@dataclass
class ObjectUsers:
    object_id: str
    users: List[ObjectUser] = field(default_factory=list)


def walk_roles(
    snapshot: Snapshot, seeds: List[str], max_depth: Optional[int] = None
) -> Iterator[RoleMembership]:
    """
    Yield every role reachable from `seeds`, tagged with the chain of roles
    that led to it, in breadth-first order.
    """
    role_grants = snapshot.get("roleGrants") or {}
    queue: Deque[RoleMembership] = deque(RoleMembership(name) for name in seeds)

    # TODO: settle on error, truncate or dedupe-visited semantics for cyclic
    # role graphs and make that the default instead of the opt-in depth bound.
    while queue:
        role = queue.popleft()
        if max_depth is not None and len(role.role_chain) > max_depth:
            raise RoleGraphDepthError(
                f"Role chain {' -> '.join(role.role_chain)} is longer than {max_depth}, "
                "the role graph probably contains a cycle"
            )

        inherited = role_grants.get(role.name, {}).get("usage", {}).get("role", [])
        for inherited_name in inherited:
            queue.append(RoleMembership(inherited_name, role.role_chain))

        yield role


def _object_grants(
    snapshot: Snapshot, role_name: str, include_usage: bool
) -> Iterator[Tuple[str, str, str]]:
    """Yield (privilege, object_type, object_id) for the grants held by a role."""
    role_grant = (snapshot.get("roleGrants") or {}).get(role_name, {})
    for privilege in Privilege:
        if privilege == Privilege.USAGE and not include_usage:
            continue

        for object_type, object_ids in role_grant.get(privilege.value, {}).items():
            # role inheritance edges are not object grants
            if privilege == Privilege.USAGE and object_type == ObjectType.ROLE.value:
                continue
            for object_id in object_ids:
                yield privilege.value, object_type, object_id


def _direct_roles(snapshot: Snapshot, username: str) -> List[str]:
    user_grant = (snapshot.get("userGrants") or {}).get(username) or {}
    return list(user_grant.get("roles") or [])


def resolve_user_object_access(
    snapshot: Snapshot, username: str, max_depth: Optional[int] = None
) -> UserAccess:
    """
    List every object `username` can reach, through which role chain and
    with which privilege. Usage grants are not reported.

    For example, with alice granted `analyst`, `analyst` inheriting
    `reporting` and `reporting` holding `select` on table `sales.q1`:
        resolve_user_object_access(snapshot, "alice").objects ->
            [ObjectAccess("table", "sales.q1", ["analyst", "reporting"], "select")]
    """
    access = UserAccess(username=username)
    for role in walk_roles(snapshot, _direct_roles(snapshot, username), max_depth):
        for privilege, object_type, object_id in _object_grants(
            snapshot, role.name, include_usage=False
        ):
            access.objects.append(
                ObjectAccess(
                    object_type=object_type,
                    object_id=object_id,
                    role_chain=role.role_chain,
                    privilege=privilege,
                )
            )

    logger.debug(f"Resolved {len(access.objects)} object grants for user {username}")
    return access


def resolve_user_roles(
    snapshot: Snapshot, username: str, max_depth: Optional[int] = None
) -> UserRoles:
    """List every role `username` holds, directly or through inheritance."""
    roles = list(walk_roles(snapshot, _direct_roles(snapshot, username), max_depth))
    logger.debug(f"Resolved {len(roles)} roles for user {username}")
    return UserRoles(username=username, roles=roles)


def resolve_object_users(
    snapshot: Snapshot, object_id: str, max_depth: Optional[int] = None
) -> ObjectUsers:
    """
    List the users that can reach `object_id`. Every role is used as a
    starting point, so a chain always begins with a role that users are
    granted directly.
    """
    users_by_role: Dict[str, List[str]] = {}
    for username, user_grant in (snapshot.get("userGrants") or {}).items():
        for role_name in (user_grant or {}).get("roles") or []:
            users_by_role.setdefault(role_name, []).append(username)

    result = ObjectUsers(object_id=object_id)
    seeds = list(snapshot.get("roleGrants") or {})
    for role in walk_roles(snapshot, seeds, max_depth):
        for privilege, _, granted_id in _object_grants(
            snapshot, role.name, include_usage=True
        ):
            if granted_id != object_id:
                continue

            for username in users_by_role.get(role.role_chain[0], []):
                result.users.append(
                    ObjectUser(
                        username=username,
                        privilege=privilege,
                        role_chain=role.role_chain,
                    )
                )

    return result
