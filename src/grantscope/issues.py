"""
Policy rules that scan a snapshot for governance problems and fix them.

Every detected issue is identified by a hash of its `data` payload, so the
same problem found in two separate runs has the same id. Issues are never
stored, they are recomputed from the snapshot on every call.
"""
import copy
import hashlib
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from grantscope.config import Settings
from grantscope.diff import SnapshotDiff, diff_snapshots
from grantscope.error import IssueNotFoundError, UnknownRuleError
from grantscope.identifiers import parent_database, parent_schema
from grantscope.logger import GLOBAL_LOGGER as logger
from grantscope.sql import SqlCommand, sql_commands_from_diff
from grantscope.types import ObjectType, Privilege, Snapshot

ISSUE_ID_LENGTH = 12
ACCOUNTADMIN = "accountadmin"


class IssueStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"
    EXEMPTED = "exempted"


@dataclass
class Issue:
    id: str
    rule_id: str
    name: str
    category: str
    data: Dict[str, Any]
    status: IssueStatus = IssueStatus.OPEN


@dataclass
class IssueDetail:
    issue: Issue
    diff: SnapshotDiff
    sql_commands: List[SqlCommand] = field(default_factory=list)


@dataclass
class FixResult:
    snapshot: Snapshot
    issue: Issue


def issue_id(data: Dict[str, Any]) -> str:
    """
    Content hash of an issue payload. The payload is encoded as JSON with
    sorted keys and no whitespace, so key order never changes the id.
    """
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:ISSUE_ID_LENGTH]


class Rule:
    """
    Base class for policy rules.

    `find_issues` must only look at the snapshot it is given. `fix_snapshot`
    takes ownership of its snapshot argument: it may change it in place and
    returns it.
    """

    rule_id = ""
    name = ""
    category = ""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def new_issue(self, data: Dict[str, Any]) -> Issue:
        return Issue(
            id=issue_id(data),
            rule_id=self.rule_id,
            name=self.name,
            category=self.category,
            data=data,
        )

    def find_issues(self, snapshot: Snapshot) -> List[Issue]:
        raise NotImplementedError

    def fix_snapshot(self, snapshot: Snapshot, data: Dict[str, Any]) -> Snapshot:
        raise NotImplementedError


def _role_grants(snapshot: Snapshot) -> Dict[str, Any]:
    return snapshot.get("roleGrants") or {}


def _scoped_grants(role_grant: Dict[str, Any]) -> Iterator[Tuple[str, str, str]]:
    """
    Yield (privilege, object_type, object_id) for grants on objects that live
    inside a database. Usage on roles, databases and warehouses is skipped.
    """
    for privilege in Privilege:
        for object_type, object_ids in (role_grant.get(privilege.value) or {}).items():
            if privilege == Privilege.USAGE and object_type in (
                ObjectType.ROLE.value,
                ObjectType.DATABASE.value,
                ObjectType.WAREHOUSE.value,
            ):
                continue
            for object_id in object_ids:
                if "." in object_id:
                    yield privilege.value, object_type, object_id


def _add_usage_grant(
    snapshot: Snapshot, role: str, object_type: str, object_id: str
) -> Snapshot:
    role_grant = snapshot.setdefault("roleGrants", {}).setdefault(role, {})
    granted = role_grant.setdefault(Privilege.USAGE.value, {}).setdefault(object_type, [])
    if object_id not in granted:
        granted.append(object_id)
        granted.sort()
    return snapshot


class MissingDatabaseUsageRule(Rule):
    """A role that can read objects in a database also needs usage on that database."""

    rule_id = "SR1001"
    name = "Role is missing usage permissions on a required database."
    category = "bugs"

    def find_issues(self, snapshot: Snapshot) -> List[Issue]:
        issues = []
        for role_name, role_grant in _role_grants(snapshot).items():
            usage = role_grant.get(Privilege.USAGE.value) or {}
            granted_databases = set(usage.get(ObjectType.DATABASE.value) or [])

            required_databases = {
                parent_database(object_id)
                for _, _, object_id in _scoped_grants(role_grant)
            }
            for database in sorted(required_databases - granted_databases):
                issues.append(
                    self.new_issue(
                        {
                            "role": role_name,
                            "privilege": Privilege.USAGE.value,
                            "database": database,
                        }
                    )
                )
        return issues

    def fix_snapshot(self, snapshot: Snapshot, data: Dict[str, Any]) -> Snapshot:
        return _add_usage_grant(
            snapshot, data["role"], ObjectType.DATABASE.value, data["database"]
        )


class MissingSchemaUsageRule(Rule):
    """
    A role that can read objects in a schema also needs usage on that schema.
    Only reported once the role has usage on the parent database, a missing
    database grant is reported by SR1001 first.
    """

    rule_id = "SR1002"
    name = "Role is missing usage permissions on a required schema."
    category = "bugs"

    def find_issues(self, snapshot: Snapshot) -> List[Issue]:
        issues = []
        for role_name, role_grant in _role_grants(snapshot).items():
            usage = role_grant.get(Privilege.USAGE.value) or {}
            granted_databases = set(usage.get(ObjectType.DATABASE.value) or [])
            granted_schemas = set(usage.get(ObjectType.SCHEMA.value) or [])

            required_schemas = set()
            for privilege, object_type, object_id in _scoped_grants(role_grant):
                if privilege == Privilege.USAGE.value:
                    continue
                schema = parent_schema(object_id)
                if schema is not None:
                    required_schemas.add(schema)

            for schema in sorted(required_schemas):
                database = parent_database(schema)
                if database not in granted_databases:
                    continue
                if schema in granted_schemas or f"{database}.*" in granted_schemas:
                    continue
                issues.append(
                    self.new_issue(
                        {
                            "role": role_name,
                            "privilege": Privilege.USAGE.value,
                            "schema": schema,
                        }
                    )
                )
        return issues

    def fix_snapshot(self, snapshot: Snapshot, data: Dict[str, Any]) -> Snapshot:
        return _add_usage_grant(
            snapshot, data["role"], ObjectType.SCHEMA.value, data["schema"]
        )


class RoleGrantedAccountadminRule(Rule):
    rule_id = "SR1014"
    name = "Role is granted ACCOUNTADMIN."
    category = "risks"

    def find_issues(self, snapshot: Snapshot) -> List[Issue]:
        issues = []
        for role_name, role_grant in _role_grants(snapshot).items():
            usage = role_grant.get(Privilege.USAGE.value) or {}
            if ACCOUNTADMIN in (usage.get(ObjectType.ROLE.value) or []):
                issues.append(
                    self.new_issue({"role": role_name, "grantedRole": ACCOUNTADMIN})
                )
        return issues

    def fix_snapshot(self, snapshot: Snapshot, data: Dict[str, Any]) -> Snapshot:
        role_grant = _role_grants(snapshot).get(data["role"])
        if not role_grant:
            return snapshot

        usage = role_grant.get(Privilege.USAGE.value) or {}
        inherited = usage.get(ObjectType.ROLE.value) or []
        inherited = [role for role in inherited if role != data["grantedRole"]]

        # Drop containers emptied by the fix, an absent key means no grant
        if inherited:
            usage[ObjectType.ROLE.value] = inherited
        else:
            usage.pop(ObjectType.ROLE.value, None)
        if not usage:
            role_grant.pop(Privilege.USAGE.value, None)
        return snapshot


class UserGrantedAccountadminRule(Rule):
    rule_id = "SR1015"
    name = "User is granted ACCOUNTADMIN."
    category = "risks"

    def find_issues(self, snapshot: Snapshot) -> List[Issue]:
        issues = []
        for username, user_grant in (snapshot.get("userGrants") or {}).items():
            if ACCOUNTADMIN in ((user_grant or {}).get("roles") or []):
                issues.append(
                    self.new_issue({"user": username, "grantedRole": ACCOUNTADMIN})
                )
        return issues

    def fix_snapshot(self, snapshot: Snapshot, data: Dict[str, Any]) -> Snapshot:
        user_grant = (snapshot.get("userGrants") or {}).get(data["user"])
        if user_grant:
            user_grant["roles"] = [
                role for role in user_grant.get("roles") or [] if role != data["grantedRole"]
            ]
        return snapshot


class WarehouseAutoSuspendRule(Rule):
    """Base for the rules that recommend a new auto-suspend value for a warehouse."""

    def recommended_auto_suspend(self, auto_suspend: Optional[int]) -> Optional[int]:
        raise NotImplementedError

    def find_issues(self, snapshot: Snapshot) -> List[Issue]:
        issues = []
        for warehouse_name, warehouse in (snapshot.get("warehouses") or {}).items():
            current = (warehouse or {}).get("auto_suspend")
            recommended = self.recommended_auto_suspend(current)
            if recommended is None:
                continue
            issues.append(
                self.new_issue(
                    {
                        "warehouse": warehouse_name,
                        "currentAutoSuspend": current,
                        "recommendedAutoSuspend": recommended,
                    }
                )
            )
        return issues

    def fix_snapshot(self, snapshot: Snapshot, data: Dict[str, Any]) -> Snapshot:
        warehouse = (snapshot.get("warehouses") or {}).get(data["warehouse"])
        if warehouse is not None:
            warehouse["auto_suspend"] = data["recommendedAutoSuspend"]
        return snapshot


class AutoSuspendDisabledRule(WarehouseAutoSuspendRule):
    rule_id = "SR1025"
    name = "Warehouse does not have auto-suspend enabled."
    category = "cost"

    def recommended_auto_suspend(self, auto_suspend: Optional[int]) -> Optional[int]:
        if auto_suspend:
            return None
        return self.settings.default_auto_suspend


class AutoSuspendTooLongRule(WarehouseAutoSuspendRule):
    rule_id = "SR1026"
    name = "Warehouse costs could be reduced by setting a lower auto-suspend time limit."
    category = "cost"

    def recommended_auto_suspend(self, auto_suspend: Optional[int]) -> Optional[int]:
        if not auto_suspend or auto_suspend <= self.settings.max_auto_suspend:
            return None
        return self.settings.max_auto_suspend


DEFAULT_RULES = [
    MissingDatabaseUsageRule,
    MissingSchemaUsageRule,
    RoleGrantedAccountadminRule,
    UserGrantedAccountadminRule,
    AutoSuspendDisabledRule,
    AutoSuspendTooLongRule,
]


class RuleRegistry:
    """
    Holds the rules a process checks snapshots against. Build one at start up
    (see `build_default_registry`) and pass it to whoever needs it.
    """

    def __init__(
        self,
        rules: Iterable[Rule] = (),
        exempted_issues: FrozenSet[str] = frozenset(),
    ):
        self._rules: Dict[str, Rule] = {}
        self.exempted_issues = frozenset(exempted_issues)
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        if rule.rule_id in self._rules:
            raise ValueError(f"Rule {rule.rule_id} is already registered")
        self._rules[rule.rule_id] = rule

    def get(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise UnknownRuleError(f"No rule registered with id {rule_id}")

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules.values())

    def find_all_issues(self, snapshot: Snapshot) -> List[Issue]:
        """
        Run every rule against `snapshot`. Issues are sorted by id, highest
        first, so the output order is reproducible.
        """
        issues = []
        for rule in self._rules.values():
            found = rule.find_issues(snapshot)
            logger.debug(f"Rule {rule.rule_id} found {len(found)} issues")
            issues.extend(found)

        for index, issue in enumerate(issues):
            if issue.id in self.exempted_issues:
                issues[index] = replace(issue, status=IssueStatus.EXEMPTED)

        issues.sort(key=lambda issue: issue.id, reverse=True)
        return issues

    def find_issue(self, snapshot: Snapshot, issue_id: str) -> Issue:
        for issue in self.find_all_issues(snapshot):
            if issue.id == issue_id:
                return issue
        raise IssueNotFoundError(f"Issue {issue_id} not found")

    def get_issue_detail(self, snapshot: Snapshot, issue_id: str) -> IssueDetail:
        """
        Describe an issue together with the change its fix would make. The fix
        is applied to a copy, `snapshot` is left untouched.
        """
        issue = self.find_issue(snapshot, issue_id)
        fixed = self.get(issue.rule_id).fix_snapshot(
            copy.deepcopy(snapshot), copy.deepcopy(issue.data)
        )
        preview = diff_snapshots(snapshot, fixed)
        return IssueDetail(
            issue=issue, diff=preview, sql_commands=sql_commands_from_diff(preview)
        )

    def apply_fix(self, snapshot: Snapshot, issue_id: str) -> Snapshot:
        """Return a copy of `snapshot` with the fix for `issue_id` applied."""
        return self.fix_issue(snapshot, issue_id).snapshot

    def fix_issue(self, snapshot: Snapshot, issue_id: str) -> FixResult:
        """
        Apply the fix for `issue_id` to a copy of `snapshot`. The returned issue
        is marked resolved when the fixed snapshot no longer reports it.
        """
        issue = self.find_issue(snapshot, issue_id)
        rule = self.get(issue.rule_id)
        fixed = rule.fix_snapshot(copy.deepcopy(snapshot), copy.deepcopy(issue.data))

        if any(found.id == issue.id for found in rule.find_issues(fixed)):
            logger.warning(f"Fix for issue {issue_id} did not resolve it")
        else:
            issue = replace(issue, status=IssueStatus.RESOLVED)
            logger.info(f"Applied fix for {issue.rule_id} issue {issue_id}")

        return FixResult(snapshot=fixed, issue=issue)


def build_default_registry(settings: Optional[Settings] = None) -> RuleRegistry:
    settings = settings or Settings()
    return RuleRegistry(
        rules=[rule_class(settings) for rule_class in DEFAULT_RULES],
        exempted_issues=settings.exempted_issues,
    )
