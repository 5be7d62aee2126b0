import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

from grantscope.error import ConfigurationError

DEFAULT_AUTO_SUSPEND_ENV = "GRANTSCOPE_DEFAULT_AUTO_SUSPEND"
MAX_AUTO_SUSPEND_ENV = "GRANTSCOPE_MAX_AUTO_SUSPEND"
EXEMPTED_ISSUES_ENV = "GRANTSCOPE_EXEMPTED_ISSUES"
MAX_ROLE_DEPTH_ENV = "GRANTSCOPE_MAX_ROLE_DEPTH"


@dataclass(frozen=True)
class Settings:
    """
    Process wide settings, read once at start up and handed to whoever needs
    them. Rules never read the environment themselves.
    """

    default_auto_suspend: int = 600
    max_auto_suspend: int = 3600
    exempted_issues: FrozenSet[str] = field(default_factory=frozenset)
    # None keeps role traversal unbounded
    max_role_depth: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        defaults = cls()

        exempted = environ.get(EXEMPTED_ISSUES_ENV, "")
        max_role_depth = environ.get(MAX_ROLE_DEPTH_ENV)

        settings = cls(
            default_auto_suspend=_positive_int(
                environ, DEFAULT_AUTO_SUSPEND_ENV, defaults.default_auto_suspend
            ),
            max_auto_suspend=_positive_int(
                environ, MAX_AUTO_SUSPEND_ENV, defaults.max_auto_suspend
            ),
            exempted_issues=frozenset(
                issue_id.strip().lower()
                for issue_id in exempted.split(",")
                if issue_id.strip()
            ),
            max_role_depth=(
                _positive_int(environ, MAX_ROLE_DEPTH_ENV, 0)
                if max_role_depth
                else None
            ),
        )

        if settings.default_auto_suspend > settings.max_auto_suspend:
            raise ConfigurationError(
                f"{DEFAULT_AUTO_SUSPEND_ENV} ({settings.default_auto_suspend}) can not be "
                f"larger than {MAX_AUTO_SUSPEND_ENV} ({settings.max_auto_suspend})"
            )
        return settings


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw_value = environ.get(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        value = int(raw_value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw_value!r}")

    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value
