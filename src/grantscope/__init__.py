from grantscope.error import (
    ConfigurationError,
    GrantscopeError,
    InvalidInputError,
    IssueNotFoundError,
    RoleGraphDepthError,
    SnapshotLoadingError,
    UnknownRuleError,
)

__version__ = "0.3.0"

__all__ = [
    "ConfigurationError",
    "GrantscopeError",
    "InvalidInputError",
    "IssueNotFoundError",
    "RoleGraphDepthError",
    "SnapshotLoadingError",
    "UnknownRuleError",
]
