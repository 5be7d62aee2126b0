class GrantscopeError(Exception):
    """Base class for every error raised by grantscope."""


class SnapshotLoadingError(GrantscopeError):
    """Raised when a snapshot file can not be read or fails validation."""


class InvalidInputError(GrantscopeError, ValueError):
    """Raised when a caller passes data that is not shaped like a snapshot."""


class IssueNotFoundError(GrantscopeError, LookupError):
    """Raised when no current detection matches the requested issue id."""


class UnknownRuleError(GrantscopeError, LookupError):
    pass


class RoleGraphDepthError(GrantscopeError):
    """Raised when a role chain grows past the configured maximum depth."""


class ConfigurationError(GrantscopeError):
    pass
