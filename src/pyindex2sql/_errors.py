"""Exception hierarchy for index-backed query generation."""


class IndexScopeError(Exception):
    """Base exception for index analysis and query-constructor errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging (CWE-209 prevention).
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class UnsupportedBackendError(IndexScopeError):
    """Raised when the connection is not a PostgreSQL connection."""


ConnectionKindError = UnsupportedBackendError


class IntrospectionError(IndexScopeError):
    """Raised when reading the system catalog fails."""


class InvalidArgumentsError(IndexScopeError):
    """Raised when a query constructor is called with the wrong arity or argument types."""


class MissingArgumentError(IndexScopeError):
    """Raised when a composite query constructor is missing required keys."""

    def __init__(
        self,
        missing: list[str],
        scope_name: str = "",
    ) -> None:
        joined = ", ".join(missing)
        details = f"missing required arguments: {joined}"
        if scope_name:
            details = f"{scope_name}: {details}"
        super().__init__(f"missing required arguments: {joined}", details)
        self.missing = list(missing)
        self.scope_name = scope_name


class InvalidIdentifierError(IndexScopeError):
    """Raised when a table or schema name cannot be used as an identifier."""


# Sanitized user-facing error message constants
ERR_MSG_UNSUPPORTED_BACKEND = "a PostgreSQL connection is required"
ERR_MSG_CATALOG_READ_FAILED = "failed to read index catalog"
ERR_MSG_TABLE_NOT_FOUND = "table not found"
ERR_MSG_INVALID_ARGUMENTS = "invalid query constructor arguments"
