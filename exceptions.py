# ============================================================================
# EXCEPTIONS
# ============================================================================
# STATUS: Shared - used by every layer
# PURPOSE: Exception hierarchy separating contract violations from load failures
# EXPORTS: ContractViolationError, BusinessLogicError, DatabaseError,
#          InsertionConstraintError, UniqueKeyDbError, ForeignKeyDbError,
#          GeometryInsertionError, StorageError, ArchiveError, ServiceBusError,
#          UnsupportedDataTypeError, AuthorizationError, ConfigurationError
# DEPENDENCIES: None (standard library only)
# ============================================================================

"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues that end one load)

Every BusinessLogicError raised during a load turns into exactly one failure
report on the response topic. Entry-local problems (a malformed geojson
inside the archive) never raise; they are logged and skipped.
"""

from typing import Optional


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Inserter called with a non-positive batch size
        - Loader table missing a DataType member
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime failures.

    Subclasses represent specific categories of load failures.
    """
    pass


class DatabaseError(BusinessLogicError):
    """
    Database operation failures.

    Examples:
        - Connection lost
        - Statement timeout exceeded
        - Transaction rollback
    """
    pass


class InsertionConstraintError(DatabaseError):
    """
    Constraint violation while writing rows.

    Kept separate from DatabaseError so callers can tell bad data apart
    from an unhealthy database.
    """

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


class UniqueKeyDbError(InsertionConstraintError):
    """Unique / primary key violation (SQLSTATE 23505)."""
    pass


class ForeignKeyDbError(InsertionConstraintError):
    """Foreign key violation (SQLSTATE 23503)."""
    pass


class GeometryInsertionError(DatabaseError):
    """
    Writing one geometry kind failed.

    Raised by the batch inserter; the underlying database error is chained
    as __cause__ and the failing kind is kept on the instance.
    """

    def __init__(self, kind, message: str, chunk_index: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.chunk_index = chunk_index


class StorageError(BusinessLogicError):
    """
    Object storage failures.

    Examples:
        - Blob not found
        - Storage account unreachable
        - Stream truncated mid-download
    """
    pass


class ArchiveError(StorageError):
    """The downloaded bytes are not a readable zip archive."""
    pass


class ServiceBusError(BusinessLogicError):
    """
    Service Bus communication failures.

    Examples:
        - Topic not found
        - Authentication failure
        - Network timeout
    """
    pass


class UnsupportedDataTypeError(BusinessLogicError):
    """data_type is outside the closed set or has no loader yet."""
    pass


class AuthorizationError(BusinessLogicError):
    """The requesting user lacks every role allowed for the data type."""
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    These are fatal and indicate misconfiguration that prevents the
    worker from starting.

    Examples:
        - Missing POSTGRES_HOST
        - No Service Bus connection string
    """
    pass
