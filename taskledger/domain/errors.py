"""Error kinds raised by the task and user operations."""


class TaskLedgerError(Exception):
    """Base exception for every rejected operation."""
    pass


class InvalidTransitionError(TaskLedgerError):
    """Operation is not legal from the task's current status."""
    pass


class PermissionDeniedError(TaskLedgerError):
    """Role or ownership check failed."""
    pass


class DuplicateEmailError(TaskLedgerError):
    """Another user already holds this email (case-insensitive)."""
    pass


class NotFoundError(TaskLedgerError):
    """Requested task or user does not exist."""
    pass


class LastAdminError(TaskLedgerError):
    """Operation would leave the directory without an active administrator."""
    pass


class SelfDeactivationError(TaskLedgerError):
    """A user tried to deactivate their own account."""
    pass


class InvalidArgumentError(TaskLedgerError):
    """Input failed validation before any state change."""
    pass


class DeactivatedUserError(TaskLedgerError):
    """Login attempted for a deactivated account."""
    pass


class ConcurrentUpdateError(TaskLedgerError):
    """Stored record changed after it was read; reload and retry."""
    pass
