class SchedulerError(Exception):
    """Base class for every rejected timetable operation."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulerError):
    """Bad input: empty required field, non-positive duration, bad time."""


class ConflictError(SchedulerError):
    """A placement clashes with the grid. Carries the ConflictReason."""
    status_code = 409

    def __init__(self, reason, message=None):
        super().__init__(message or reason.message)
        self.reason = reason


class ConsistencyError(SchedulerError):
    """Operation would break a registry invariant (duplicate or in-use room, unknown tile)."""
