"""Exceptions raised by the schedule engine."""


class ScheduleError(ValueError):
    """Base class for every error the engine reports."""


class InvalidInputError(ScheduleError):
    """The loan definition or one of its events is not usable.

    Raised before any period is computed.
    """


class InvalidScheduleError(ScheduleError):
    """The loan never reaches a zero balance within the period cap."""

    def __init__(self, message: str, max_periods: int, balance=None) -> None:
        super().__init__(message)
        self.max_periods = max_periods
        self.balance = balance
