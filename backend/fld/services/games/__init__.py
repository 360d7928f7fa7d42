"""Game domain services: rounds, scoring, setup, state sync and timers.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics.
"""


class GameError(Exception):
    """A rejected game action; routes turn it into a JSON error response."""

    status = 400

    def __init__(self, message, status=None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ConfigError(GameError):
    status = 400


class RoundError(GameError):
    status = 409


class SubmissionError(GameError):
    status = 400
