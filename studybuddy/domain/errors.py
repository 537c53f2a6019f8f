from __future__ import annotations


class StudyBuddyError(Exception):
    """Base class for every error raised by the tracker core."""


class InvalidTask(StudyBuddyError, ValueError):
    """A task draft or update failed validation."""


class NotFound(StudyBuddyError, KeyError):
    """An operation referenced an unknown task, subtask or template."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class InvalidAmount(StudyBuddyError, ValueError):
    """A negative XP amount was passed to the progress engine."""


class PersistenceCorrupt(StudyBuddyError):
    """A persisted snapshot could not be decoded."""


class UnsupportedEnvironment(StudyBuddyError):
    """An optional host capability is not available."""
