"""Exceptions raised by the session workspace engine."""


class SessionExplorerError(Exception):
    """Base class for session-explorer errors."""


class SessionParseError(SessionExplorerError):
    """A session file contains a line that is not valid JSON."""


class MutationError(SessionExplorerError):
    """Reading, writing or renaming a session file failed."""


class BackupError(MutationError):
    """The pre-mutation backup copy could not be created."""


class ValidationError(SessionExplorerError):
    """An action was rejected before touching the file store."""


class EmptyTargetError(ValidationError):
    """The target project path is blank."""


class DeleteNotConfirmedError(ValidationError):
    """A delete was requested without the exact confirmation token."""
