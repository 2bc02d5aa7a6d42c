"""Exception types raised by the scheduling engine and its collaborators."""


class BlockPlannerError(Exception):
    """Base class for all blockplanner errors."""


class ConfigError(BlockPlannerError, ValueError):
    """Raised when rules, tasks or events input is structurally invalid."""


class CollaboratorError(BlockPlannerError):
    """Raised when an external collaborator (task store, calendar, rules store) fails."""


class UploadError(CollaboratorError):
    """Raised by an event sink when a single event cannot be created."""


class SchedulingError(BlockPlannerError):
    """Raised when a scheduling run aborts.

    Attributes:
        user_id: The user the run was for.
    """

    def __init__(self, message: str, user_id: str = ""):
        super().__init__(message)
        self.user_id = user_id
