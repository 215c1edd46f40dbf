"""
Error taxonomy shared by the services, jobs and routes.
"""


class LiqaError(Exception):
    """Base class for application errors."""


class NotFoundError(LiqaError):
    """Requested user/meeting/registration does not exist."""

    def __init__(self, entity: str, entity_id: int | str | None = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class StorageError(LiqaError):
    """Any persistence failure."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class DeliveryError(LiqaError):
    """A push message could not be delivered to one subscriber."""


class EmailError(LiqaError):
    """An email could not be sent to one recipient."""

    def __init__(self, message: str, recipient: str | None = None):
        super().__init__(message)
        self.recipient = recipient
