"""Service-layer exceptions shared by the admin and declaration-type services."""


class ServiceError(Exception):
    """Base class; ``status`` is the HTTP status the API layer maps it to."""

    status = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(ServiceError):
    """Request payload failed validation."""
    status = 400


class NotFoundError(ServiceError):
    """Local record does not exist."""
    status = 404


class ConflictError(ServiceError):
    """Unique constraint would be violated."""
    status = 409


class SyncError(ServiceError):
    """Mirroring a Keycloak user into the local table failed."""
    status = 500
