"""Error taxonomy shared by the services and rendered by the HTTP layer."""

from typing import Optional


class ShopError(ValueError):
    """Base class for errors surfaced to the caller with a 4xx status."""

    kind = "Error"
    status_code = 400

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFoundError(ShopError):
    kind = "NotFound"
    status_code = 404


class ConflictError(ShopError):
    kind = "Conflict"
    status_code = 409


class InvalidArgumentError(ShopError):
    kind = "InvalidArgument"
    status_code = 400


class UnauthorizedError(ShopError):
    kind = "Unauthorized"
    status_code = 401
