"""
Domain errors raised by the services.

The HTTP layer maps them to a status code through ``status_code``;
services never import FastAPI.
"""


class InventoryError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(InventoryError):
    status_code = 404


class ValidationError(InventoryError):
    status_code = 400


class InvalidOperation(InventoryError):
    status_code = 400


class NoOpError(InventoryError):
    status_code = 400


class ConflictError(InventoryError):
    status_code = 409


class ConcurrentUpdateError(ConflictError):
    pass


class AuthError(InventoryError):
    status_code = 401


class ForbiddenError(InventoryError):
    status_code = 403
