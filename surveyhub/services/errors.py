from __future__ import annotations


class AppError(Exception):
    """Domain error that maps onto an HTTP status at the request boundary."""

    status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status = 400


class DuplicateVote(AppError):
    status = 400

    def __init__(self, message: str = "You have already voted for this question") -> None:
        super().__init__(message)


class NotFound(AppError):
    status = 404


class Forbidden(AppError):
    status = 403


class Unauthorized(AppError):
    status = 401


class RoleForbidden(AppError):
    status = 403
