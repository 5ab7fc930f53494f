"""
Application error types.

Stores and services raise these; the handlers registered in app.main turn
them into JSON responses of the form {"message": ...}. Only `message` is
ever shown to the client, `detail` stays in the server log.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class DuplicateError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class ExternalServiceError(AppError):
    status_code = 500
    default_message = "External service request failed"
