"""
Domain errors raised by the services layer.

Each carries the HTTP status it maps to; app.main translates them into
{"detail": message} responses at the request boundary.
"""


class GatewayError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GatewayError):
    status_code = 400


class AuthError(GatewayError):
    status_code = 401


class NotFoundError(GatewayError):
    status_code = 404


class ConflictError(GatewayError):
    status_code = 409


class PreconditionError(GatewayError):
    status_code = 503
