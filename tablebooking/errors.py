class ReservationError(Exception):
    """Base for errors reported back to the caller as-is."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    status_code = 400


class NotFoundError(ReservationError):
    status_code = 404


class ConflictError(ReservationError):
    status_code = 400


class AuthorizationError(ReservationError):
    status_code = 403
