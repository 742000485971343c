class ServiceError(ValueError):
    """Base class for failures the API reports to the caller."""

    status_code = 400


class InvalidInput(ServiceError):
    status_code = 400


class Unauthenticated(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409
