"""Domain errors raised by the workflow and store layers.

Routers do not catch these; ``main.py`` registers a handler that turns them
into ``{"detail": ...}`` responses with the class' ``status_code``.
"""


class DashboardError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DashboardError):
    """Malformed input to a workflow operation. Nothing was mutated."""

    status_code = 400


class InvalidStateTransition(DashboardError):
    """Action attempted on an appointment that is no longer scheduled."""

    status_code = 409


class NotFoundError(DashboardError):
    status_code = 404


class ExternalServiceError(DashboardError):
    """A store or geocoder call failed. The message shown to clients is generic."""

    status_code = 502
    public_message = "Upstream service failed, please try again."
