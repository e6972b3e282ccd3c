"""Domain errors raised by services and mapped to HTTP responses in main.py."""


class PortalError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):
    """Referenced shipment, conversation, payment or profile does not exist."""

    status_code = 404


class UnknownRecipientError(NotFoundError):
    """Notification addressed to a user id with no profile."""


class ValidationError(PortalError):
    status_code = 422


class AuthenticationError(PortalError):
    status_code = 401


class UnauthorizedError(PortalError):
    """Actor is known but lacks permission for the action."""

    status_code = 403


class ConflictError(PortalError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Shipment status change not allowed from the current status."""


class ExternalServiceError(PortalError):
    """Payment gateway (or another remote collaborator) failed or timed out."""

    status_code = 502
