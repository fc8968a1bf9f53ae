"""
Domain exceptions raised by the policy services.

Routers translate them into HTTP responses; rule evaluation itself never
raises.
"""

from typing import Dict


class BrokerageError(Exception):
    """Base class for service-level failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PreconditionError(BrokerageError):
    """Missing actor identity, product or rule mapping."""

    status_code = 400


class PolicyValidationError(BrokerageError):
    """Structural validation failed; carries the full field -> message map."""

    status_code = 422

    def __init__(self, errors: Dict[str, str], message: str = "La póliza contiene errores de validación."):
        super().__init__(message)
        self.errors = dict(errors)


class StoreError(BrokerageError):
    """Data-access failure; the message is surfaced verbatim."""

    status_code = 502


class TransitionError(BrokerageError):
    """Illegal policy status change."""

    status_code = 409


class PermissionDeniedError(BrokerageError):
    """Actor role may not perform the operation."""

    status_code = 403
