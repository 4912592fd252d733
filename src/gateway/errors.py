from __future__ import annotations


class GatewayError(Exception):
    """Raised when the cluster store rejects or fails a request."""


class NotFoundError(GatewayError):
    """Raised when the addressed resource does not exist."""


class AlreadyExistsError(GatewayError):
    """Raised when creating a resource whose name is already taken."""


__all__ = ["AlreadyExistsError", "GatewayError", "NotFoundError"]
