"""Gateway package for reading and writing cluster resources."""

from .errors import AlreadyExistsError, GatewayError, NotFoundError
from .kubectl import KubectlGateway
from .memory import InMemoryGateway
from .protocol import ResourceGateway

__all__ = [
    "AlreadyExistsError",
    "GatewayError",
    "InMemoryGateway",
    "KubectlGateway",
    "NotFoundError",
    "ResourceGateway",
]
