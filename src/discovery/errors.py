from __future__ import annotations


class DiscoveryError(Exception):
    """Raised when the running installation cannot be turned into a profile."""


class InvalidStorageType(DiscoveryError):
    """Raised when the object storage annotation names an unknown backend."""

    def __init__(self, value: str) -> None:
        super().__init__(f"invalid storage type: {value!r}")
        self.value = value


class RenderError(Exception):
    """Raised when the values template cannot be rendered."""


__all__ = ["DiscoveryError", "InvalidStorageType", "RenderError"]
