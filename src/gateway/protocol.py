from __future__ import annotations

from typing import Any, Dict, List, Protocol


class ResourceGateway(Protocol):
    """Namespaced read/write access to cluster resources keyed by kind and name."""

    def get(self, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        ...

    def list(self, kind: str, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        ...

    def create(self, namespace: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def replace(self, namespace: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def patch(self, kind: str, namespace: str, name: str, ops: List[Dict[str, Any]]) -> Dict[str, Any]:
        ...

    def delete(self, kind: str, namespace: str, name: str) -> None:
        ...


__all__ = ["ResourceGateway"]
