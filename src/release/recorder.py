from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from src.common.naming import TILLER_NAMESPACE
from src.gateway import AlreadyExistsError, ResourceGateway

from .codec import ReleaseCodecError, decode_release, encode_release
from .descriptor import ReleaseDescriptor

OWNER = "TILLER"
PAYLOAD_KEY = "release"

logger = logging.getLogger(__name__)


class ReleaseExistsError(AlreadyExistsError):
    """Raised when a release record is already stored under the requested key."""


def release_key(name: str, version: int) -> str:
    return f"{name}.v{version}"


def release_labels(descriptor: ReleaseDescriptor, created_at: Optional[float] = None) -> Dict[str, str]:
    """Index labels Tiller uses to look up stored releases."""
    created = int(created_at if created_at is not None else time.time())
    return {
        "CREATED_AT": str(created),
        "NAME": descriptor.name,
        "OWNER": OWNER,
        "STATUS": descriptor.status.name,
        "VERSION": str(descriptor.version),
    }


def release_config_map(key: str, descriptor: ReleaseDescriptor, created_at: Optional[float] = None) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": key, "labels": release_labels(descriptor, created_at)},
        "data": {PAYLOAD_KEY: encode_release(descriptor)},
    }


def record(
    gateway: ResourceGateway,
    key: str,
    descriptor: ReleaseDescriptor,
    namespace: str = TILLER_NAMESPACE,
    created_at: Optional[float] = None,
) -> Dict[str, Any]:
    """Store the release under ``key``; an existing record is never overwritten."""
    config_map = release_config_map(key, descriptor, created_at)
    try:
        gateway.create(namespace, config_map)
    except AlreadyExistsError as exc:
        raise ReleaseExistsError(f"release {key} already exists in {namespace}") from exc
    logger.info("stored release %s in %s", key, namespace)
    return config_map


def load(gateway: ResourceGateway, key: str, namespace: str = TILLER_NAMESPACE) -> ReleaseDescriptor:
    config_map = gateway.get("configmap", namespace, key)
    data = config_map.get("data") if isinstance(config_map.get("data"), dict) else {}
    payload = data.get(PAYLOAD_KEY)
    if not isinstance(payload, str):
        raise ReleaseCodecError(f"configmap {key} has no {PAYLOAD_KEY} field")
    return decode_release(payload)


__all__ = [
    "OWNER",
    "PAYLOAD_KEY",
    "ReleaseExistsError",
    "load",
    "record",
    "release_config_map",
    "release_key",
    "release_labels",
]
