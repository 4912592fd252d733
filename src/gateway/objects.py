"""Helpers for reading fields out of plain Kubernetes API dictionaries."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List, Optional

from .errors import GatewayError

# Resource names accepted by `kubectl get <resource>` keyed by object kind.
KIND_RESOURCES = {
    "ConfigMap": "configmap",
    "DaemonSet": "daemonset",
    "Deployment": "deployment",
    "Secret": "secret",
    "Service": "service",
    "ServiceAccount": "serviceaccount",
}


def resource_for(obj: Dict[str, Any]) -> str:
    kind = obj.get("kind")
    if kind not in KIND_RESOURCES:
        raise ValueError(f"unsupported object kind: {kind!r}")
    return KIND_RESOURCES[kind]


def object_name(obj: Dict[str, Any]) -> str:
    metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
    name = metadata.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError("object metadata.name is missing")
    return name


def annotations_of(obj: Dict[str, Any]) -> Dict[str, str]:
    metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
    annotations = metadata.get("annotations")
    return annotations if isinstance(annotations, dict) else {}


def labels_match(obj: Dict[str, Any], selector: Dict[str, str]) -> bool:
    metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
    labels = metadata.get("labels") if isinstance(metadata.get("labels"), dict) else {}
    return all(labels.get(key) == value for key, value in selector.items())


def parse_selector(selector: str) -> Dict[str, str]:
    """Parse an equality label selector (``k=v,k2=v2``) into a dict."""
    result: Dict[str, str] = {}
    for part in selector.split(","):
        part = part.strip()
        if "=" in part:
            key, value = part.split("=", 1)
            result[key.strip()] = value.strip()
    return result


def secret_value(secret: Dict[str, Any], key: str) -> str:
    """Return the decoded value of ``data[key]``, or an empty string when absent.

    Secret data may hold arbitrary bytes; anything that is not UTF-8 is decoded
    with replacement characters rather than rejected.
    """
    data = secret.get("data")
    if not isinstance(data, dict):
        return ""
    raw = data.get(key)
    if not raw:
        return ""
    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, TypeError, ValueError) as exc:
        raise GatewayError(f"secret data {key!r} is not valid base64: {exc}") from exc
    return decoded.decode("utf-8", errors="replace")


def set_secret_value(secret: Dict[str, Any], key: str, value: str) -> None:
    data = secret.get("data")
    if not isinstance(data, dict):
        data = {}
        secret["data"] = data
    data[key] = base64.b64encode(value.encode("utf-8")).decode("ascii")


def first_container_env(workload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the env list of the first container in a workload's pod template."""
    spec = workload.get("spec") if isinstance(workload.get("spec"), dict) else {}
    template = spec.get("template") if isinstance(spec.get("template"), dict) else {}
    pod_spec = template.get("spec") if isinstance(template.get("spec"), dict) else {}
    containers = pod_spec.get("containers")
    if not isinstance(containers, list) or not containers:
        return []
    env = containers[0].get("env") if isinstance(containers[0], dict) else None
    return env if isinstance(env, list) else []


def env_values(workload: Dict[str, Any], names: Dict[str, str]) -> Dict[str, str]:
    """Scan the first container's env and map the wanted variables onto field names.

    ``names`` maps environment variable names to the field they populate. Fields
    whose variable is absent are returned as empty strings.
    """
    values = {field: "" for field in names.values()}
    for entry in first_container_env(workload):
        if not isinstance(entry, dict):
            continue
        field: Optional[str] = names.get(entry.get("name"))
        if field is not None:
            values[field] = str(entry.get("value") or "")
    return values


__all__ = [
    "KIND_RESOURCES",
    "annotations_of",
    "env_values",
    "first_container_env",
    "labels_match",
    "object_name",
    "parse_selector",
    "resource_for",
    "secret_value",
    "set_secret_value",
]
