from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Iterable, List, Tuple

import yaml

from src.common.naming import HERITAGE_SELECTOR, chart_name_for
from src.gateway import NotFoundError, ResourceGateway

logger = logging.getLogger(__name__)

# The logger's redis service is labelled `heritage: helm` and has to be fetched by name.
EXTRA_SERVICES: Tuple[str, ...] = ("deis-logger-redis",)


def _strip_common(obj: Dict[str, Any]) -> None:
    metadata = obj.setdefault("metadata", {})
    metadata.pop("resourceVersion", None)
    metadata.pop("managedFields", None)


def _strip_service_account(obj: Dict[str, Any]) -> None:
    obj.pop("secrets", None)


def _strip_service(obj: Dict[str, Any]) -> None:
    spec = obj.get("spec")
    if isinstance(spec, dict):
        spec.pop("clusterIP", None)
        spec.pop("clusterIPs", None)


def _strip_deployment(obj: Dict[str, Any]) -> None:
    obj.get("metadata", {}).pop("annotations", None)


def _keep(obj: Dict[str, Any]) -> None:
    return None


# (resource, kind, default apiVersion, template suffix, extra stripping)
SECTIONS: Tuple[Tuple[str, str, str, str, Callable[[Dict[str, Any]], None]], ...] = (
    ("serviceaccount", "ServiceAccount", "v1", "service-account", _strip_service_account),
    ("secret", "Secret", "v1", "secret", _keep),
    ("service", "Service", "v1", "service", _strip_service),
    ("deployment", "Deployment", "apps/v1", "deployment", _strip_deployment),
    ("daemonset", "DaemonSet", "apps/v1", "daemonset", _keep),
)


def source_path(name: str, suffix: str) -> str:
    chart = chart_name_for(name)
    return f"workflow/charts/{chart}/templates/{chart}-{suffix}.yaml"


def render_document(
    obj: Dict[str, Any],
    kind: str,
    api_version: str,
    suffix: str,
    strip: Callable[[Dict[str, Any]], None],
) -> str:
    doc = copy.deepcopy(obj)
    doc["kind"] = kind
    doc.setdefault("apiVersion", api_version)
    _strip_common(doc)
    strip(doc)
    name = doc["metadata"].get("name", "")
    header = f"\n---\n# Source: {source_path(name, suffix)}\n"
    return header + yaml.safe_dump(doc, sort_keys=False)


def build_manifest(
    gateway: ResourceGateway,
    namespace: str,
    skip_secrets: Iterable[str] = (),
    label_selector: str = HERITAGE_SELECTOR,
) -> str:
    """Serialize the live resources of the installation into one manifest text.

    Secrets listed in ``skip_secrets`` are left out: they are install hooks and
    must not be part of the release manifest.
    """
    skipped = set(skip_secrets)
    parts: List[str] = []
    for resource, kind, api_version, suffix, strip in SECTIONS:
        items = gateway.list(resource, namespace, label_selector)
        if resource == "secret":
            items = [item for item in items if item.get("metadata", {}).get("name") not in skipped]
        if resource == "service":
            listed = {item.get("metadata", {}).get("name") for item in items}
            for name in EXTRA_SERVICES:
                if name in listed:
                    continue
                try:
                    items.append(gateway.get("service", namespace, name))
                except NotFoundError:
                    logger.info("service %s not found; leaving it out of the manifest", name)
        logger.info("manifest: %d %s object(s)", len(items), kind)
        parts.extend(render_document(item, kind, api_version, suffix, strip) for item in items)
    return "".join(parts)


__all__ = ["EXTRA_SERVICES", "SECTIONS", "build_manifest", "render_document", "source_path"]
