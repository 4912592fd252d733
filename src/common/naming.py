"""Shared names and conventions of a Workflow installation."""

from __future__ import annotations

from typing import Tuple

WORKFLOW_NAMESPACE = "deis"
TILLER_NAMESPACE = "kube-system"
HERITAGE_SELECTOR = "heritage=deis"

CHART_NAME = "workflow"
DEFAULT_WORKFLOW_VERSION = "v2.7.0"
DEFAULT_RELEASE_NAME = "deis-workflow"

ON_CLUSTER = "on-cluster"
OFF_CLUSTER = "off-cluster"

# Helm only creates pre-install hook resources on install, so `helm upgrade`
# leaves secrets carrying this annotation untouched.
HOOK_ANNOTATION = "helm.sh/hook"
HOOK_VALUE = "pre-install"

PROTECTED_SECRETS: Tuple[str, ...] = (
    "builder-key-auth",
    "builder-ssh-private-keys",
    "database-creds",
    "django-secret-key",
    "logger-redis-creds",
)

# Deployments whose selectors changed between chart generations and cannot be
# patched in place by the new release.
STALE_DEPLOYMENTS: Tuple[str, ...] = ("deis-builder", "deis-controller", "deis-registry")


def chart_name_for(resource_name: str) -> str:
    """Return the sub-chart a resource belongs to (``deis-router`` -> ``router``)."""
    parts = resource_name.split("-", 1)
    return parts[1] if len(parts) == 2 and parts[1] else resource_name


__all__ = [
    "CHART_NAME",
    "DEFAULT_RELEASE_NAME",
    "DEFAULT_WORKFLOW_VERSION",
    "HERITAGE_SELECTOR",
    "HOOK_ANNOTATION",
    "HOOK_VALUE",
    "OFF_CLUSTER",
    "ON_CLUSTER",
    "PROTECTED_SECRETS",
    "STALE_DEPLOYMENTS",
    "TILLER_NAMESPACE",
    "WORKFLOW_NAMESPACE",
    "chart_name_for",
]
