"""Builders for the API objects a Workflow installation is made of."""

import base64
from typing import Dict, Optional

NAMESPACE = "deis"


def secret(name: str, data: Optional[Dict[str, str]] = None, annotations: Optional[Dict[str, str]] = None, labels=None) -> dict:
    metadata = {"name": name, "namespace": NAMESPACE, "resourceVersion": "7"}
    if annotations:
        metadata["annotations"] = dict(annotations)
    if labels:
        metadata["labels"] = dict(labels)
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": metadata,
        "type": "Opaque",
        "data": {key: base64.b64encode(value.encode()).decode() for key, value in (data or {}).items()},
    }


def _workload(kind: str, name: str, env: Optional[Dict[str, str]], labels=None) -> dict:
    return {
        "apiVersion": "apps/v1",
        "kind": kind,
        "metadata": {
            "name": name,
            "namespace": NAMESPACE,
            "labels": dict(labels or {"heritage": "deis"}),
            "annotations": {"deployment.kubernetes.io/revision": "3"},
            "resourceVersion": "42",
        },
        "spec": {
            "template": {
                "spec": {
                    "containers": [
                        {
                            "name": name,
                            "image": f"deis/{name}:v2.6.0",
                            "env": [{"name": key, "value": value} for key, value in (env or {}).items()],
                        }
                    ]
                }
            }
        },
    }


def deployment(name: str, env: Optional[Dict[str, str]] = None, labels=None) -> dict:
    return _workload("Deployment", name, env, labels)


def daemonset(name: str, env: Optional[Dict[str, str]] = None, labels=None) -> dict:
    return _workload("DaemonSet", name, env, labels)


def service(name: str, labels=None) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name, "namespace": NAMESPACE, "labels": dict(labels or {"heritage": "deis"})},
        "spec": {"clusterIP": "10.0.0.12", "ports": [{"port": 80}]},
    }


def service_account(name: str) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"name": name, "namespace": NAMESPACE, "labels": {"heritage": "deis"}},
        "secrets": [{"name": f"{name}-token-abcde"}],
    }


def minimal_installation(storage: str = "s3", storage_data: Optional[Dict[str, str]] = None) -> list:
    """An on-cluster installation with every resource discovery requires."""
    data = storage_data if storage_data is not None else {"region": "us-west-2", "accesskey": "AKIA", "secretkey": "s3cr3t"}
    return [
        secret("objectstorage-keyfile", data, annotations={"deis.io/objectstorage": storage}, labels={"heritage": "deis"}),
        deployment("deis-controller", {"REGISTRATION_MODE": "admin_only"}),
        deployment("deis-logger"),
        deployment("deis-monitor-grafana"),
        daemonset("deis-monitor-telegraf"),
    ]
