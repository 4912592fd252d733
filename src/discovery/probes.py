"""Per-concern probes that read one slice of the chart values from the cluster.

Each probe is a function ``(gateway, namespace) -> ProbeResult``. A probe only
reads; writes it would like to make are returned as ``CredentialCorrection``
entries for the reconciliation step to apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Type

from src.common.naming import OFF_CLUSTER, ON_CLUSTER
from src.gateway import NotFoundError, ResourceGateway
from src.gateway.objects import annotations_of, env_values, first_container_env, secret_value

from .errors import DiscoveryError, InvalidStorageType
from .profile import ECR, GCR, GCS, S3, Azure, Controller, InfluxDB, OffClusterRegistry, Postgres, Redis, Swift, Variant

STORAGE_SECRET = "objectstorage-keyfile"
STORAGE_ANNOTATION = "deis.io/objectstorage"
REGISTRY_SECRET = "registry-secret"
REGISTRY_ANNOTATION = "deis.io/registry-location"
DATABASE_SECRET = "database-creds"
REDIS_SECRET = "logger-redis-creds"
CONTROLLER_DEPLOYMENT = "deis-controller"
LOGGER_DEPLOYMENT = "deis-logger"
GRAFANA_DEPLOYMENT = "deis-monitor-grafana"
TELEGRAF_DAEMONSET = "deis-monitor-telegraf"

# backend -> (variant type, {variant field: secret data key})
STORAGE_BACKENDS: Dict[str, Tuple[Type[Variant], Dict[str, str]]] = {
    "s3": (
        S3,
        {
            "accesskey": "accesskey",
            "secretkey": "secretkey",
            "region": "region",
            "registry_bucket": "registry-bucket",
            "database_bucket": "database-bucket",
            "builder_bucket": "builder-bucket",
        },
    ),
    "gcs": (
        GCS,
        {
            "key_json": "key.json",
            "registry_bucket": "registry-bucket",
            "database_bucket": "database-bucket",
            "builder_bucket": "builder-bucket",
        },
    ),
    "azure": (
        Azure,
        {
            "accountname": "accountname",
            "accountkey": "accountkey",
            "registry_container": "registry-container",
            "database_container": "database-container",
            "builder_container": "builder-container",
        },
    ),
    "swift": (
        Swift,
        {
            "username": "username",
            "password": "password",
            "tenant": "tenant",
            "authurl": "authurl",
            "authversion": "authversion",
            "registry_container": "registry-container",
            "database_container": "database-container",
            "builder_container": "builder-container",
        },
    ),
}

# registry location -> (profile attribute, variant type, {variant field: secret data key})
REGISTRY_BACKENDS: Dict[str, Tuple[str, Type[Variant], Dict[str, str]]] = {
    "ecr": (
        "ecr",
        ECR,
        {
            "accesskey": "accesskey",
            "secretkey": "secretkey",
            "region": "region",
            "registryid": "registryid",
            "hostname": "hostname",
        },
    ),
    "gcr": ("gcr", GCR, {"key_json": "key.json", "hostname": "hostname"}),
    OFF_CLUSTER: (
        "off_cluster_registry",
        OffClusterRegistry,
        {
            "hostname": "hostname",
            "organization": "organization",
            "username": "username",
            "password": "password",
        },
    ),
}


@dataclass
class CredentialCorrection:
    """Fields to write into a credentials secret that only the deployment carried."""

    secret: str
    fields: Dict[str, str]


@dataclass
class ProbeResult:
    values: Dict[str, Any] = field(default_factory=dict)
    corrections: List[CredentialCorrection] = field(default_factory=list)


Probe = Callable[[ResourceGateway, str], ProbeResult]


def _variant_from_secret(cls: Type[Variant], secret: Dict[str, Any], keys: Dict[str, str]) -> Variant:
    return cls(**{attr: secret_value(secret, key) for attr, key in keys.items()})


def probe_storage(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    secret = gateway.get("secret", namespace, STORAGE_SECRET)
    backend = annotations_of(secret).get(STORAGE_ANNOTATION)
    if backend is None:
        raise DiscoveryError("storage type can't be found")
    if backend not in STORAGE_BACKENDS:
        raise InvalidStorageType(backend)
    cls, keys = STORAGE_BACKENDS[backend]
    return ProbeResult(values={"storage": backend, backend: _variant_from_secret(cls, secret, keys)})


def probe_database(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    try:
        deployment = gateway.get("deployment", namespace, CONTROLLER_DEPLOYMENT)
    except NotFoundError:
        return ProbeResult(values={"database_location": ON_CLUSTER})
    env = env_values(
        deployment,
        {
            "DEIS_DATABASE_NAME": "name",
            "DEIS_DATABASE_SERVICE_HOST": "host",
            "DEIS_DATABASE_SERVICE_PORT": "port",
        },
    )
    if not env["host"]:
        return ProbeResult(values={"database_location": ON_CLUSTER})

    secret = gateway.get("secret", namespace, DATABASE_SECRET)
    postgres = Postgres(
        name=env["name"],
        username=secret_value(secret, "user"),
        password=secret_value(secret, "password"),
        host=env["host"],
        port=env["port"],
    )
    return ProbeResult(
        values={"database_location": OFF_CLUSTER, "postgres": postgres},
        corrections=[CredentialCorrection(DATABASE_SECRET, dict(env))],
    )


def probe_grafana(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    try:
        gateway.get("deployment", namespace, GRAFANA_DEPLOYMENT)
    except NotFoundError:
        return ProbeResult(values={"grafana_location": OFF_CLUSTER})
    return ProbeResult(values={"grafana_location": ON_CLUSTER})


def probe_influxdb(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    daemonset = gateway.get("daemonset", namespace, TELEGRAF_DAEMONSET)
    env = env_values(
        daemonset,
        {
            "INFLUXDB_USERNAME": "user",
            "INFLUXDB_PASSWORD": "password",
            "INFLUXDB_URLS": "url",
            "INFLUXDB_DATABASE": "database",
        },
    )
    if not env["user"]:
        return ProbeResult(values={"influxdb_location": ON_CLUSTER})
    return ProbeResult(values={"influxdb_location": OFF_CLUSTER, "influxdb": InfluxDB(**env)})


def probe_logger_redis(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    deployment = gateway.get("deployment", namespace, LOGGER_DEPLOYMENT)
    env = env_values(
        deployment,
        {
            "DEIS_LOGGER_REDIS_DB": "db",
            "DEIS_LOGGER_REDIS_SERVICE_HOST": "host",
            "DEIS_LOGGER_REDIS_SERVICE_PORT": "port",
        },
    )
    if not env["host"]:
        return ProbeResult(values={"logger_redis_location": ON_CLUSTER})

    secret = gateway.get("secret", namespace, REDIS_SECRET)
    redis = Redis(password=secret_value(secret, "password"), **env)
    return ProbeResult(
        values={"logger_redis_location": OFF_CLUSTER, "redis": redis},
        corrections=[CredentialCorrection(REDIS_SECRET, dict(env))],
    )


def probe_registry(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    values: Dict[str, Any] = {"registry_location": ON_CLUSTER}
    try:
        secret = gateway.get("secret", namespace, REGISTRY_SECRET)
    except NotFoundError:
        secret = None
    if secret is not None:
        location = annotations_of(secret).get(REGISTRY_ANNOTATION)
        if location is None:
            raise DiscoveryError("registry location can't be found")
        values["registry_location"] = location
        if location in REGISTRY_BACKENDS:
            attr, cls, keys = REGISTRY_BACKENDS[location]
            values[attr] = _variant_from_secret(cls, secret, keys)

    deployment = gateway.get("deployment", namespace, CONTROLLER_DEPLOYMENT)
    env = env_values(
        deployment,
        {
            "DEIS_REGISTRY_SERVICE_PORT": "registry_host_port",
            "DEIS_REGISTRY_SECRET_PREFIX": "image_pull_secret_prefix",
        },
    )
    values["registry_host_port"] = env["registry_host_port"] or "5555"
    values["image_pull_secret_prefix"] = env["image_pull_secret_prefix"]
    return ProbeResult(values=values)


def probe_controller(gateway: ResourceGateway, namespace: str) -> ProbeResult:
    deployment = gateway.get("deployment", namespace, CONTROLLER_DEPLOYMENT)
    # A variable that is set, even to an empty string, overrides the default.
    present = {
        entry.get("name"): str(entry.get("value") or "")
        for entry in first_container_env(deployment)
        if isinstance(entry, dict)
    }
    defaults = Controller()
    controller = Controller(
        app_pull_policy=present.get("IMAGE_PULL_POLICY", defaults.app_pull_policy),
        registration_mode=present.get("REGISTRATION_MODE", defaults.registration_mode),
    )
    return ProbeResult(values={"controller": controller})


PROBES: Tuple[Tuple[str, Probe], ...] = (
    ("storage", probe_storage),
    ("database", probe_database),
    ("grafana", probe_grafana),
    ("influxdb", probe_influxdb),
    ("logger-redis", probe_logger_redis),
    ("registry", probe_registry),
    ("controller", probe_controller),
)


__all__ = [
    "CredentialCorrection",
    "PROBES",
    "Probe",
    "ProbeResult",
    "probe_controller",
    "probe_database",
    "probe_grafana",
    "probe_influxdb",
    "probe_logger_redis",
    "probe_registry",
    "probe_storage",
]
