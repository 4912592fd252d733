from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Sequence

from src.common.naming import ON_CLUSTER


class Variant:
    """Mixin for backend field sets; a variant is populated when any field is set."""

    def is_populated(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))

    def to_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class S3(Variant):
    accesskey: str = ""
    secretkey: str = ""
    region: str = ""
    registry_bucket: str = ""
    database_bucket: str = ""
    builder_bucket: str = ""


@dataclass
class GCS(Variant):
    key_json: str = ""
    registry_bucket: str = ""
    database_bucket: str = ""
    builder_bucket: str = ""


@dataclass
class Azure(Variant):
    accountname: str = ""
    accountkey: str = ""
    registry_container: str = ""
    database_container: str = ""
    builder_container: str = ""


@dataclass
class Swift(Variant):
    username: str = ""
    password: str = ""
    tenant: str = ""
    authurl: str = ""
    authversion: str = ""
    registry_container: str = ""
    database_container: str = ""
    builder_container: str = ""


@dataclass
class Postgres(Variant):
    name: str = ""
    username: str = ""
    password: str = ""
    host: str = ""
    port: str = ""


@dataclass
class Redis(Variant):
    db: str = ""
    host: str = ""
    port: str = ""
    password: str = ""


@dataclass
class InfluxDB(Variant):
    url: str = ""
    database: str = ""
    user: str = ""
    password: str = ""


@dataclass
class ECR(Variant):
    accesskey: str = ""
    secretkey: str = ""
    region: str = ""
    registryid: str = ""
    hostname: str = ""


@dataclass
class GCR(Variant):
    key_json: str = ""
    hostname: str = ""


@dataclass
class OffClusterRegistry(Variant):
    hostname: str = ""
    organization: str = ""
    username: str = ""
    password: str = ""


@dataclass
class Controller(Variant):
    app_pull_policy: str = "IfNotPresent"
    registration_mode: str = "enabled"


@dataclass
class ConfigurationProfile:
    """Chart values reconstructed from the running installation.

    The location flags select which template sections are emitted. At most one
    storage variant (``s3``/``gcs``/``azure``/``swift``) and at most one registry
    variant (``ecr``/``gcr``/``off_cluster_registry``) is populated.
    """

    storage: str = ""
    database_location: str = ON_CLUSTER
    logger_redis_location: str = ON_CLUSTER
    influxdb_location: str = ON_CLUSTER
    grafana_location: str = ON_CLUSTER
    registry_location: str = ON_CLUSTER
    registry_host_port: str = "5555"
    image_pull_secret_prefix: str = ""
    s3: S3 = field(default_factory=S3)
    gcs: GCS = field(default_factory=GCS)
    azure: Azure = field(default_factory=Azure)
    swift: Swift = field(default_factory=Swift)
    postgres: Postgres = field(default_factory=Postgres)
    redis: Redis = field(default_factory=Redis)
    influxdb: InfluxDB = field(default_factory=InfluxDB)
    ecr: ECR = field(default_factory=ECR)
    gcr: GCR = field(default_factory=GCR)
    off_cluster_registry: OffClusterRegistry = field(default_factory=OffClusterRegistry)
    controller: Controller = field(default_factory=Controller)

    STORAGE_VARIANTS = ("s3", "gcs", "azure", "swift")
    REGISTRY_VARIANTS = ("ecr", "gcr", "off_cluster_registry")

    def populated(self, names: Sequence[str]) -> List[str]:
        return [name for name in names if getattr(self, name).is_populated()]

    def update(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            if not hasattr(self, key):
                raise AttributeError(f"unknown profile field: {key}")
            setattr(self, key, value)


__all__ = [
    "Azure",
    "ConfigurationProfile",
    "Controller",
    "ECR",
    "GCR",
    "GCS",
    "InfluxDB",
    "OffClusterRegistry",
    "Postgres",
    "Redis",
    "S3",
    "Swift",
    "Variant",
]
