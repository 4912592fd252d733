from __future__ import annotations

import json
from typing import Any, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from .errors import RenderError
from .profile import ConfigurationProfile

VALUES_TEMPLATE = """\
# Workflow chart values reconstructed from the running installation.
global:
  # Object storage backend: s3, gcs, azure, swift or minio
  storage: {{ p.storage | q }}
  # on-cluster or off-cluster
  database_location: {{ p.database_location | q }}
  logger_redis_location: {{ p.logger_redis_location | q }}
  influxdb_location: {{ p.influxdb_location | q }}
  grafana_location: {{ p.grafana_location | q }}
  # on-cluster, off-cluster, ecr or gcr
  registry_location: {{ p.registry_location | q }}
  # Host port the registry proxy binds to
  host_port: {{ p.registry_host_port | port }}
  # Prefix of the image pull secret created for private registries
  secret_prefix: {{ p.image_pull_secret_prefix | q }}
{% if p.storage == "s3" %}

s3:
  # Leave the keys empty to use IAM credentials
  accesskey: {{ p.s3.accesskey | q }}
  secretkey: {{ p.s3.secretkey | q }}
  region: {{ p.s3.region | q }}
  registry_bucket: {{ p.s3.registry_bucket | q }}
  database_bucket: {{ p.s3.database_bucket | q }}
  builder_bucket: {{ p.s3.builder_bucket | q }}
{% endif %}
{% if p.storage == "azure" %}

azure:
  accountname: {{ p.azure.accountname | q }}
  accountkey: {{ p.azure.accountkey | q }}
  registry_container: {{ p.azure.registry_container | q }}
  database_container: {{ p.azure.database_container | q }}
  builder_container: {{ p.azure.builder_container | q }}
{% endif %}
{% if p.storage == "gcs" %}

gcs:
  # Written out as a JSON key file on the remote side
  key_json: {{ p.gcs.key_json | q }}
  registry_bucket: {{ p.gcs.registry_bucket | q }}
  database_bucket: {{ p.gcs.database_bucket | q }}
  builder_bucket: {{ p.gcs.builder_bucket | q }}
{% endif %}
{% if p.storage == "swift" %}

swift:
  username: {{ p.swift.username | q }}
  password: {{ p.swift.password | q }}
  authurl: {{ p.swift.authurl | q }}
  # Tenant name for auth versions 2 and 3
  tenant: {{ p.swift.tenant | q }}
  authversion: {{ p.swift.authversion | q }}
  registry_container: {{ p.swift.registry_container | q }}
  database_container: {{ p.swift.database_container | q }}
  builder_container: {{ p.swift.builder_container | q }}
{% endif %}

controller:
  # Always or IfNotPresent
  app_pull_policy: {{ p.controller.app_pull_policy | q }}
  # enabled, disabled or admin_only
  registration_mode: {{ p.controller.registration_mode | q }}
{% if p.postgres.host %}

database:
  postgres:
    name: {{ p.postgres.name | q }}
    username: {{ p.postgres.username | q }}
    password: {{ p.postgres.password | q }}
    host: {{ p.postgres.host | q }}
    port: {{ p.postgres.port | q }}
{% endif %}
{% if p.redis.host %}

logger:
  redis:
    db: {{ p.redis.db | q }}
    host: {{ p.redis.host | q }}
    port: {{ p.redis.port | q }}
    password: {{ p.redis.password | q }}
{% endif %}
{% if p.influxdb.user %}

monitor:
  influxdb:
    url: {{ p.influxdb.url | q }}
    database: {{ p.influxdb.database | q }}
    user: {{ p.influxdb.user | q }}
    password: {{ p.influxdb.password | q }}
{% endif %}

registry-token-refresher:
  # Minutes between token refreshes; empty uses the provider default
  token_refresh_time: ""
{% if p.registry_location == "off-cluster" %}
  off_cluster_registry:
    hostname: {{ p.off_cluster_registry.hostname | q }}
    organization: {{ p.off_cluster_registry.organization | q }}
    username: {{ p.off_cluster_registry.username | q }}
    password: {{ p.off_cluster_registry.password | q }}
{% endif %}
{% if p.registry_location == "ecr" %}
  ecr:
    accesskey: {{ p.ecr.accesskey | q }}
    secretkey: {{ p.ecr.secretkey | q }}
    region: {{ p.ecr.region | q }}
    registryid: {{ p.ecr.registryid | q }}
    hostname: {{ p.ecr.hostname | q }}
{% endif %}
{% if p.registry_location == "gcr" %}
  gcr:
    key_json: {{ p.gcr.key_json | q }}
    hostname: {{ p.gcr.hostname | q }}
{% endif %}
"""


def _quote(value: Any) -> str:
    """Emit a value as a YAML double-quoted scalar (JSON strings are valid YAML)."""
    return json.dumps("" if value is None else str(value))


def _port(value: Any) -> str:
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()):
        raise RenderError(f"invalid registry host port: {value!r}")
    return text


def _environment() -> Environment:
    env = Environment(
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["q"] = _quote
    env.filters["port"] = _port
    return env


def render_values(profile: ConfigurationProfile, template: Optional[str] = None) -> str:
    try:
        compiled = _environment().from_string(template if template is not None else VALUES_TEMPLATE)
        return compiled.render(p=profile)
    except TemplateError as exc:
        raise RenderError(f"failed to render values: {exc}") from exc


__all__ = ["VALUES_TEMPLATE", "render_values"]
