import base64
import unittest

import yaml

from cluster_objects import NAMESPACE, daemonset, deployment, minimal_installation, secret

from src.common.naming import OFF_CLUSTER, ON_CLUSTER
from src.discovery import ConfigurationProfile, DiscoveryError, InvalidStorageType, discover, render_values
from src.discovery.probes import ProbeResult, probe_grafana, probe_registry, probe_storage
from src.discovery.profile import ECR, GCR, GCS, S3
from src.gateway import GatewayError, InMemoryGateway


def _replace(objects, replacement):
    kind = replacement["kind"]
    name = replacement["metadata"]["name"]
    kept = [obj for obj in objects if not (obj["kind"] == kind and obj["metadata"]["name"] == name)]
    return kept + [replacement]


class StorageProbeTests(unittest.TestCase):
    def test_unknown_backend_is_invalid_storage_type(self) -> None:
        for backend in ("minio", "S3", "", "ceph", "azure-blob"):
            with self.subTest(backend=backend):
                gateway = InMemoryGateway(minimal_installation(storage=backend), default_namespace=NAMESPACE)
                with self.assertRaises(InvalidStorageType) as ctx:
                    discover(gateway, NAMESPACE)
                self.assertIn("invalid storage type", str(ctx.exception))

    def test_missing_annotation_fails_discovery(self) -> None:
        objects = _replace(minimal_installation(), secret("objectstorage-keyfile", {"region": "eu-west-1"}))
        gateway = InMemoryGateway(objects, default_namespace=NAMESPACE)
        with self.assertRaises(DiscoveryError) as ctx:
            discover(gateway, NAMESPACE)
        self.assertIn("storage type can't be found", str(ctx.exception))

    def test_missing_storage_secret_is_fatal(self) -> None:
        gateway = InMemoryGateway(minimal_installation()[1:], default_namespace=NAMESPACE)
        with self.assertRaises(DiscoveryError) as ctx:
            discover(gateway, NAMESPACE)
        self.assertIn("storage probe failed", str(ctx.exception))

    def test_each_backend_populates_only_its_variant(self) -> None:
        cases = {
            "s3": ({"region": "us-east-1", "registry-bucket": "reg"}, "region", "us-east-1"),
            "gcs": ({"key.json": '{"type": "service_account"}', "builder-bucket": "b"}, "key_json", '{"type": "service_account"}'),
            "azure": ({"accountname": "acct", "accountkey": "k"}, "accountname", "acct"),
            "swift": ({"username": "swifty", "authurl": "https://auth"}, "username", "swifty"),
        }
        for backend, (data, attr, expected) in cases.items():
            with self.subTest(backend=backend):
                objects = minimal_installation(storage=backend, storage_data=data)
                result = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE)
                profile = result.profile
                self.assertEqual(profile.storage, backend)
                self.assertEqual(getattr(getattr(profile, backend), attr), expected)
                self.assertEqual(profile.populated(ConfigurationProfile.STORAGE_VARIANTS), [backend])

    def test_probe_copies_bucket_fields(self) -> None:
        gateway = InMemoryGateway(
            [
                secret(
                    "objectstorage-keyfile",
                    {
                        "accesskey": "AKIA",
                        "secretkey": "s3cr3t",
                        "region": "us-west-2",
                        "registry-bucket": "registry",
                        "database-bucket": "database",
                        "builder-bucket": "builder",
                    },
                    annotations={"deis.io/objectstorage": "s3"},
                )
            ],
            default_namespace=NAMESPACE,
        )
        result = probe_storage(gateway, NAMESPACE)
        s3 = result.values["s3"]
        self.assertEqual(s3.registry_bucket, "registry")
        self.assertEqual(s3.database_bucket, "database")
        self.assertEqual(s3.builder_bucket, "builder")

    def test_non_utf8_secret_bytes_are_kept_readable(self) -> None:
        keyfile = secret("objectstorage-keyfile", {"accountname": "acct"}, annotations={"deis.io/objectstorage": "azure"})
        keyfile["data"]["accountkey"] = base64.b64encode(b"\xff\xfe\x00key").decode()
        objects = _replace(minimal_installation(), keyfile)

        profile = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE).profile

        self.assertEqual(profile.azure.accountkey, "\ufffd\ufffd\x00key")
        self.assertEqual(yaml.safe_load(render_values(profile))["azure"]["accountkey"], "\ufffd\ufffd\x00key")

    def test_malformed_secret_data_is_a_discovery_error(self) -> None:
        keyfile = secret("objectstorage-keyfile", {"region": "r"}, annotations={"deis.io/objectstorage": "s3"})
        keyfile["data"]["accesskey"] = "***not base64***"
        objects = _replace(minimal_installation(), keyfile)

        with self.assertRaises(DiscoveryError) as ctx:
            discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE)

        self.assertIn("storage probe failed", str(ctx.exception))
        self.assertIn("accesskey", str(ctx.exception))


class DatabaseProbeTests(unittest.TestCase):
    def test_on_cluster_when_no_host(self) -> None:
        result = discover(InMemoryGateway(minimal_installation(), default_namespace=NAMESPACE), NAMESPACE)
        self.assertEqual(result.profile.database_location, ON_CLUSTER)
        self.assertFalse(result.profile.postgres.is_populated())
        self.assertEqual(result.corrections, [])

    def test_off_cluster_reads_credentials_and_queues_correction(self) -> None:
        controller = deployment(
            "deis-controller",
            {
                "DEIS_DATABASE_NAME": "deis",
                "DEIS_DATABASE_SERVICE_HOST": "db.example.com",
                "DEIS_DATABASE_SERVICE_PORT": "5432",
            },
        )
        objects = _replace(minimal_installation(), controller)
        objects.append(secret("database-creds", {"user": "deis", "password": "hunter2"}))
        gateway = InMemoryGateway(objects, default_namespace=NAMESPACE)

        result = discover(gateway, NAMESPACE)

        postgres = result.profile.postgres
        self.assertEqual(result.profile.database_location, OFF_CLUSTER)
        self.assertEqual((postgres.username, postgres.password), ("deis", "hunter2"))
        self.assertEqual((postgres.name, postgres.host, postgres.port), ("deis", "db.example.com", "5432"))
        self.assertEqual(len(result.corrections), 1)
        self.assertEqual(result.corrections[0].secret, "database-creds")
        self.assertEqual(result.corrections[0].fields, {"name": "deis", "host": "db.example.com", "port": "5432"})
        # discovery itself never writes
        self.assertEqual(gateway.writes(), [])

    def test_off_cluster_without_credentials_secret_is_fatal(self) -> None:
        controller = deployment("deis-controller", {"DEIS_DATABASE_SERVICE_HOST": "db.example.com"})
        gateway = InMemoryGateway(_replace(minimal_installation(), controller), default_namespace=NAMESPACE)
        with self.assertRaises(DiscoveryError):
            discover(gateway, NAMESPACE)


class MonitorProbeTests(unittest.TestCase):
    def test_missing_grafana_means_off_cluster(self) -> None:
        objects = [obj for obj in minimal_installation() if obj["metadata"]["name"] != "deis-monitor-grafana"]
        result = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE)
        self.assertEqual(result.profile.grafana_location, OFF_CLUSTER)

    def test_other_grafana_errors_are_fatal(self) -> None:
        gateway = InMemoryGateway(minimal_installation(), default_namespace=NAMESPACE)
        gateway.failures[("get", "deployment", "deis-monitor-grafana")] = GatewayError("forbidden")
        with self.assertRaises(GatewayError):
            probe_grafana(gateway, NAMESPACE)
        with self.assertRaises(DiscoveryError):
            discover(gateway, NAMESPACE)

    def test_influx_user_selects_off_cluster(self) -> None:
        telegraf = daemonset(
            "deis-monitor-telegraf",
            {
                "INFLUXDB_USERNAME": "admin",
                "INFLUXDB_PASSWORD": "pw",
                "INFLUXDB_URLS": "http://influx:8086",
                "INFLUXDB_DATABASE": "kubernetes",
            },
        )
        objects = _replace(minimal_installation(), telegraf)
        profile = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE).profile
        self.assertEqual(profile.influxdb_location, OFF_CLUSTER)
        self.assertEqual(profile.influxdb.url, "http://influx:8086")


class LoggerRedisProbeTests(unittest.TestCase):
    def test_off_cluster_redis(self) -> None:
        logger_deployment = deployment(
            "deis-logger",
            {
                "DEIS_LOGGER_REDIS_DB": "0",
                "DEIS_LOGGER_REDIS_SERVICE_HOST": "redis.example.com",
                "DEIS_LOGGER_REDIS_SERVICE_PORT": "6379",
            },
        )
        objects = _replace(minimal_installation(), logger_deployment)
        objects.append(secret("logger-redis-creds", {"password": "r3dis"}))
        result = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE)
        self.assertEqual(result.profile.logger_redis_location, OFF_CLUSTER)
        self.assertEqual(result.profile.redis.password, "r3dis")
        self.assertEqual(result.corrections[0].secret, "logger-redis-creds")
        self.assertEqual(result.corrections[0].fields, {"db": "0", "host": "redis.example.com", "port": "6379"})

    def test_missing_logger_deployment_is_fatal(self) -> None:
        objects = [obj for obj in minimal_installation() if obj["metadata"]["name"] != "deis-logger"]
        with self.assertRaises(DiscoveryError):
            discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE)


class RegistryProbeTests(unittest.TestCase):
    def test_no_registry_secret_is_on_cluster(self) -> None:
        profile = discover(InMemoryGateway(minimal_installation(), default_namespace=NAMESPACE), NAMESPACE).profile
        self.assertEqual(profile.registry_location, ON_CLUSTER)
        self.assertEqual(profile.registry_host_port, "5555")
        self.assertEqual(profile.populated(ConfigurationProfile.REGISTRY_VARIANTS), [])

    def test_registry_variants_are_exclusive(self) -> None:
        cases = {
            "ecr": ({"region": "us-east-1", "registryid": "1234", "hostname": "ecr.aws"}, "ecr"),
            "gcr": ({"key.json": "{}", "hostname": "gcr.io"}, "gcr"),
            "off-cluster": ({"hostname": "quay.io", "organization": "deis", "username": "u", "password": "p"}, "off_cluster_registry"),
        }
        for location, (data, attr) in cases.items():
            with self.subTest(location=location):
                objects = minimal_installation()
                objects.append(secret("registry-secret", data, annotations={"deis.io/registry-location": location}))
                profile = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE).profile
                self.assertEqual(profile.registry_location, location)
                self.assertEqual(profile.populated(ConfigurationProfile.REGISTRY_VARIANTS), [attr])

    def test_registry_secret_without_annotation_fails(self) -> None:
        objects = minimal_installation() + [secret("registry-secret", {"hostname": "quay.io"})]
        gateway = InMemoryGateway(objects, default_namespace=NAMESPACE)
        with self.assertRaises(DiscoveryError):
            probe_registry(gateway, NAMESPACE)

    def test_controller_env_sets_port_and_prefix(self) -> None:
        controller = deployment(
            "deis-controller",
            {"DEIS_REGISTRY_SERVICE_PORT": "5000", "DEIS_REGISTRY_SECRET_PREFIX": "private-registry"},
        )
        objects = _replace(minimal_installation(), controller)
        profile = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE).profile
        self.assertEqual(profile.registry_host_port, "5000")
        self.assertEqual(profile.image_pull_secret_prefix, "private-registry")


class ControllerProbeTests(unittest.TestCase):
    def test_defaults_and_overrides(self) -> None:
        profile = discover(InMemoryGateway(minimal_installation(), default_namespace=NAMESPACE), NAMESPACE).profile
        self.assertEqual(profile.controller.registration_mode, "admin_only")
        self.assertEqual(profile.controller.app_pull_policy, "IfNotPresent")

    def test_empty_variable_overrides_default(self) -> None:
        controller = deployment("deis-controller", {"REGISTRATION_MODE": "", "IMAGE_PULL_POLICY": "Always"})
        objects = _replace(minimal_installation(), controller)
        profile = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE).profile
        self.assertEqual(profile.controller.registration_mode, "")
        self.assertEqual(profile.controller.app_pull_policy, "Always")

    def test_absent_variables_use_defaults(self) -> None:
        controller = deployment("deis-controller")
        objects = _replace(minimal_installation(), controller)
        profile = discover(InMemoryGateway(objects, default_namespace=NAMESPACE), NAMESPACE).profile
        self.assertEqual(profile.controller.registration_mode, "enabled")
        self.assertEqual(profile.controller.app_pull_policy, "IfNotPresent")


class ExclusivityTests(unittest.TestCase):
    def _discover_with(self, *results):
        probes = [(f"stub-{index}", lambda gateway, namespace, result=result: result) for index, result in enumerate(results)]
        return discover(InMemoryGateway(), NAMESPACE, probes=probes)

    def test_two_storage_backends_are_rejected(self) -> None:
        with self.assertRaises(DiscoveryError) as ctx:
            self._discover_with(
                ProbeResult(values={"storage": "s3", "s3": S3(region="us-east-1")}),
                ProbeResult(values={"gcs": GCS(key_json="{}")}),
            )
        self.assertIn("more than one storage backend populated: s3, gcs", str(ctx.exception))

    def test_two_registry_backends_are_rejected(self) -> None:
        with self.assertRaises(DiscoveryError) as ctx:
            self._discover_with(
                ProbeResult(values={"ecr": ECR(region="us-east-1")}),
                ProbeResult(values={"gcr": GCR(hostname="gcr.io")}),
            )
        self.assertIn("registry", str(ctx.exception))

    def test_single_backend_passes(self) -> None:
        found = self._discover_with(ProbeResult(values={"storage": "s3", "s3": S3(region="us-east-1")}))
        self.assertEqual(found.profile.populated(ConfigurationProfile.STORAGE_VARIANTS), ["s3"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
