import base64
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import yaml
from typer.testing import CliRunner

from cluster_objects import NAMESPACE, deployment, minimal_installation, secret, service

from src.gateway import GatewayError, InMemoryGateway, NotFoundError
from src.migrate import cli
from src.migrate.cleanup import delete_deployments
from src.release import ReleaseDescriptor, record

HERITAGE = {"heritage": "deis"}


def _cluster():
    objects = minimal_installation()
    objects += [
        secret("django-secret-key", {"secret-key": "k"}, labels=HERITAGE),
        secret("builder-key-auth", {"auth": "a"}, labels=HERITAGE),
        deployment("deis-builder"),
        deployment("deis-registry"),
        service("deis-router"),
    ]
    return objects


class MigrateCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self.tmpdir.name)
        self.runner = CliRunner()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _snapshot(self, objects) -> Path:
        path = self.base / "cluster.yaml"
        path.write_text(yaml.safe_dump_all(objects, sort_keys=False), encoding="utf-8")
        return path

    def test_rehearsal_records_release(self) -> None:
        snapshot = self._snapshot(_cluster())
        values_out = self.base / "out" / "values.yaml"

        result = self.runner.invoke(
            cli.app,
            ["migrate", "--snapshot", str(snapshot), "--values-out", str(values_out), "--workflow-version", "v2.8.0"],
        )

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Recorded release deis-workflow.v1 in kube-system", result.output)
        self.assertIn("secret django-secret-key annotated successfully", result.output)
        self.assertIn("secret builder-ssh-private-keys not found", result.output)
        self.assertIn("create configmap/deis-workflow.v1 -n kube-system", result.output)
        self.assertIn("delete deployment/deis-builder -n deis", result.output)
        rendered = yaml.safe_load(values_out.read_text(encoding="utf-8"))
        self.assertEqual(rendered["global"]["storage"], "s3")

    def test_existing_release_fails(self) -> None:
        existing = {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "workflow.v1", "namespace": "kube-system"},
            "data": {"release": ""},
        }
        snapshot = self._snapshot(_cluster() + [existing])

        result = self.runner.invoke(cli.app, ["migrate", "--snapshot", str(snapshot), "--release-name", "workflow"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Release workflow.v1 already exists in kube-system", result.output)

    def test_missing_storage_secret_stops_before_any_write(self) -> None:
        objects = [obj for obj in _cluster() if obj["metadata"]["name"] != "objectstorage-keyfile"]
        snapshot = self._snapshot(objects)

        result = self.runner.invoke(cli.app, ["migrate", "--snapshot", str(snapshot)])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Failed to get values", result.output)
        self.assertNotIn("annotated", result.output)

    def test_missing_snapshot_is_bad_parameter(self) -> None:
        result = self.runner.invoke(cli.app, ["migrate", "--snapshot", str(self.base / "absent.yaml")])
        self.assertNotEqual(result.exit_code, 0)


class ValuesCommandTests(unittest.TestCase):
    def test_values_written_to_file(self) -> None:
        runner = CliRunner()
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            snapshot = base / "cluster.yaml"
            snapshot.write_text(yaml.safe_dump_all(_cluster()), encoding="utf-8")
            out = base / "values.yaml"

            result = runner.invoke(cli.app, ["values", "--snapshot", str(snapshot), "--out", str(out)])

            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("Wrote values to", result.output)
            document = yaml.safe_load(out.read_text(encoding="utf-8"))
        self.assertEqual(document["global"]["database_location"], "on-cluster")

    def test_secret_data_problems_never_crash_the_command(self) -> None:
        runner = CliRunner()
        binary = base64.b64encode(b"\xff\xfe\x00key").decode()
        cases = {
            "binary": (binary, 0, "accountkey"),
            "malformed": ("***", 1, "Failed to get values"),
        }
        for label, (raw, exit_code, expected) in cases.items():
            with self.subTest(case=label), tempfile.TemporaryDirectory() as tmp:
                keyfile = secret("objectstorage-keyfile", {"accountname": "acct"}, annotations={"deis.io/objectstorage": "azure"})
                keyfile["data"]["accountkey"] = raw
                objects = [obj for obj in _cluster() if obj["metadata"]["name"] != "objectstorage-keyfile"] + [keyfile]
                snapshot = Path(tmp) / "cluster.yaml"
                snapshot.write_text(yaml.safe_dump_all(objects), encoding="utf-8")

                result = runner.invoke(cli.app, ["values", "--snapshot", str(snapshot)])

                self.assertEqual(result.exit_code, exit_code, result.output)
                self.assertIn(expected, result.output)


class InspectCommandTests(unittest.TestCase):
    def test_summary_of_stored_release(self) -> None:
        gateway = InMemoryGateway()
        descriptor = ReleaseDescriptor(
            name="deis-workflow",
            namespace=NAMESPACE,
            chart_version="v2.7.0",
            config_raw="global: {}\n",
            manifest="",
        )
        record(gateway, "deis-workflow.v1", descriptor)

        with mock.patch.object(cli, "KubectlGateway", return_value=gateway):
            result = CliRunner().invoke(cli.app, ["inspect", "--show-values"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("chart: workflow-v2.7.0", result.output)
        self.assertIn("status: DEPLOYED", result.output)
        self.assertIn("global: {}", result.output)

    def test_missing_release(self) -> None:
        with mock.patch.object(cli, "KubectlGateway", return_value=InMemoryGateway()):
            result = CliRunner().invoke(cli.app, ["inspect", "--release-name", "absent"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Failed to load release absent.v1", result.output)


class DeleteDeploymentsTests(unittest.TestCase):
    def test_missing_deployments_are_skipped(self) -> None:
        gateway = InMemoryGateway([deployment("deis-controller")], default_namespace=NAMESPACE)

        deleted = delete_deployments(gateway, NAMESPACE)

        self.assertEqual(deleted, ["deis-controller"])
        self.assertIsNone(gateway.peek("deployment", NAMESPACE, "deis-controller"))

    def test_only_not_found_is_skipped(self) -> None:
        gateway = InMemoryGateway([deployment("deis-builder")], default_namespace=NAMESPACE)
        gateway.failures[("delete", "deployment", "deis-builder")] = NotFoundError("gone")
        self.assertEqual(delete_deployments(gateway, NAMESPACE), [])
        gateway.failures[("delete", "deployment", "deis-builder")] = GatewayError("forbidden")
        with self.assertRaises(GatewayError):
            delete_deployments(gateway, NAMESPACE)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
