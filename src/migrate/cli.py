from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
import yaml

from src.annotate import OutcomeKind, PatchOutcome, annotate_all
from src.common.naming import (
    DEFAULT_RELEASE_NAME,
    DEFAULT_WORKFLOW_VERSION,
    PROTECTED_SECRETS,
    TILLER_NAMESPACE,
    WORKFLOW_NAMESPACE,
)
from src.discovery import DiscoveryError, RenderError, discover, reconcile_credentials, render_values
from src.gateway import GatewayError, InMemoryGateway, KubectlGateway, ResourceGateway
from src.manifest import build_manifest
from src.release import ReleaseCodecError, ReleaseDescriptor, ReleaseExistsError, load, record, release_key

from .cleanup import delete_deployments

app = typer.Typer(help="Migrate a Helm Classic Workflow installation to a Helm v2 release.")

KUBECTL_OPTION = typer.Option("kubectl", "--kubectl", help="Kubectl binary used to reach the cluster.")
CONTEXT_OPTION = typer.Option(None, "--context", help="Kubeconfig context to use (defaults to the current one).")
SNAPSHOT_OPTION = typer.Option(
    None,
    "--snapshot",
    help="Rehearse against objects loaded from this YAML file instead of a live cluster.",
)
NAMESPACE_OPTION = typer.Option(WORKFLOW_NAMESPACE, "--namespace", "-n", help="Namespace Workflow runs in.")
TILLER_NAMESPACE_OPTION = typer.Option(
    TILLER_NAMESPACE,
    "--tiller-namespace",
    help="Namespace Tiller stores its release records in.",
)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every cluster call.")) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(levelname)s: %(message)s")


def _fail(message: str) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _gateway(kubectl_cmd: str, context: Optional[str], snapshot: Optional[Path], namespace: str) -> ResourceGateway:
    if snapshot is None:
        return KubectlGateway(kubectl_cmd, context=context)
    if not snapshot.exists():
        raise typer.BadParameter(f"Snapshot file not found: {snapshot}")
    return InMemoryGateway.from_yaml(snapshot, default_namespace=namespace)


def _discover_values(gateway: ResourceGateway, namespace: str):
    try:
        found = discover(gateway, namespace)
    except DiscoveryError as exc:
        _fail(f"Failed to get values: {exc}")
    try:
        values = render_values(found.profile)
    except RenderError as exc:
        _fail(f"Failed to render values: {exc}")
    return found, values


def _echo_outcome(outcome: PatchOutcome) -> None:
    typer.echo(outcome.describe(), err=outcome.kind is OutcomeKind.FAILED)


@app.command()
def migrate(
    workflow_version: str = typer.Option(
        DEFAULT_WORKFLOW_VERSION,
        "--workflow-version",
        envvar="WORKFLOW_VERSION",
        help="Chart version recorded in the release.",
    ),
    release_name: str = typer.Option(
        DEFAULT_RELEASE_NAME,
        "--release-name",
        envvar="RELEASE_NAME",
        help="Name of the Helm release to create.",
    ),
    namespace: str = NAMESPACE_OPTION,
    tiller_namespace: str = TILLER_NAMESPACE_OPTION,
    kubectl_cmd: str = KUBECTL_OPTION,
    context: Optional[str] = CONTEXT_OPTION,
    snapshot: Optional[Path] = SNAPSHOT_OPTION,
    values_out: Optional[Path] = typer.Option(
        None,
        "--values-out",
        help="Also write the rendered values to this file.",
    ),
) -> None:
    gateway = _gateway(kubectl_cmd, context, snapshot, namespace)

    found, values = _discover_values(gateway, namespace)
    typer.echo(values)
    if values_out is not None:
        values_out.parent.mkdir(parents=True, exist_ok=True)
        values_out.write_text(values, encoding="utf-8")

    try:
        reconcile_credentials(gateway, namespace, found.corrections)
    except GatewayError as exc:
        _fail(f"Failed to update credentials secret: {exc}")

    # Hook annotations keep `helm upgrade` from regenerating these secrets.
    outcomes = annotate_all(gateway, namespace, PROTECTED_SECRETS, on_outcome=_echo_outcome)
    failed = sum(1 for outcome in outcomes if outcome.kind is OutcomeKind.FAILED)
    if failed:
        logging.warning("%d secret(s) could not be annotated; continuing", failed)

    try:
        delete_deployments(gateway, namespace)
    except GatewayError as exc:
        _fail(f"Failed to delete the deployment: {exc}")

    try:
        manifest = build_manifest(gateway, namespace, skip_secrets=PROTECTED_SECRETS)
    except GatewayError as exc:
        _fail(f"Failed to generate manifest: {exc}")
    logging.info("generated manifest")
    logging.debug("%s", manifest)

    descriptor = ReleaseDescriptor(
        name=release_name,
        namespace=namespace,
        chart_version=workflow_version,
        config_raw=values,
        manifest=manifest,
    )
    key = release_key(release_name, descriptor.version)
    try:
        record(gateway, key, descriptor, namespace=tiller_namespace)
    except ReleaseExistsError:
        _fail(f"Release {key} already exists in {tiller_namespace}; the migration has already run.")
    except GatewayError as exc:
        _fail(f"Failed to create release record {key}: {exc}")

    typer.echo(f"Recorded release {key} in {tiller_namespace}")
    if isinstance(gateway, InMemoryGateway):
        typer.echo("Rehearsal only; writes that would have been made:")
        for call in gateway.writes():
            typer.echo(f"  {call.verb} {call.kind}/{call.name} -n {call.namespace}")


@app.command()
def values(
    namespace: str = NAMESPACE_OPTION,
    kubectl_cmd: str = KUBECTL_OPTION,
    context: Optional[str] = CONTEXT_OPTION,
    snapshot: Optional[Path] = SNAPSHOT_OPTION,
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the values here instead of stdout."),
) -> None:
    """Print the chart values reconstructed from the cluster without changing anything."""
    gateway = _gateway(kubectl_cmd, context, snapshot, namespace)
    _, rendered = _discover_values(gateway, namespace)
    if out is None:
        typer.echo(rendered)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(rendered, encoding="utf-8")
    typer.echo(f"Wrote values to {out.resolve()}")


@app.command()
def inspect(
    release_name: str = typer.Option(DEFAULT_RELEASE_NAME, "--release-name", envvar="RELEASE_NAME"),
    version: int = typer.Option(1, "--version", min=1, help="Release revision to load."),
    tiller_namespace: str = TILLER_NAMESPACE_OPTION,
    kubectl_cmd: str = KUBECTL_OPTION,
    context: Optional[str] = CONTEXT_OPTION,
    show_values: bool = typer.Option(False, "--show-values", help="Print the stored values."),
    show_manifest: bool = typer.Option(False, "--show-manifest", help="Print the stored manifest."),
) -> None:
    """Decode a stored release record and print a summary."""
    gateway = KubectlGateway(kubectl_cmd, context=context)
    key = release_key(release_name, version)
    try:
        descriptor = load(gateway, key, tiller_namespace)
    except (GatewayError, ReleaseCodecError) as exc:
        _fail(f"Failed to load release {key}: {exc}")

    summary = {
        "name": descriptor.name,
        "namespace": descriptor.namespace,
        "version": descriptor.version,
        "status": descriptor.status.name,
        "chart": f"{descriptor.chart_name}-{descriptor.chart_version}",
        "first_deployed": descriptor.first_deployed.isoformat(),
        "last_deployed": descriptor.last_deployed.isoformat() if descriptor.last_deployed else None,
    }
    typer.echo(yaml.safe_dump(summary, sort_keys=False).rstrip())
    if show_values:
        typer.echo("---")
        typer.echo(descriptor.config_raw)
    if show_manifest:
        typer.echo("---")
        typer.echo(descriptor.manifest)


if __name__ == "__main__":  # pragma: no cover
    app()
