from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Callable, Dict, List, Optional

from .errors import AlreadyExistsError, GatewayError, NotFoundError
from .objects import resource_for

Runner = Callable[[List[str], Optional[str]], subprocess.CompletedProcess]

logger = logging.getLogger(__name__)


def run_kubectl(cmd: List[str], input_data: Optional[str] = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        cmd,
        input=input_data.encode("utf-8") if input_data is not None else None,
        capture_output=True,
        check=False,
    )


class KubectlGateway:
    """Resource gateway backed by the ``kubectl`` binary.

    Every call runs one kubectl process and exchanges objects as JSON. Failures
    are classified from the server's reason marker on stderr so callers can tell
    a missing or duplicate resource apart from any other error.
    """

    def __init__(
        self,
        kubectl_cmd: str = "kubectl",
        *,
        context: Optional[str] = None,
        runner: Optional[Runner] = None,
    ) -> None:
        self.kubectl_cmd = kubectl_cmd
        self.context = context
        self._runner = runner or run_kubectl

    def get(self, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        return self._json(["get", kind, name, "-n", namespace, "-o", "json"])

    def list(self, kind: str, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        data = self._json(["get", kind, "-n", namespace, "-l", label_selector, "-o", "json"])
        items = data.get("items")
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []

    def create(self, namespace: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        resource_for(obj)
        return self._json(["create", "-n", namespace, "-f", "-", "-o", "json"], json.dumps(obj))

    def replace(self, namespace: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        resource_for(obj)
        return self._json(["replace", "-n", namespace, "-f", "-", "-o", "json"], json.dumps(obj))

    def patch(self, kind: str, namespace: str, name: str, ops: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._json(
            ["patch", kind, name, "-n", namespace, "--type", "json", "-p", json.dumps(ops), "-o", "json"]
        )

    def delete(self, kind: str, namespace: str, name: str) -> None:
        self._run(["delete", kind, name, "-n", namespace])

    def _json(self, args: List[str], input_data: Optional[str] = None) -> Dict[str, Any]:
        stdout = self._run(args, input_data)
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise GatewayError(f"kubectl {args[0]} returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise GatewayError(f"kubectl {args[0]} returned a non-object document")
        return data

    def _run(self, args: List[str], input_data: Optional[str] = None) -> str:
        cmd = [self.kubectl_cmd]
        if self.context:
            cmd.extend(["--context", self.context])
        cmd.extend(args)
        logger.debug("running %s", " ".join(cmd))
        try:
            proc = self._runner(cmd, input_data)
        except FileNotFoundError as exc:
            raise GatewayError(f"kubectl executable not found: {self.kubectl_cmd}") from exc
        if proc.returncode == 0:
            return (proc.stdout or b"").decode("utf-8", errors="replace")
        stderr = (proc.stderr or b"").decode("utf-8", errors="replace").strip()
        detail = stderr or f"kubectl exited with status {proc.returncode}"
        if "(NotFound)" in stderr:
            raise NotFoundError(detail)
        if "(AlreadyExists)" in stderr:
            raise AlreadyExistsError(detail)
        raise GatewayError(detail)


__all__ = ["KubectlGateway", "Runner", "run_kubectl"]
