from __future__ import annotations

import copy
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import jsonpatch

from src.common.naming import HOOK_ANNOTATION, HOOK_VALUE
from src.gateway import GatewayError, NotFoundError, ResourceGateway

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    NOT_FOUND = "not-found"
    ANNOTATED = "annotated"
    FAILED = "failed"


@dataclass(frozen=True)
class PatchOutcome:
    name: str
    kind: OutcomeKind
    error: Optional[str] = None

    def describe(self, resource: str = "secret") -> str:
        if self.kind is OutcomeKind.NOT_FOUND:
            return f"{resource} {self.name} not found"
        if self.kind is OutcomeKind.ANNOTATED:
            return f"{resource} {self.name} annotated successfully"
        return f"{resource} {self.name} could not be annotated: {self.error}"


@dataclass
class AnnotationPlan:
    """The annotated copy of an object plus the patch that produces it.

    ``patch`` is None when the diff could not be computed; the object must then
    be written back whole.
    """

    annotated: Dict[str, Any]
    patch: Optional[List[Dict[str, Any]]]


def with_annotation(obj: Dict[str, Any], key: str, value: str) -> Dict[str, Any]:
    annotated = copy.deepcopy(obj)
    metadata = annotated.setdefault("metadata", {})
    annotations = metadata.get("annotations")
    if not isinstance(annotations, dict):
        annotations = {}
        metadata["annotations"] = annotations
    annotations[key] = value
    return annotated


def compute_patch(original: Dict[str, Any], updated: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    try:
        return jsonpatch.make_patch(original, updated).patch
    except (jsonpatch.JsonPatchException, TypeError, ValueError) as exc:
        logger.warning("couldn't compute patch: %s", exc)
        return None


def plan_annotation(obj: Dict[str, Any], key: str = HOOK_ANNOTATION, value: str = HOOK_VALUE) -> AnnotationPlan:
    annotated = with_annotation(obj, key, value)
    return AnnotationPlan(annotated=annotated, patch=compute_patch(obj, annotated))


def annotate_one(
    gateway: ResourceGateway,
    namespace: str,
    name: str,
    kind: str = "secret",
) -> PatchOutcome:
    try:
        current = gateway.get(kind, namespace, name)
    except NotFoundError:
        return PatchOutcome(name, OutcomeKind.NOT_FOUND)
    except GatewayError as exc:
        return PatchOutcome(name, OutcomeKind.FAILED, str(exc))

    plan = plan_annotation(current)
    try:
        if plan.patch is not None:
            if plan.patch:
                gateway.patch(kind, namespace, name, plan.patch)
        else:
            gateway.replace(namespace, plan.annotated)
    except GatewayError as exc:
        return PatchOutcome(name, OutcomeKind.FAILED, str(exc))
    return PatchOutcome(name, OutcomeKind.ANNOTATED)


def annotate_all(
    gateway: ResourceGateway,
    namespace: str,
    names: Iterable[str],
    on_outcome: Optional[Callable[[PatchOutcome], None]] = None,
    kind: str = "secret",
) -> List[PatchOutcome]:
    """Annotate every named resource concurrently, one task per name.

    Exactly one outcome is collected per name, in the order tasks finish. A
    failing name never stops the others and is never raised to the caller, and
    neither is an error from ``on_outcome``.
    """
    unique = list(dict.fromkeys(names))
    outcomes: List[PatchOutcome] = []
    if not unique:
        return outcomes
    with ThreadPoolExecutor(max_workers=len(unique)) as executor:
        future_map = {executor.submit(annotate_one, gateway, namespace, name, kind): name for name in unique}
        for future in as_completed(future_map):
            name = future_map[future]
            try:
                outcome = future.result()
            except Exception as exc:
                outcome = PatchOutcome(name, OutcomeKind.FAILED, str(exc))
            if outcome.kind is OutcomeKind.FAILED:
                logger.warning(outcome.describe(kind))
            else:
                logger.info(outcome.describe(kind))
            outcomes.append(outcome)
            if on_outcome is not None:
                try:
                    on_outcome(outcome)
                except Exception as exc:
                    logger.warning("outcome callback failed for %s: %s", name, exc)
    return outcomes


__all__ = [
    "AnnotationPlan",
    "OutcomeKind",
    "PatchOutcome",
    "annotate_all",
    "annotate_one",
    "compute_patch",
    "plan_annotation",
    "with_annotation",
]
