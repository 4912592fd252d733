from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import jsonpatch
import jsonpointer
import yaml

from .errors import AlreadyExistsError, GatewayError, NotFoundError
from .objects import labels_match, object_name, parse_selector, resource_for, set_secret_value

Key = Tuple[str, str, str]


def _normalise(obj: Dict[str, Any]) -> Dict[str, Any]:
    """Fold a secret's ``stringData`` into base64 ``data`` like the API server does."""
    stored = copy.deepcopy(obj)
    string_data = stored.pop("stringData", None)
    if stored.get("kind") == "Secret" and isinstance(string_data, dict):
        for key, value in string_data.items():
            set_secret_value(stored, key, str(value))
    return stored


@dataclass(frozen=True)
class Call:
    verb: str
    kind: str
    namespace: str
    name: str


class InMemoryGateway:
    """Thread-safe resource store used for rehearsal runs and tests.

    Objects are stored and returned as deep copies so callers never share state
    with the store. Every mutating call is appended to ``calls`` in the order it
    was served; ``failures`` maps ``(verb, kind, name)`` to an exception that the
    matching call raises instead of touching the store.
    """

    def __init__(self, objects: Optional[Iterable[Dict[str, Any]]] = None, default_namespace: str = "default") -> None:
        self._objects: Dict[Key, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.calls: List[Call] = []
        self.failures: Dict[Tuple[str, str, str], Exception] = {}
        for obj in objects or []:
            metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
            namespace = metadata.get("namespace") or default_namespace
            self._objects[(resource_for(obj), namespace, object_name(obj))] = _normalise(obj)

    @classmethod
    def from_yaml(cls, path: Path, default_namespace: str = "default") -> "InMemoryGateway":
        documents = [doc for doc in yaml.safe_load_all(path.read_text(encoding="utf-8")) if isinstance(doc, dict)]
        objects: List[Dict[str, Any]] = []
        for doc in documents:
            if doc.get("kind") == "List" and isinstance(doc.get("items"), list):
                objects.extend(item for item in doc["items"] if isinstance(item, dict))
            else:
                objects.append(doc)
        return cls(objects, default_namespace=default_namespace)

    def get(self, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        with self._lock:
            self._maybe_fail("get", kind, name)
            return copy.deepcopy(self._require((kind, namespace, name)))

    def list(self, kind: str, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        selector = parse_selector(label_selector)
        with self._lock:
            self._maybe_fail("list", kind, "")
            return [
                copy.deepcopy(obj)
                for (obj_kind, obj_namespace, _), obj in sorted(self._objects.items())
                if obj_kind == kind and obj_namespace == namespace and labels_match(obj, selector)
            ]

    def create(self, namespace: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        key = (resource_for(obj), namespace, object_name(obj))
        with self._lock:
            self._record("create", key)
            if key in self._objects:
                raise AlreadyExistsError(f'{key[0]} "{key[2]}" already exists')
            self._objects[key] = copy.deepcopy(obj)
            return copy.deepcopy(obj)

    def replace(self, namespace: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        key = (resource_for(obj), namespace, object_name(obj))
        with self._lock:
            self._record("replace", key)
            self._require(key)
            self._objects[key] = copy.deepcopy(obj)
            return copy.deepcopy(obj)

    def patch(self, kind: str, namespace: str, name: str, ops: List[Dict[str, Any]]) -> Dict[str, Any]:
        key = (kind, namespace, name)
        with self._lock:
            self._record("patch", key)
            current = self._require(key)
            try:
                patched = jsonpatch.apply_patch(current, ops, in_place=False)
            except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as exc:
                raise GatewayError(f"patch rejected: {exc}") from exc
            self._objects[key] = patched
            return copy.deepcopy(patched)

    def delete(self, kind: str, namespace: str, name: str) -> None:
        key = (kind, namespace, name)
        with self._lock:
            self._record("delete", key)
            self._require(key)
            del self._objects[key]

    def peek(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            obj = self._objects.get((kind, namespace, name))
            return copy.deepcopy(obj) if obj is not None else None

    def writes(self, verb: Optional[str] = None) -> List[Call]:
        with self._lock:
            return [call for call in self.calls if verb is None or call.verb == verb]

    def _record(self, verb: str, key: Key) -> None:
        self.calls.append(Call(verb=verb, kind=key[0], namespace=key[1], name=key[2]))
        self._maybe_fail(verb, key[0], key[2])

    def _maybe_fail(self, verb: str, kind: str, name: str) -> None:
        failure = self.failures.get((verb, kind, name))
        if failure is not None:
            raise failure

    def _require(self, key: Key) -> Dict[str, Any]:
        obj = self._objects.get(key)
        if obj is None:
            raise NotFoundError(f'{key[0]} "{key[2]}" not found')
        return obj


__all__ = ["Call", "InMemoryGateway"]
