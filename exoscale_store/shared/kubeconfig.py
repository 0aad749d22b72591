"""Kubeconfig document model, YAML codec and identity rename."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

# Top-level keys owned by the structured form. Everything else is carried as-is.
_NAMED_LISTS = {"clusters": "cluster", "contexts": "context", "users": "user"}
_CURRENT_CONTEXT = "current-context"


class KubeconfigFormatError(ValueError):
    """Raised when a kubeconfig does not have the expected shape."""


@dataclass
class KubeconfigDocument:
    """Kubeconfig with clusters, contexts and users keyed by name.

    ``clusters`` and ``users`` map a name to the inner ``cluster``/``user``
    body; ``contexts`` map a name to the inner ``context`` body, whose
    ``cluster`` and ``user`` fields reference the other two maps.
    """

    clusters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    contexts: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    users: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    current_context: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)


def _named_entries(raw: Dict[str, Any], key: str) -> Dict[str, Dict[str, Any]]:
    inner = _NAMED_LISTS[key]
    entries = raw.get(key) or []
    if not isinstance(entries, list):
        raise KubeconfigFormatError(f"'{key}' must be a list")

    named: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise KubeconfigFormatError(f"every entry of '{key}' needs a name")
        body = entry.get(inner) or {}
        if not isinstance(body, dict):
            raise KubeconfigFormatError(
                f"'{inner}' of {key} entry {entry['name']!r} must be a mapping"
            )
        named[str(entry["name"])] = body
    return named


def parse_document(data: bytes) -> KubeconfigDocument:
    """Load raw kubeconfig bytes into a KubeconfigDocument."""

    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise KubeconfigFormatError(f"invalid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise KubeconfigFormatError("kubeconfig must be a mapping")

    current = raw.get(_CURRENT_CONTEXT)
    return KubeconfigDocument(
        clusters=_named_entries(raw, "clusters"),
        contexts=_named_entries(raw, "contexts"),
        users=_named_entries(raw, "users"),
        current_context=str(current) if current else None,
        extra={
            k: v
            for k, v in raw.items()
            if k not in _NAMED_LISTS and k != _CURRENT_CONTEXT
        },
        key_order=list(raw.keys()),
    )


def _to_dict(doc: KubeconfigDocument) -> Dict[str, Any]:
    managed: Dict[str, Any] = {
        key: [
            {"name": name, inner: body}
            for name, body in getattr(doc, key).items()
        ]
        for key, inner in _NAMED_LISTS.items()
    }
    managed[_CURRENT_CONTEXT] = doc.current_context or ""
    # Keys absent from the input stay absent unless they gained content.
    managed = {
        key: value
        for key, value in managed.items()
        if key in doc.key_order or value
    }

    out: Dict[str, Any] = {}
    for key in doc.key_order:
        if key in managed:
            out[key] = managed.pop(key)
        elif key in doc.extra:
            out[key] = doc.extra[key]
    for key, value in doc.extra.items():
        out.setdefault(key, value)
    out.update(managed)
    return out


def serialize_document(doc: KubeconfigDocument) -> bytes:
    """Write a KubeconfigDocument back to YAML bytes."""

    try:
        text = yaml.safe_dump(_to_dict(doc), default_flow_style=False, sort_keys=False)
    except yaml.YAMLError as exc:
        raise KubeconfigFormatError(f"cannot serialize kubeconfig: {exc}") from exc
    return text.encode("utf-8")


def rename_identity(doc: KubeconfigDocument, new_name: str) -> KubeconfigDocument:
    """
    Rename the single cluster of a kubeconfig, its context and current-context.

    The provider keys all three by the cluster UUID. Every context that
    references the cluster is re-pointed at the new name. The rename works on
    a copy, so the input document is never left half renamed.

    Args:
        doc: Parsed kubeconfig holding at most one cluster
        new_name: Name that replaces the cluster UUID

    Returns:
        A renamed copy of ``doc`` (an unchanged copy if it has no cluster)

    Raises:
        KubeconfigFormatError: If the document holds more than one cluster
    """

    if not new_name:
        raise KubeconfigFormatError("new cluster name must not be empty")
    if len(doc.clusters) > 1:
        raise KubeconfigFormatError(
            f"expected exactly one cluster, found {len(doc.clusters)}: "
            f"{', '.join(sorted(doc.clusters))}"
        )

    renamed = copy.deepcopy(doc)
    if not renamed.clusters:
        return renamed

    old_name = next(iter(renamed.clusters))
    if old_name == new_name:
        return renamed

    # Rebuild the maps so the renamed entry keeps its position.
    renamed.clusters = {
        (new_name if name == old_name else name): body
        for name, body in renamed.clusters.items()
    }

    for context in renamed.contexts.values():
        if context.get("cluster") == old_name:
            context["cluster"] = new_name

    if old_name in renamed.contexts:
        renamed.contexts = {
            (new_name if name == old_name else name): body
            for name, body in renamed.contexts.items()
        }

    if renamed.current_context == old_name:
        renamed.current_context = new_name

    return renamed
