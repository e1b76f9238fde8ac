from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

import yaml

from kube_capacity.core.exceptions import SnapshotError
from kube_capacity.models.inventory import (
    ContainerResources,
    NamespaceRecord,
    NodeRecord,
    NodeResources,
    ResourceAmounts,
    Snapshot,
    WorkloadUnit,
)


logger = logging.getLogger(__name__)

SUPPORTED_KINDS = {"Node", "Pod", "Namespace"}


def _ensure_list(x: Optional[Iterable]) -> List:
    if not x:
        return []
    return list(x)


def _ensure_dict(x: Any) -> Dict:
    return x if isinstance(x, dict) else {}


def parse_snapshot(paths: List[str]) -> Snapshot:
    """Read Node, Pod and Namespace objects from YAML or JSON documents.

    Accepts multi-document YAML and ``List`` wrappers such as the output of
    ``kubectl get nodes,pods,namespaces -A -o yaml``.
    """
    snapshot = Snapshot()
    for p in paths:
        path = Path(p)
        if not path.exists():
            raise SnapshotError(f"File not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                docs = list(yaml.safe_load_all(f))
        except yaml.YAMLError as e:
            raise SnapshotError(f"YAML parse error in {path}: {e}") from e
        except (UnicodeDecodeError, OSError) as e:
            raise SnapshotError(f"Cannot read {path}: {e}") from e

        for obj in _iter_objects(docs):
            add_object(snapshot, obj)

    logger.info(
        "snapshot: %d nodes, %d pods, %d namespaces",
        len(snapshot.nodes),
        len(snapshot.units),
        len(snapshot.namespaces),
    )
    return snapshot


def _iter_objects(docs: Iterable[Any]) -> Iterator[Dict]:
    for doc in docs:
        if not doc or not isinstance(doc, dict):
            continue
        kind = str(doc.get("kind") or "")
        if kind == "List" or kind.endswith("List"):
            # Items of a typed list (NodeList, PodList) omit their own kind.
            item_kind = kind[: -len("List")] or None
            for item in _ensure_list(doc.get("items")):
                if isinstance(item, dict):
                    if item_kind and "kind" not in item:
                        item = {**item, "kind": item_kind}
                    yield item
            continue
        yield doc


def add_object(snapshot: Snapshot, obj: Dict) -> None:
    kind = obj.get("kind")
    if kind not in SUPPORTED_KINDS:
        logger.debug("skipping unsupported kind %r", kind)
        return
    if kind == "Node":
        snapshot.nodes.append(node_from_dict(obj))
    elif kind == "Pod":
        snapshot.units.append(unit_from_dict(obj))
    else:
        snapshot.namespaces.append(namespace_from_dict(obj))


def node_from_dict(obj: Dict) -> NodeRecord:
    meta = _ensure_dict(obj.get("metadata"))
    spec = _ensure_dict(obj.get("spec"))
    status = _ensure_dict(obj.get("status"))

    ready = any(
        _ensure_dict(c).get("type") == "Ready" and _ensure_dict(c).get("status") == "True"
        for c in _ensure_list(status.get("conditions"))
    )
    return NodeRecord(
        name=meta.get("name", "unnamed"),
        # A label written without a value reads back as null.
        labels={
            str(k): "" if v is None else str(v)
            for k, v in _ensure_dict(meta.get("labels")).items()
        },
        ready=ready,
        unschedulable=bool(spec.get("unschedulable", False)),
        capacity=_node_resources(status.get("capacity")),
        allocatable=_node_resources(status.get("allocatable")),
    )


def _node_resources(raw: Any) -> NodeResources:
    res = _ensure_dict(raw)
    return NodeResources(
        pods=res.get("pods"),
        cpu=res.get("cpu"),
        memory=res.get("memory"),
        ephemeral_storage=res.get("ephemeral-storage"),
    )


def _resource_amounts(raw: Any) -> ResourceAmounts:
    res = _ensure_dict(raw)
    return ResourceAmounts(
        cpu=res.get("cpu"),
        memory=res.get("memory"),
        ephemeral_storage=res.get("ephemeral-storage"),
    )


def unit_from_dict(obj: Dict) -> WorkloadUnit:
    meta = _ensure_dict(obj.get("metadata"))
    spec = _ensure_dict(obj.get("spec"))
    status = _ensure_dict(obj.get("status"))

    # Init containers are not counted toward requests or limits.
    containers = []
    for c in _ensure_list(spec.get("containers")):
        c = _ensure_dict(c)
        resources = _ensure_dict(c.get("resources"))
        containers.append(
            ContainerResources(
                name=c.get("name", "unnamed"),
                requests=_resource_amounts(resources.get("requests")),
                limits=_resource_amounts(resources.get("limits")),
            )
        )
    return WorkloadUnit(
        name=meta.get("name", "unnamed"),
        namespace=meta.get("namespace") or "default",
        node_name=spec.get("nodeName") or "",
        phase=status.get("phase"),
        containers=containers,
    )


def namespace_from_dict(obj: Dict) -> NamespaceRecord:
    meta = _ensure_dict(obj.get("metadata"))
    return NamespaceRecord(name=meta.get("name", "unnamed"))
