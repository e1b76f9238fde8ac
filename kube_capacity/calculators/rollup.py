from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Type, TypeVar

from kube_capacity.calculators.roles import role_signature
from kube_capacity.calculators.walker import Accumulator, NodeInfo
from kube_capacity.models.quantity import Quantity
from kube_capacity.models.results import (
    ClusterRollup,
    NamespaceRollup,
    NodeRollup,
    RollupRecord,
)
from kube_capacity.utils.units import subtract, to_cores, to_gb, to_gib


TOTAL = "*total*"

R = TypeVar("R", bound=RollupRecord)


def _workload_fields(acc: Accumulator) -> dict:
    req, lim = acc.requests, acc.limits
    return dict(
        total_pod_count=acc.pod_count,
        total_non_term_pod_count=acc.non_term_pod_count,
        total_requests_cpu=req.cpu,
        total_requests_cpu_cores=to_cores(req.cpu),
        total_limits_cpu=lim.cpu,
        total_limits_cpu_cores=to_cores(lim.cpu),
        total_requests_memory=req.memory,
        total_requests_memory_gib=to_gib(req.memory),
        total_limits_memory=lim.memory,
        total_limits_memory_gib=to_gib(lim.memory),
        total_requests_ephemeral_storage=req.ephemeral_storage,
        total_requests_ephemeral_storage_gb=to_gb(req.ephemeral_storage),
        total_limits_ephemeral_storage=lim.ephemeral_storage,
        total_limits_ephemeral_storage_gb=to_gb(lim.ephemeral_storage),
    )


def _capacity_fields(acc: Accumulator) -> dict:
    cap, alloc, req = acc.capacity, acc.allocatable, acc.requests
    avail_cpu = subtract(alloc.cpu, req.cpu)
    avail_mem = subtract(alloc.memory, req.memory)
    avail_storage = subtract(alloc.ephemeral_storage, req.ephemeral_storage)
    return dict(
        total_node_count=acc.node_count,
        total_ready_node_count=acc.ready_node_count,
        total_unready_node_count=acc.node_count - acc.ready_node_count,
        total_unschedulable_node_count=acc.unschedulable_node_count,
        total_capacity_pods=cap.pods,
        total_capacity_cpu=cap.cpu,
        total_capacity_cpu_cores=to_cores(cap.cpu),
        total_capacity_memory=cap.memory,
        total_capacity_memory_gib=to_gib(cap.memory),
        total_capacity_ephemeral_storage=cap.ephemeral_storage,
        total_capacity_ephemeral_storage_gb=to_gb(cap.ephemeral_storage),
        total_allocatable_pods=alloc.pods,
        total_allocatable_cpu=alloc.cpu,
        total_allocatable_cpu_cores=to_cores(alloc.cpu),
        total_allocatable_memory=alloc.memory,
        total_allocatable_memory_gib=to_gib(alloc.memory),
        total_allocatable_ephemeral_storage=alloc.ephemeral_storage,
        total_allocatable_ephemeral_storage_gb=to_gb(alloc.ephemeral_storage),
        total_available_pods=alloc.pods.value() - acc.non_term_pod_count,
        total_available_cpu=avail_cpu,
        total_available_cpu_cores=to_cores(avail_cpu),
        total_available_memory=avail_mem,
        total_available_memory_gib=to_gib(avail_mem),
        total_available_ephemeral_storage=avail_storage,
        total_available_ephemeral_storage_gb=to_gb(avail_storage),
    )


def finalize_cluster(acc: Accumulator) -> ClusterRollup:
    return ClusterRollup(**_workload_fields(acc), **_capacity_fields(acc))


def finalize_node(acc: Accumulator, info: NodeInfo | None = None) -> NodeRollup:
    """Finalize a node bucket; ``info`` is None for synthetic rows."""
    extra: dict = {}
    if info is not None:
        extra = dict(roles=list(info.roles), ready=info.ready, schedulable=info.schedulable)
    return NodeRollup(**_workload_fields(acc), **_capacity_fields(acc), **extra)


def finalize_namespace(acc: Accumulator) -> NamespaceRollup:
    return NamespaceRollup(
        **_workload_fields(acc),
        total_unassigned_node_pod_count=acc.unassigned_node_pod_count,
    )


def total_of(records: Iterable[R], model: Type[R]) -> R:
    """Sum already-finalized records field by field.

    Exact quantities, counts and the float companions are all summed as they
    stand, so the total row always equals the rows above it. Non-numeric
    fields (roles, status) keep their defaults.
    """
    sums: dict = {}
    for rec in records:
        for name in model.model_fields:
            value = getattr(rec, name)
            if isinstance(value, bool) or not isinstance(value, (int, float, Quantity)):
                continue
            sums[name] = sums[name] + value if name in sums else value
    return model(**sums)


def sorted_names(names: Iterable[str]) -> List[str]:
    """Case-sensitive lexicographic order."""
    return sorted(names)


def order_by_role(info: Mapping[str, NodeInfo]) -> List[str]:
    """Node names grouped by role signature, lexicographic within each group."""
    groups: Dict[str, List[str]] = {}
    for name, node in info.items():
        groups.setdefault(role_signature(node.roles), []).append(name)
    ordered: List[str] = []
    for signature in sorted(groups):
        ordered.extend(sorted(groups[signature]))
    return ordered


def assemble(records: Mapping[str, R], order: Sequence[str]) -> Dict[str, R]:
    return {name: records[name] for name in order}
