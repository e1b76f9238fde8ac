"""Pure aggregation entry points, one per grouping.

Every call builds its own buckets from scratch, walks the inventory once
and finalizes once; nothing is kept between calls.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from kube_capacity.calculators.rollup import (
    TOTAL,
    assemble,
    finalize_cluster,
    finalize_namespace,
    finalize_node,
    order_by_role,
    sorted_names,
    total_of,
)
from kube_capacity.calculators.walker import UNASSIGNED, Diagnostics, InventoryWalker
from kube_capacity.models.inventory import NamespaceRecord, NodeRecord, WorkloadUnit
from kube_capacity.models.results import ClusterRollup, NamespaceRollup, NodeRollup


def aggregate_cluster(
    nodes: Iterable[NodeRecord],
    units: Iterable[WorkloadUnit],
    *,
    diagnostics: Optional[Diagnostics] = None,
) -> ClusterRollup:
    # Units without a node still count here, so cluster pod totals can exceed
    # the sum of the per-node rows.
    acc = InventoryWalker(diagnostics).walk_cluster(nodes, units)
    return finalize_cluster(acc)


def aggregate_by_role(
    nodes: Iterable[NodeRecord],
    units: Iterable[WorkloadUnit],
    *,
    include_unassigned: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Dict[str, ClusterRollup]:
    """Rollups keyed by role name, sorted, with ``*unassigned*`` last if asked for.

    Role grouping is not a partition: a node carrying two roles is counted in
    full under both.
    """
    buckets = InventoryWalker(diagnostics).walk_roles(nodes, units)
    records = {name: finalize_cluster(acc) for name, acc in buckets.items()}
    order = sorted_names(name for name in records if name != UNASSIGNED)
    if include_unassigned:
        order.append(UNASSIGNED)
    return assemble(records, order)


def aggregate_by_node(
    nodes: Iterable[NodeRecord],
    units: Iterable[WorkloadUnit],
    *,
    include_unassigned: bool = False,
    include_total: bool = False,
    sort_by_role: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Dict[str, NodeRollup]:
    """Rollups keyed by node name.

    Nodes are sorted by name, or grouped by role signature when
    ``sort_by_role`` is set. ``*unassigned*`` and then ``*total*`` follow when
    requested; the total sums every row listed before it.
    """
    buckets, info = InventoryWalker(diagnostics).walk_nodes(nodes, units)
    records = {name: finalize_node(acc, info.get(name)) for name, acc in buckets.items()}

    order: List[str] = order_by_role(info) if sort_by_role else sorted_names(info)
    if include_unassigned:
        order.append(UNASSIGNED)
    result = assemble(records, order)
    if include_total:
        result[TOTAL] = total_of(result.values(), NodeRollup)
    return result


def aggregate_by_namespace(
    namespaces: Iterable[NamespaceRecord],
    units: Iterable[WorkloadUnit],
    *,
    include_total: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Dict[str, NamespaceRollup]:
    """Rollups keyed by namespace, sorted, with ``*total*`` last if asked for.

    Namespaces with no pods are kept; hiding them is a display choice.
    """
    buckets = InventoryWalker(diagnostics).walk_namespaces(namespaces, units)
    records = {name: finalize_namespace(acc) for name, acc in buckets.items()}
    result = assemble(records, sorted_names(records))
    if include_total:
        result[TOTAL] = total_of(records.values(), NamespaceRollup)
    return result
