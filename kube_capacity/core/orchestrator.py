from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from kube_capacity.calculators.walker import Diagnostics
from kube_capacity.core.aggregate import (
    aggregate_by_namespace,
    aggregate_by_node,
    aggregate_by_role,
    aggregate_cluster,
)
from kube_capacity.core.config import CapacityConfig, Grouping
from kube_capacity.models.inventory import Snapshot
from kube_capacity.models.results import ClusterRollup, RollupRecord
from kube_capacity.parsers.snapshot_parser import parse_snapshot


logger = logging.getLogger(__name__)

Rollups = Union[ClusterRollup, Dict[str, RollupRecord]]


@dataclass(slots=True)
class CapacityReport:
    grouping: Grouping
    rollups: Rollups
    diagnostics: Diagnostics = field(default_factory=Diagnostics)


def gather(cfg: CapacityConfig, groupings: Sequence[Grouping]) -> Snapshot:
    """Load the full inventory before any aggregation starts."""
    if cfg.snapshot_files:
        return parse_snapshot(cfg.snapshot_files)

    from kube_capacity.fetchers.kube_fetcher import KubeFetcher, fetch_snapshot

    fetcher = KubeFetcher(kubeconfig=cfg.kubeconfig, context=cfg.context)
    only_namespaces = all(g is Grouping.NAMESPACE for g in groupings)
    return fetch_snapshot(
        fetcher,
        namespace=cfg.namespace if only_namespaces else None,
        with_nodes=not only_namespaces,
        with_namespaces=Grouping.NAMESPACE in groupings,
    )


def aggregate(snapshot: Snapshot, grouping: Grouping, cfg: CapacityConfig) -> CapacityReport:
    diagnostics = Diagnostics()
    rollups: Rollups
    if grouping is Grouping.CLUSTER:
        rollups = aggregate_cluster(snapshot.nodes, snapshot.units, diagnostics=diagnostics)
    elif grouping is Grouping.NODE_ROLE:
        rollups = aggregate_by_role(
            snapshot.nodes,
            snapshot.units,
            include_unassigned=cfg.unassigned,
            diagnostics=diagnostics,
        )
    elif grouping is Grouping.NODE:
        rollups = aggregate_by_node(
            snapshot.nodes,
            snapshot.units,
            include_unassigned=cfg.unassigned,
            include_total=cfg.display_total,
            sort_by_role=cfg.sort_by_role,
            diagnostics=diagnostics,
        )
    else:
        source = snapshot.for_namespace(cfg.namespace) if cfg.namespace else snapshot
        rollups = aggregate_by_namespace(
            source.namespaces,
            source.units,
            include_total=cfg.display_total,
            diagnostics=diagnostics,
        )

    if diagnostics.malformed_fields or diagnostics.orphaned_units:
        logger.warning(
            "%s: %d malformed quantities read as zero, %d pods on unknown nodes",
            grouping.value,
            diagnostics.malformed_fields,
            diagnostics.orphaned_units,
        )
    return CapacityReport(grouping=grouping, rollups=rollups, diagnostics=diagnostics)


def aggregate_all(
    snapshot: Snapshot,
    cfg: CapacityConfig,
    groupings: Sequence[Grouping] = tuple(Grouping),
) -> List[CapacityReport]:
    """Run several groupings over one read-only snapshot.

    Walks share no accumulators, so with ``cfg.max_workers > 1`` they run on
    a thread pool. Results come back in the order of ``groupings``.
    """

    def run(g: Grouping) -> CapacityReport:
        return aggregate(snapshot, g, cfg)

    if cfg.max_workers <= 1 or len(groupings) <= 1:
        return [run(g) for g in groupings]
    with ThreadPoolExecutor(max_workers=cfg.max_workers) as executor:
        return list(executor.map(run, groupings))


def orchestrate(
    groupings: Sequence[Grouping], cfg: CapacityConfig, snapshot: Optional[Snapshot] = None
) -> List[CapacityReport]:
    if snapshot is None:
        snapshot = gather(cfg, groupings)
    return aggregate_all(snapshot, cfg, groupings)
