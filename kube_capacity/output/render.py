from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import yaml
from rich.console import Console
from rich.measure import Measurement
from rich.table import Table

from kube_capacity.calculators.rollup import TOTAL
from kube_capacity.calculators.walker import UNASSIGNED
from kube_capacity.core.config import DisplayOptions, Grouping
from kube_capacity.core.orchestrator import CapacityReport, Rollups
from kube_capacity.models.results import (
    ClusterRollup,
    NamespaceRollup,
    NodeRollup,
    RollupRecord,
)
from kube_capacity.utils.units import format_quantity


# (field stem, human suffix, heading, human unit)
_DIMENSIONS = [
    ("cpu", "cores", "CPU", "cores"),
    ("memory", "gib", "MEMORY", "GiB"),
    ("ephemeral_storage", "gb", "EPHEMERAL STORAGE", "GB"),
]
_CAPACITY_KINDS = [
    ("capacity", "Capacity"),
    ("allocatable", "Allocatable"),
    ("requests", "Requests"),
    ("limits", "Limits"),
    ("available", "Avail"),
]
_WORKLOAD_KINDS = [("requests", "Requests"), ("limits", "Limits")]

_MODELS: Dict[Grouping, Type[RollupRecord]] = {
    Grouping.CLUSTER: ClusterRollup,
    Grouping.NODE_ROLE: ClusterRollup,
    Grouping.NODE: NodeRollup,
    Grouping.NAMESPACE: NamespaceRollup,
}


def _dimensions(opts: DisplayOptions) -> List[Tuple[str, str, str, str]]:
    return _DIMENSIONS if opts.ephemeral_storage else _DIMENSIONS[:2]


def _heading(title: str, unit: str, opts: DisplayOptions) -> str:
    return f"{title} ({unit})" if opts.human else title


def _add_group(table: Table, heading: str, columns: Sequence[str]) -> None:
    for i, col in enumerate(columns):
        table.add_column(f"{heading}\n{col}" if i == 0 else f"\n{col}", justify="right")


def _amount(rec: RollupRecord, kind: str, stem: str, suffix: str, opts: DisplayOptions) -> str:
    name = f"total_{kind}_{stem}"
    if opts.human:
        return f"{getattr(rec, f'{name}_{suffix}'):.1f}"
    return format_quantity(getattr(rec, name))


def _new_table(opts: DisplayOptions) -> Table:
    return Table(show_header=opts.headers, box=None, pad_edge=False, header_style="bold")


def _capacity_columns(table: Table, opts: DisplayOptions) -> None:
    for _, _, title, unit in _dimensions(opts):
        _add_group(table, _heading(title, unit, opts), [label for _, label in _CAPACITY_KINDS])


def _pod_cells(rec: ClusterRollup) -> List[str]:
    return [
        format_quantity(rec.total_capacity_pods),
        format_quantity(rec.total_allocatable_pods),
        str(rec.total_pod_count),
        str(rec.total_non_term_pod_count),
        str(rec.total_available_pods),
    ]


def _capacity_cells(rec: ClusterRollup, opts: DisplayOptions) -> List[str]:
    cells: List[str] = []
    for stem, suffix, _, _ in _dimensions(opts):
        cells.extend(_amount(rec, kind, stem, suffix, opts) for kind, _ in _CAPACITY_KINDS)
    return cells


def _node_count_cells(rec: ClusterRollup) -> List[str]:
    return [
        str(rec.total_node_count),
        str(rec.total_ready_node_count),
        str(rec.total_unready_node_count),
        str(rec.total_unschedulable_node_count),
    ]


def build_cluster_table(rec: ClusterRollup, opts: DisplayOptions) -> Table:
    table = _new_table(opts)
    _add_group(table, "NODES", ["Total", "Ready", "Unready", "Unsch"])
    _add_group(table, "PODS", ["Capacity", "Allocatable", "Total", "Non-Term", "Avail"])
    _capacity_columns(table, opts)
    table.add_row(*_node_count_cells(rec), *_pod_cells(rec), *_capacity_cells(rec, opts))
    return table


def build_role_table(rollups: Dict[str, ClusterRollup], opts: DisplayOptions) -> Table:
    table = _new_table(opts)
    table.add_column("ROLE")
    _add_group(table, "NODES", ["Total", "Ready", "Unready", "Unsch"])
    _add_group(table, "PODS", ["Capacity", "Allocatable", "Total", "Non-Term", "Avail"])
    _capacity_columns(table, opts)
    for role, rec in rollups.items():
        table.add_row(role, *_node_count_cells(rec), *_pod_cells(rec), *_capacity_cells(rec, opts))
    return table


def node_status(name: str, rec: NodeRollup) -> str:
    if name in (UNASSIGNED, TOTAL) or rec.ready is None:
        return ""
    status = "Ready" if rec.ready else "NotReady"
    if rec.schedulable is False:
        status += ",Unschedulable"
    return status


def build_node_table(rollups: Dict[str, NodeRollup], opts: DisplayOptions) -> Table:
    table = _new_table(opts)
    table.add_column("NAME")
    table.add_column("STATUS")
    table.add_column("ROLES")
    _add_group(table, "PODS", ["Capacity", "Allocatable", "Total", "Non-Term", "Avail"])
    _capacity_columns(table, opts)
    for name, rec in rollups.items():
        table.add_row(
            name,
            node_status(name, rec),
            ",".join(rec.roles),
            *_pod_cells(rec),
            *_capacity_cells(rec, opts),
        )
    return table


def build_namespace_table(rollups: Dict[str, NamespaceRollup], opts: DisplayOptions) -> Table:
    table = _new_table(opts)
    table.add_column("NAMESPACE")
    _add_group(table, "PODS", ["Total", "Non-Term", "Unassigned"])
    for _, _, title, unit in _dimensions(opts):
        _add_group(table, _heading(title, unit, opts), [label for _, label in _WORKLOAD_KINDS])
    for name, rec in rollups.items():
        # Namespaces without pods are listed only on request.
        if rec.total_pod_count == 0 and not opts.show_all:
            continue
        cells = [
            str(rec.total_pod_count),
            str(rec.total_non_term_pod_count),
            str(rec.total_unassigned_node_pod_count),
        ]
        for stem, suffix, _, _ in _dimensions(opts):
            cells.extend(_amount(rec, kind, stem, suffix, opts) for kind, _ in _WORKLOAD_KINDS)
        table.add_row(name, *cells)
    return table


def build_table(report: CapacityReport, opts: DisplayOptions) -> Table:
    if report.grouping is Grouping.CLUSTER:
        return build_cluster_table(report.rollups, opts)
    if report.grouping is Grouping.NODE_ROLE:
        return build_role_table(report.rollups, opts)
    if report.grouping is Grouping.NODE:
        return build_node_table(report.rollups, opts)
    return build_namespace_table(report.rollups, opts)


def render_table(
    reports: Sequence[CapacityReport], opts: DisplayOptions, console: Optional[Console] = None
) -> None:
    console = console or Console()
    for report in reports:
        table = build_table(report, opts)
        # Wide tables overflow the terminal rather than being squeezed.
        measure = Measurement.get(console, console.options.update_width(10_000), table)
        console.print(table, width=max(console.width, measure.maximum), crop=False)


def to_document(rollups: Rollups) -> Any:
    if isinstance(rollups, RollupRecord):
        return rollups.model_dump(mode="json", by_alias=True)
    return {name: rec.model_dump(mode="json", by_alias=True) for name, rec in rollups.items()}


def _documents(reports: Sequence[CapacityReport]) -> Any:
    if len(reports) == 1:
        return to_document(reports[0].rollups)
    return {r.grouping.value: to_document(r.rollups) for r in reports}


def render_json(reports: Sequence[CapacityReport]) -> str:
    return json.dumps(_documents(reports), indent=2)


def render_yaml(reports: Sequence[CapacityReport]) -> str:
    return yaml.safe_dump(_documents(reports), sort_keys=False, default_flow_style=False)


def load_rollups(document: str, grouping: Grouping) -> Rollups:
    """Parse a JSON or YAML rendering back into rollup models."""
    data = yaml.safe_load(document)
    model = _MODELS[grouping]
    if grouping is Grouping.CLUSTER:
        return model.model_validate(data)
    return {name: model.model_validate(rec) for name, rec in (data or {}).items()}
