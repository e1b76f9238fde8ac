from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Dict, Iterable, List, Optional, Tuple

from kube_capacity.calculators.roles import classify_roles
from kube_capacity.models.inventory import (
    NamespaceRecord,
    NodeRecord,
    NodeResources,
    ResourceAmounts,
    WorkloadUnit,
)
from kube_capacity.models.quantity import Quantity, QuantityFormat
from kube_capacity.utils.units import parse_quantity


logger = logging.getLogger(__name__)

UNASSIGNED = "*unassigned*"


@dataclass(slots=True)
class Diagnostics:
    """Counts quantity fields that were read as zero instead of failing the walk."""

    missing_fields: int = 0
    malformed_fields: int = 0
    orphaned_units: int = 0
    malformed_values: List[str] = field(default_factory=list)

    def read(self, raw: Optional[str], fmt: QuantityFormat, *, context: str) -> Quantity:
        if raw is None or raw == "":
            self.missing_fields += 1
            return Quantity.zero(fmt)
        try:
            return parse_quantity(raw)
        except ValueError:
            self.malformed_fields += 1
            self.malformed_values.append(f"{context}: {raw!r}")
            logger.debug("%s: malformed quantity %r, counted as zero", context, raw)
            return Quantity.zero(fmt)


@dataclass(slots=True)
class Dimensions:
    pods: Quantity = field(default_factory=Quantity)
    cpu: Quantity = field(default_factory=Quantity)
    memory: Quantity = field(default_factory=Quantity)
    ephemeral_storage: Quantity = field(default_factory=Quantity)

    def add(self, other: "Dimensions") -> None:
        self.pods = self.pods + other.pods
        self.cpu = self.cpu + other.cpu
        self.memory = self.memory + other.memory
        self.ephemeral_storage = self.ephemeral_storage + other.ephemeral_storage


@dataclass(slots=True)
class Accumulator:
    """Running totals for one grouping key; created zeroed on first touch."""

    node_count: int = 0
    ready_node_count: int = 0
    unschedulable_node_count: int = 0
    pod_count: int = 0
    non_term_pod_count: int = 0
    unassigned_node_pod_count: int = 0
    capacity: Dimensions = field(default_factory=Dimensions)
    allocatable: Dimensions = field(default_factory=Dimensions)
    requests: Dimensions = field(default_factory=Dimensions)
    limits: Dimensions = field(default_factory=Dimensions)


@dataclass(slots=True)
class NodeInfo:
    roles: List[str]
    ready: bool
    schedulable: bool


@dataclass(slots=True)
class _UnitAmounts:
    requests: Dimensions
    limits: Dimensions


class InventoryWalker:
    """Single pass over nodes, then over workload units, filling accumulators.

    Each ``walk_*`` method owns the buckets it creates, so separate walks over
    the same snapshot share no mutable state. Unreadable quantities never
    abort a walk; they are counted on ``diagnostics`` and read as zero.
    """

    def __init__(self, diagnostics: Optional[Diagnostics] = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def _node_dimensions(self, res: NodeResources, context: str) -> Dimensions:
        d = self.diagnostics
        return Dimensions(
            pods=d.read(res.pods, QuantityFormat.DECIMAL_SI, context=f"{context} pods"),
            cpu=d.read(res.cpu, QuantityFormat.DECIMAL_SI, context=f"{context} cpu"),
            memory=d.read(res.memory, QuantityFormat.BINARY_SI, context=f"{context} memory"),
            ephemeral_storage=d.read(
                res.ephemeral_storage,
                QuantityFormat.BINARY_SI,
                context=f"{context} ephemeral-storage",
            ),
        )

    def _container_dimensions(self, res: ResourceAmounts, context: str) -> Dimensions:
        d = self.diagnostics
        return Dimensions(
            cpu=d.read(res.cpu, QuantityFormat.DECIMAL_SI, context=f"{context} cpu"),
            memory=d.read(res.memory, QuantityFormat.BINARY_SI, context=f"{context} memory"),
            ephemeral_storage=d.read(
                res.ephemeral_storage,
                QuantityFormat.BINARY_SI,
                context=f"{context} ephemeral-storage",
            ),
        )

    def _unit_amounts(self, unit: WorkloadUnit) -> Optional[_UnitAmounts]:
        # Terminal units only count toward pod totals.
        if unit.is_terminal:
            return None
        amounts = _UnitAmounts(requests=Dimensions(), limits=Dimensions())
        for c in unit.containers:
            ctx = f"pod {unit.namespace}/{unit.name} container {c.name}"
            amounts.requests.add(self._container_dimensions(c.requests, f"{ctx} requests"))
            amounts.limits.add(self._container_dimensions(c.limits, f"{ctx} limits"))
        return amounts

    def _add_node(self, acc: Accumulator, node: NodeRecord, capacity: Dimensions, allocatable: Dimensions) -> None:
        acc.node_count += 1
        if node.ready:
            acc.ready_node_count += 1
        if node.unschedulable:
            acc.unschedulable_node_count += 1
        acc.capacity.add(capacity)
        acc.allocatable.add(allocatable)

    @staticmethod
    def _add_unit(acc: Accumulator, amounts: Optional[_UnitAmounts]) -> None:
        acc.pod_count += 1
        if amounts is None:
            return
        acc.non_term_pod_count += 1
        acc.requests.add(amounts.requests)
        acc.limits.add(amounts.limits)

    def _read_node(self, node: NodeRecord) -> Tuple[Dimensions, Dimensions]:
        return (
            self._node_dimensions(node.capacity, f"node {node.name} capacity"),
            self._node_dimensions(node.allocatable, f"node {node.name} allocatable"),
        )

    def walk_cluster(self, nodes: Iterable[NodeRecord], units: Iterable[WorkloadUnit]) -> Accumulator:
        """Every node and every unit, assigned or not, lands in one bucket."""
        acc = Accumulator()
        for node in nodes:
            capacity, allocatable = self._read_node(node)
            self._add_node(acc, node, capacity, allocatable)
        for unit in units:
            self._add_unit(acc, self._unit_amounts(unit))
        return acc

    def walk_roles(
        self, nodes: Iterable[NodeRecord], units: Iterable[WorkloadUnit]
    ) -> Dict[str, Accumulator]:
        """One bucket per role plus ``*unassigned*``.

        A node with several roles is added in full to each of them, so role
        totals can exceed the cluster totals.
        """
        buckets: DefaultDict[str, Accumulator] = defaultdict(Accumulator)
        roles_by_node: Dict[str, List[str]] = {}
        for node in nodes:
            roles = classify_roles(node.labels)
            capacity, allocatable = self._read_node(node)
            for role in roles:
                self._add_node(buckets[role], node, capacity, allocatable)
            roles_by_node[node.name] = roles

        buckets[UNASSIGNED] = Accumulator()
        roles_by_node[UNASSIGNED] = [UNASSIGNED]
        for unit in units:
            roles = roles_by_node.get(unit.node_name or UNASSIGNED)
            if roles is None:
                self._orphaned(unit)
                continue
            amounts = self._unit_amounts(unit)
            for role in roles:
                self._add_unit(buckets[role], amounts)
        return dict(buckets)

    def walk_nodes(
        self, nodes: Iterable[NodeRecord], units: Iterable[WorkloadUnit]
    ) -> Tuple[Dict[str, Accumulator], Dict[str, NodeInfo]]:
        """One bucket per node plus ``*unassigned*``, with each node's roles and status."""
        buckets: DefaultDict[str, Accumulator] = defaultdict(Accumulator)
        info: Dict[str, NodeInfo] = {}
        for node in nodes:
            capacity, allocatable = self._read_node(node)
            self._add_node(buckets[node.name], node, capacity, allocatable)
            info[node.name] = NodeInfo(
                roles=classify_roles(node.labels),
                ready=node.ready,
                schedulable=not node.unschedulable,
            )

        buckets[UNASSIGNED] = Accumulator()
        for unit in units:
            key = unit.node_name or UNASSIGNED
            if key not in buckets:
                self._orphaned(unit)
                continue
            self._add_unit(buckets[key], self._unit_amounts(unit))
        return dict(buckets), info

    def walk_namespaces(
        self, namespaces: Iterable[NamespaceRecord], units: Iterable[WorkloadUnit]
    ) -> Dict[str, Accumulator]:
        """One bucket per listed namespace and per namespace first seen on a unit."""
        buckets: DefaultDict[str, Accumulator] = defaultdict(Accumulator)
        for ns in namespaces:
            buckets.setdefault(ns.name, Accumulator())
        for unit in units:
            acc = buckets[unit.namespace]
            if not unit.is_assigned:
                acc.unassigned_node_pod_count += 1
            self._add_unit(acc, self._unit_amounts(unit))
        return dict(buckets)

    def _orphaned(self, unit: WorkloadUnit) -> None:
        self.diagnostics.orphaned_units += 1
        logger.warning(
            "pod %s/%s is bound to unknown node %r; left out of node and role rollups",
            unit.namespace,
            unit.name,
            unit.node_name,
        )
