from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, Field


TERMINAL_PHASES = frozenset({"Succeeded", "Failed"})


def _wire_string(value: Any) -> Optional[str]:
    # Quantities stay in wire form until the walker reads them; YAML may hand
    # us bare numbers such as ``pods: 110``.
    if value is None:
        return None
    return str(value)


WireQuantity = Annotated[Optional[str], BeforeValidator(_wire_string)]


class NodeResources(BaseModel):
    pods: WireQuantity = None
    cpu: WireQuantity = None
    memory: WireQuantity = None
    ephemeral_storage: WireQuantity = None


class NodeRecord(BaseModel):
    name: str
    labels: Dict[str, str] = Field(default_factory=dict)
    ready: bool = False
    unschedulable: bool = False
    capacity: NodeResources = Field(default_factory=NodeResources)
    allocatable: NodeResources = Field(default_factory=NodeResources)


class ResourceAmounts(BaseModel):
    cpu: WireQuantity = None
    memory: WireQuantity = None
    ephemeral_storage: WireQuantity = None


class ContainerResources(BaseModel):
    name: str = "unnamed"
    requests: ResourceAmounts = Field(default_factory=ResourceAmounts)
    limits: ResourceAmounts = Field(default_factory=ResourceAmounts)


class WorkloadUnit(BaseModel):
    name: str
    namespace: str
    node_name: str = ""
    phase: Optional[str] = None
    containers: List[ContainerResources] = Field(default_factory=list)

    @property
    def is_assigned(self) -> bool:
        return bool(self.node_name)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


class NamespaceRecord(BaseModel):
    name: str


@dataclass(slots=True)
class Snapshot:
    """Point-in-time inventory handed to the aggregation functions."""

    nodes: List[NodeRecord] = field(default_factory=list)
    units: List[WorkloadUnit] = field(default_factory=list)
    namespaces: List[NamespaceRecord] = field(default_factory=list)

    def for_namespace(self, name: str) -> "Snapshot":
        return Snapshot(
            nodes=self.nodes,
            units=[u for u in self.units if u.namespace == name],
            namespaces=[ns for ns in self.namespaces if ns.name == name],
        )
