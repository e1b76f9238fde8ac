from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator

from kube_capacity.models.quantity import Quantity
from kube_capacity.utils.units import coerce_quantity, format_quantity


# Exact amounts are written as canonical quantity strings ("850m", "2036452Ki")
# and read back through the same adapter.
ExactQuantity = Annotated[
    Quantity,
    PlainValidator(coerce_quantity),
    PlainSerializer(format_quantity, return_type=str),
]


def _quantity() -> Quantity:
    return Quantity()


class RollupRecord(BaseModel):
    """Pod counts plus requested and limit amounts for one grouping key."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    total_pod_count: int = Field(0, alias="TotalPodCount")
    total_non_term_pod_count: int = Field(0, alias="TotalNonTermPodCount")

    total_requests_cpu: ExactQuantity = Field(default_factory=_quantity, alias="TotalRequestsCPU")
    total_requests_cpu_cores: float = Field(0.0, alias="TotalRequestsCPUCores")
    total_limits_cpu: ExactQuantity = Field(default_factory=_quantity, alias="TotalLimitsCPU")
    total_limits_cpu_cores: float = Field(0.0, alias="TotalLimitsCPUCores")

    total_requests_memory: ExactQuantity = Field(default_factory=_quantity, alias="TotalRequestsMemory")
    total_requests_memory_gib: float = Field(0.0, alias="TotalRequestsMemoryGiB")
    total_limits_memory: ExactQuantity = Field(default_factory=_quantity, alias="TotalLimitsMemory")
    total_limits_memory_gib: float = Field(0.0, alias="TotalLimitsMemoryGiB")

    total_requests_ephemeral_storage: ExactQuantity = Field(
        default_factory=_quantity, alias="TotalRequestsEphemeralStorage"
    )
    total_requests_ephemeral_storage_gb: float = Field(0.0, alias="TotalRequestsEphemeralStorageGB")
    total_limits_ephemeral_storage: ExactQuantity = Field(
        default_factory=_quantity, alias="TotalLimitsEphemeralStorage"
    )
    total_limits_ephemeral_storage_gb: float = Field(0.0, alias="TotalLimitsEphemeralStorageGB")


class NamespaceRollup(RollupRecord):
    total_unassigned_node_pod_count: int = Field(0, alias="TotalUnassignedNodePodCount")


class ClusterRollup(RollupRecord):
    """Cluster-wide or per-role rollup.

    Available amounts are allocatable minus requested and go negative when the
    group is over-committed.
    """

    total_node_count: int = Field(0, alias="TotalNodeCount")
    total_ready_node_count: int = Field(0, alias="TotalReadyNodeCount")
    total_unready_node_count: int = Field(0, alias="TotalUnreadyNodeCount")
    total_unschedulable_node_count: int = Field(0, alias="TotalUnschedulableNodeCount")

    total_capacity_pods: ExactQuantity = Field(default_factory=_quantity, alias="TotalCapacityPods")
    total_capacity_cpu: ExactQuantity = Field(default_factory=_quantity, alias="TotalCapacityCPU")
    total_capacity_cpu_cores: float = Field(0.0, alias="TotalCapacityCPUCores")
    total_capacity_memory: ExactQuantity = Field(default_factory=_quantity, alias="TotalCapacityMemory")
    total_capacity_memory_gib: float = Field(0.0, alias="TotalCapacityMemoryGiB")
    total_capacity_ephemeral_storage: ExactQuantity = Field(
        default_factory=_quantity, alias="TotalCapacityEphemeralStorage"
    )
    total_capacity_ephemeral_storage_gb: float = Field(0.0, alias="TotalCapacityEphemeralStorageGB")

    total_allocatable_pods: ExactQuantity = Field(default_factory=_quantity, alias="TotalAllocatablePods")
    total_allocatable_cpu: ExactQuantity = Field(default_factory=_quantity, alias="TotalAllocatableCPU")
    total_allocatable_cpu_cores: float = Field(0.0, alias="TotalAllocatableCPUCores")
    total_allocatable_memory: ExactQuantity = Field(default_factory=_quantity, alias="TotalAllocatableMemory")
    total_allocatable_memory_gib: float = Field(0.0, alias="TotalAllocatableMemoryGiB")
    total_allocatable_ephemeral_storage: ExactQuantity = Field(
        default_factory=_quantity, alias="TotalAllocatableEphemeralStorage"
    )
    total_allocatable_ephemeral_storage_gb: float = Field(0.0, alias="TotalAllocatableEphemeralStorageGB")

    total_available_pods: int = Field(0, alias="TotalAvailablePods")
    total_available_cpu: ExactQuantity = Field(default_factory=_quantity, alias="TotalAvailableCPU")
    total_available_cpu_cores: float = Field(0.0, alias="TotalAvailableCPUCores")
    total_available_memory: ExactQuantity = Field(default_factory=_quantity, alias="TotalAvailableMemory")
    total_available_memory_gib: float = Field(0.0, alias="TotalAvailableMemoryGiB")
    total_available_ephemeral_storage: ExactQuantity = Field(
        default_factory=_quantity, alias="TotalAvailableEphemeralStorage"
    )
    total_available_ephemeral_storage_gb: float = Field(0.0, alias="TotalAvailableEphemeralStorageGB")


class NodeRollup(ClusterRollup):
    # None on the synthetic *unassigned* / *total* rows.
    roles: List[str] = Field(default_factory=list, alias="Roles")
    ready: Optional[bool] = Field(None, alias="Ready")
    schedulable: Optional[bool] = Field(None, alias="Schedulable")
