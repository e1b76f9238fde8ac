from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from kube_capacity.models.inventory import (
    ContainerResources,
    NamespaceRecord,
    NodeRecord,
    NodeResources,
    ResourceAmounts,
    WorkloadUnit,
)


def node(
    name: str,
    *,
    labels: Optional[Dict[str, str]] = None,
    ready: bool = True,
    unschedulable: bool = False,
    pods: str = "110",
    cpu: str = "4",
    memory: str = "2Gi",
    storage: Optional[str] = "100Gi",
    alloc_cpu: Optional[str] = None,
    alloc_memory: Optional[str] = None,
) -> NodeRecord:
    return NodeRecord(
        name=name,
        labels=labels or {},
        ready=ready,
        unschedulable=unschedulable,
        capacity=NodeResources(pods=pods, cpu=cpu, memory=memory, ephemeral_storage=storage),
        allocatable=NodeResources(
            pods=pods,
            cpu=alloc_cpu or cpu,
            memory=alloc_memory or memory,
            ephemeral_storage=storage,
        ),
    )


def pod(
    name: str,
    namespace: str = "default",
    node_name: str = "",
    *,
    phase: str = "Running",
    requests: Optional[List[Dict[str, str]]] = None,
    limits: Optional[List[Dict[str, str]]] = None,
) -> WorkloadUnit:
    requests = requests or [{}]
    limits = list(limits or [])
    limits += [{}] * (len(requests) - len(limits))
    containers = [
        ContainerResources(
            name=f"c{i}",
            requests=ResourceAmounts(
                cpu=req.get("cpu"),
                memory=req.get("memory"),
                ephemeral_storage=req.get("ephemeral-storage"),
            ),
            limits=ResourceAmounts(
                cpu=lim.get("cpu"),
                memory=lim.get("memory"),
                ephemeral_storage=lim.get("ephemeral-storage"),
            ),
        )
        for i, (req, lim) in enumerate(zip(requests, limits))
    ]
    return WorkloadUnit(
        name=name, namespace=namespace, node_name=node_name, phase=phase, containers=containers
    )


@pytest.fixture
def make_node():
    return node


@pytest.fixture
def make_pod():
    return pod


@pytest.fixture
def small_cluster():
    """Three nodes; worker-0 carries two roles, one pod has no node."""
    nodes = [
        node("master-0", labels={"node-role.kubernetes.io/master": ""}, cpu="4", alloc_cpu="3500m"),
        node(
            "worker-0",
            labels={"node-role.kubernetes.io/worker": "", "node-role.kubernetes.io/infra": ""},
            cpu="8",
            alloc_cpu="7500m",
        ),
        node(
            "worker-1",
            labels={"kubernetes.io/role": "worker"},
            ready=False,
            unschedulable=True,
            cpu="8",
            alloc_cpu="7500m",
        ),
    ]
    units = [
        pod(
            "web-1",
            "app",
            "worker-0",
            requests=[{"cpu": "500m", "memory": "512Mi"}],
            limits=[{"cpu": "1", "memory": "1Gi"}],
        ),
        pod("web-2", "app", "worker-1", requests=[{"cpu": "250m", "memory": "256Mi"}, {}]),
        pod("job-1", "app", "worker-0", phase="Succeeded", requests=[{"cpu": "2"}]),
        pod("pending-1", "app", "", phase="Pending", requests=[{"cpu": "100m", "memory": "128Mi"}]),
        pod(
            "etcd",
            "kube-system",
            "master-0",
            requests=[{"cpu": "100m", "memory": "100Mi", "ephemeral-storage": "1Gi"}],
        ),
    ]
    namespaces = [NamespaceRecord(name=n) for n in ("app", "kube-system", "empty-ns")]
    return nodes, units, namespaces
