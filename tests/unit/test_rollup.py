from __future__ import annotations

import pytest

from kube_capacity.calculators.rollup import (
    assemble,
    finalize_cluster,
    finalize_namespace,
    finalize_node,
    order_by_role,
    sorted_names,
    total_of,
)
from kube_capacity.calculators.walker import Accumulator, Dimensions, NodeInfo
from kube_capacity.models.results import NamespaceRollup, NodeRollup
from kube_capacity.utils.units import format_quantity, parse_quantity


def _acc(**kwargs) -> Accumulator:
    acc = Accumulator(**kwargs)
    acc.capacity = Dimensions(
        pods=parse_quantity("110"),
        cpu=parse_quantity("4"),
        memory=parse_quantity("8Gi"),
        ephemeral_storage=parse_quantity("100G"),
    )
    acc.allocatable = Dimensions(
        pods=parse_quantity("110"),
        cpu=parse_quantity("3500m"),
        memory=parse_quantity("7Gi"),
        ephemeral_storage=parse_quantity("90G"),
    )
    acc.requests = Dimensions(cpu=parse_quantity("4"), memory=parse_quantity("1Gi"))
    acc.limits = Dimensions(cpu=parse_quantity("8"))
    return acc


def test_finalize_cluster_derived_fields():
    rec = finalize_cluster(_acc(node_count=2, ready_node_count=1, pod_count=12, non_term_pod_count=10))
    assert rec.total_unready_node_count == 1
    assert rec.total_available_pods == 100
    assert format_quantity(rec.total_available_cpu) == "-500m"
    assert rec.total_available_cpu_cores == pytest.approx(-0.5)
    assert format_quantity(rec.total_available_memory) == "6Gi"
    assert rec.total_available_memory_gib == pytest.approx(6.0)
    assert format_quantity(rec.total_available_ephemeral_storage) == "90G"
    assert rec.total_available_ephemeral_storage_gb == pytest.approx(90.0)
    assert rec.total_limits_cpu_cores == pytest.approx(8.0)


def test_finalize_node_with_and_without_info():
    info = NodeInfo(roles=["worker"], ready=True, schedulable=False)
    rec = finalize_node(_acc(node_count=1, ready_node_count=1), info)
    assert rec.roles == ["worker"]
    assert rec.ready is True
    assert rec.schedulable is False
    synthetic = finalize_node(Accumulator(pod_count=1, non_term_pod_count=1))
    assert synthetic.roles == []
    assert synthetic.ready is None
    assert synthetic.total_available_pods == -1


def test_finalize_namespace():
    rec = finalize_namespace(_acc(pod_count=3, non_term_pod_count=2, unassigned_node_pod_count=1))
    assert isinstance(rec, NamespaceRollup)
    assert rec.total_unassigned_node_pod_count == 1
    assert format_quantity(rec.total_requests_cpu) == "4"
    assert not hasattr(rec, "total_available_cpu")


def test_total_of_sums_rows():
    rows = [
        finalize_node(_acc(node_count=1, ready_node_count=1, pod_count=2), NodeInfo(["a"], True, True)),
        finalize_node(_acc(node_count=1, pod_count=3), NodeInfo(["b"], False, True)),
    ]
    total = total_of(rows, NodeRollup)
    assert total.total_node_count == 2
    assert total.total_ready_node_count == 1
    assert total.total_pod_count == 5
    assert format_quantity(total.total_capacity_cpu) == "8"
    assert format_quantity(total.total_available_cpu) == "-1"
    assert total.total_capacity_cpu_cores == pytest.approx(8.0)
    assert total.roles == []
    assert total.ready is None


def test_total_of_nothing_is_zero():
    total = total_of([], NamespaceRollup)
    assert total.total_pod_count == 0
    assert format_quantity(total.total_requests_memory) == "0"


def test_sorted_names_case_sensitive():
    assert sorted_names(["b", "A", "a"]) == ["A", "a", "b"]


def test_order_by_role_groups_signatures():
    info = {
        "n3": NodeInfo(["worker"], True, True),
        "n1": NodeInfo(["worker"], True, True),
        "m1": NodeInfo(["master"], True, True),
        "x1": NodeInfo(["infra", "worker"], True, True),
    }
    assert order_by_role(info) == ["x1", "m1", "n1", "n3"]


def test_assemble_follows_order():
    records = {"a": 1, "b": 2, "c": 3}
    assert list(assemble(records, ["c", "a"])) == ["c", "a"]
