from __future__ import annotations

import json

import pytest
import yaml
from rich.console import Console

from kube_capacity.core.aggregate import (
    aggregate_by_namespace,
    aggregate_by_node,
    aggregate_by_role,
    aggregate_cluster,
)
from kube_capacity.core.config import DisplayOptions, Grouping
from kube_capacity.core.orchestrator import CapacityReport
from kube_capacity.models.results import NodeRollup
from kube_capacity.output.render import (
    load_rollups,
    node_status,
    render_json,
    render_table,
    render_yaml,
)


def _text(reports, opts) -> str:
    console = Console(record=True, width=400)
    render_table(reports, opts, console=console)
    return console.export_text()


@pytest.fixture
def reports(small_cluster):
    nodes, units, namespaces = small_cluster
    return {
        Grouping.CLUSTER: CapacityReport(Grouping.CLUSTER, aggregate_cluster(nodes, units)),
        Grouping.NODE_ROLE: CapacityReport(
            Grouping.NODE_ROLE, aggregate_by_role(nodes, units, include_unassigned=True)
        ),
        Grouping.NODE: CapacityReport(
            Grouping.NODE,
            aggregate_by_node(nodes, units, include_unassigned=True, include_total=True),
        ),
        Grouping.NAMESPACE: CapacityReport(
            Grouping.NAMESPACE, aggregate_by_namespace(namespaces, units, include_total=True)
        ),
    }


def test_cluster_table_human(reports):
    out = _text([reports[Grouping.CLUSTER]], DisplayOptions())
    assert "NODES" in out
    assert "CPU (cores)" in out
    assert "MEMORY (GiB)" in out
    assert "EPHEMERAL" not in out
    assert "18.5" in out


def test_cluster_table_exact_with_storage(reports):
    out = _text([reports[Grouping.CLUSTER]], DisplayOptions(human=False, ephemeral_storage=True))
    assert "CPU (cores)" not in out
    assert "EPHEMERAL STORAGE" in out
    assert "950m" in out
    assert "18500m" in out
    assert "996Mi" in out
    assert "299Gi" in out


def test_no_headers(reports):
    out = _text([reports[Grouping.CLUSTER]], DisplayOptions(headers=False))
    assert "NODES" not in out
    assert "Allocatable" not in out


def test_role_table_lists_roles(reports):
    out = _text([reports[Grouping.NODE_ROLE]], DisplayOptions(human=False))
    lines = out.splitlines()
    assert any(line.lstrip().startswith("infra") for line in lines)
    assert any(line.lstrip().startswith("*unassigned*") for line in lines)
    assert "-100m" in out


def test_node_table_status_and_roles(reports):
    out = _text([reports[Grouping.NODE]], DisplayOptions())
    assert "NotReady,Unschedulable" in out
    assert "infra,worker" in out
    assert "*total*" in out


def test_node_status():
    assert node_status("*total*", _node_row(ready=True)) == ""
    assert node_status("n1", _node_row(ready=None)) == ""
    assert node_status("n1", _node_row(ready=True, schedulable=True)) == "Ready"
    assert node_status("n1", _node_row(ready=False, schedulable=False)) == "NotReady,Unschedulable"


def _node_row(**kwargs):
    return NodeRollup(**kwargs)


def test_namespace_table_hides_empty(reports):
    out = _text([reports[Grouping.NAMESPACE]], DisplayOptions(human=False))
    assert "kube-system" in out
    assert "empty-ns" not in out
    assert "Unassigned" in out
    assert "850m" in out
    shown = _text([reports[Grouping.NAMESPACE]], DisplayOptions(human=False, show_all=True))
    assert "empty-ns" in shown


def test_json_uses_wire_names(reports):
    doc = json.loads(render_json([reports[Grouping.CLUSTER]]))
    assert doc["TotalNodeCount"] == 3
    assert doc["TotalRequestsCPU"] == "950m"
    assert doc["TotalRequestsCPUCores"] == pytest.approx(0.95)
    assert doc["TotalAvailableMemory"] == "5148Mi"
    assert doc["TotalCapacityPods"] == "330"
    assert doc["TotalAvailablePods"] == 326


def test_json_keyed_rows(reports):
    doc = json.loads(render_json([reports[Grouping.NODE]]))
    assert list(doc) == ["master-0", "worker-0", "worker-1", "*unassigned*", "*total*"]
    assert doc["worker-0"]["Roles"] == ["infra", "worker"]
    assert doc["*unassigned*"]["Ready"] is None


def test_several_reports_keyed_by_grouping(reports):
    doc = yaml.safe_load(render_yaml(list(reports.values())))
    assert list(doc) == ["cluster", "node-role", "node", "namespace"]
    assert doc["namespace"]["app"]["TotalUnassignedNodePodCount"] == 1


@pytest.mark.parametrize("grouping", list(Grouping))
def test_json_and_yaml_load_back(reports, grouping):
    report = reports[grouping]
    assert load_rollups(render_json([report]), grouping) == report.rollups
    assert load_rollups(render_yaml([report]), grouping) == report.rollups
