from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from kube_capacity.core.config import (
    CapacityConfig,
    DisplayOptions,
    Grouping,
    OutputFormat,
    DEFAULT_LOG_LEVEL,
)
from kube_capacity.core.log import configure_logging
from kube_capacity.core.orchestrator import orchestrate
from kube_capacity.output.render import render_json, render_table, render_yaml


app = typer.Typer(add_completion=False, help="Cluster size and capacity, by cluster, node role, node and namespace")


_OUTPUT = typer.Option("table", "--output", "-o", case_sensitive=False, help="Output format: table|json|yaml")
_DEFAULT_FORMAT = typer.Option(
    False, "--default-format", "-d", help="Show exact quantities instead of cores/GiB/GB"
)
_NO_HEADERS = typer.Option(False, "--no-headers", help="No headers in table output")
_EPHEMERAL = typer.Option(
    False, "--ephemeral-storage", "-e", help="Include ephemeral storage columns in table output"
)
_UNASSIGNED = typer.Option(
    False, "--unassigned", "-u", help="Include a row for pods that have no node"
)
_TOTAL = typer.Option(False, "--display-total", "-t", help="Append a row summing every other row")
_SNAPSHOT = typer.Option(
    None,
    "--snapshot",
    "-f",
    help="Read nodes/pods/namespaces from YAML or JSON files instead of the cluster",
)
_KUBECONFIG = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file")
_CONTEXT = typer.Option(None, "--context", help="Kubeconfig context to use")
_WORKERS = typer.Option(1, "--workers", help="Threads used to compute groupings (all command)")
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr")


def _run(
    groupings: List[Grouping],
    *,
    output: str,
    default_format: bool,
    no_headers: bool,
    ephemeral_storage: bool,
    snapshot: Optional[List[Path]],
    kubeconfig: Optional[str],
    context: Optional[str],
    verbose: bool,
    unassigned: bool = False,
    display_total: bool = False,
    sort_by_role: bool = False,
    namespace: Optional[str] = None,
    all_namespaces: bool = False,
    workers: int = 1,
) -> None:
    try:
        fmt = OutputFormat(output.lower())
    except ValueError:
        typer.echo("Unknown output format. Use table|json|yaml.", err=True)
        raise typer.Exit(code=2)

    cfg = CapacityConfig(
        output=fmt,
        display=DisplayOptions(
            human=not default_format,
            headers=not no_headers,
            ephemeral_storage=ephemeral_storage,
            show_all=all_namespaces,
        ),
        unassigned=unassigned,
        display_total=display_total,
        sort_by_role=sort_by_role,
        namespace=namespace,
        snapshot_files=[str(p) for p in snapshot or []],
        kubeconfig=kubeconfig,
        context=context,
        max_workers=workers,
        log_level="DEBUG" if verbose else DEFAULT_LOG_LEVEL,
    )
    configure_logging(cfg.log_level)

    # Nothing is printed unless every grouping was computed.
    try:
        reports = orchestrate(groupings, cfg)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"Fatal error: {exc}", err=True)
        raise typer.Exit(code=1)

    if fmt is OutputFormat.TABLE:
        render_table(reports, cfg.display)
    elif fmt is OutputFormat.JSON:
        typer.echo(render_json(reports))
    else:
        typer.echo(render_yaml(reports), nl=False)

    raise typer.Exit(code=0)


@app.command("cluster")
def cluster(
    output: str = _OUTPUT,
    default_format: bool = _DEFAULT_FORMAT,
    no_headers: bool = _NO_HEADERS,
    ephemeral_storage: bool = _EPHEMERAL,
    snapshot: Optional[List[Path]] = _SNAPSHOT,
    kubeconfig: Optional[str] = _KUBECONFIG,
    context: Optional[str] = _CONTEXT,
    verbose: bool = _VERBOSE,
):
    """Get cluster capacity data."""
    _run(
        [Grouping.CLUSTER],
        output=output,
        default_format=default_format,
        no_headers=no_headers,
        ephemeral_storage=ephemeral_storage,
        snapshot=snapshot,
        kubeconfig=kubeconfig,
        context=context,
        verbose=verbose,
    )


@app.command("node-role")
def node_role(
    output: str = _OUTPUT,
    default_format: bool = _DEFAULT_FORMAT,
    no_headers: bool = _NO_HEADERS,
    ephemeral_storage: bool = _EPHEMERAL,
    unassigned: bool = _UNASSIGNED,
    snapshot: Optional[List[Path]] = _SNAPSHOT,
    kubeconfig: Optional[str] = _KUBECONFIG,
    context: Optional[str] = _CONTEXT,
    verbose: bool = _VERBOSE,
):
    """Get cluster capacity data grouped by node role.

    A node with several roles is counted under each of them.
    """
    _run(
        [Grouping.NODE_ROLE],
        output=output,
        default_format=default_format,
        no_headers=no_headers,
        ephemeral_storage=ephemeral_storage,
        unassigned=unassigned,
        snapshot=snapshot,
        kubeconfig=kubeconfig,
        context=context,
        verbose=verbose,
    )


@app.command("node")
def node(
    output: str = _OUTPUT,
    default_format: bool = _DEFAULT_FORMAT,
    no_headers: bool = _NO_HEADERS,
    ephemeral_storage: bool = _EPHEMERAL,
    unassigned: bool = _UNASSIGNED,
    display_total: bool = _TOTAL,
    sort_by_role: bool = typer.Option(False, "--sort-by-role", "-r", help="Sort output by node role"),
    snapshot: Optional[List[Path]] = _SNAPSHOT,
    kubeconfig: Optional[str] = _KUBECONFIG,
    context: Optional[str] = _CONTEXT,
    verbose: bool = _VERBOSE,
):
    """Get individual node capacity."""
    _run(
        [Grouping.NODE],
        output=output,
        default_format=default_format,
        no_headers=no_headers,
        ephemeral_storage=ephemeral_storage,
        unassigned=unassigned,
        display_total=display_total,
        sort_by_role=sort_by_role,
        snapshot=snapshot,
        kubeconfig=kubeconfig,
        context=context,
        verbose=verbose,
    )


@app.command("namespace")
def namespace(
    output: str = _OUTPUT,
    default_format: bool = _DEFAULT_FORMAT,
    no_headers: bool = _NO_HEADERS,
    ephemeral_storage: bool = _EPHEMERAL,
    display_total: bool = _TOTAL,
    namespace_name: Optional[str] = typer.Option(None, "--namespace", "-n", help="Only this namespace"),
    all_namespaces: bool = typer.Option(
        False, "--all-namespaces", "-A", help="Include namespaces without pods in table output"
    ),
    snapshot: Optional[List[Path]] = _SNAPSHOT,
    kubeconfig: Optional[str] = _KUBECONFIG,
    context: Optional[str] = _CONTEXT,
    verbose: bool = _VERBOSE,
):
    """Get namespace size."""
    _run(
        [Grouping.NAMESPACE],
        output=output,
        default_format=default_format,
        no_headers=no_headers,
        ephemeral_storage=ephemeral_storage,
        display_total=display_total,
        namespace=namespace_name,
        all_namespaces=all_namespaces,
        snapshot=snapshot,
        kubeconfig=kubeconfig,
        context=context,
        verbose=verbose,
    )


@app.command("all")
def all_groupings(
    output: str = _OUTPUT,
    default_format: bool = _DEFAULT_FORMAT,
    no_headers: bool = _NO_HEADERS,
    ephemeral_storage: bool = _EPHEMERAL,
    unassigned: bool = _UNASSIGNED,
    display_total: bool = _TOTAL,
    workers: int = _WORKERS,
    snapshot: Optional[List[Path]] = _SNAPSHOT,
    kubeconfig: Optional[str] = _KUBECONFIG,
    context: Optional[str] = _CONTEXT,
    verbose: bool = _VERBOSE,
):
    """Every grouping from a single inventory snapshot."""
    _run(
        list(Grouping),
        output=output,
        default_format=default_format,
        no_headers=no_headers,
        ephemeral_storage=ephemeral_storage,
        unassigned=unassigned,
        display_total=display_total,
        workers=workers,
        snapshot=snapshot,
        kubeconfig=kubeconfig,
        context=context,
        verbose=verbose,
    )


app.command("c", hidden=True)(cluster)
app.command("nr", hidden=True)(node_role)
app.command("no", hidden=True)(node)
app.command("ns", hidden=True)(namespace)


if __name__ == "__main__":  # pragma: no cover
    app()
