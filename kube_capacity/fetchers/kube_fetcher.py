from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from kube_capacity.core.exceptions import FetchError
from kube_capacity.models.inventory import NamespaceRecord, NodeRecord, Snapshot, WorkloadUnit
from kube_capacity.parsers.snapshot_parser import namespace_from_dict, node_from_dict, unit_from_dict


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500


def _api_client(kubeconfig: Optional[str], context: Optional[str]) -> client.ApiClient:
    try:
        config.load_kube_config(config_file=kubeconfig, context=context)
    except config.ConfigException:
        if kubeconfig or context:
            raise
        config.load_incluster_config()
    return client.ApiClient()


class KubeFetcher:
    """Lists nodes, pods and namespaces from the cluster API.

    Every failure, whether loading credentials or listing, surfaces as
    ``FetchError``. Nothing is retried.
    """

    def __init__(
        self,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        api: Optional[client.CoreV1Api] = None,
    ) -> None:
        self.page_size = page_size
        if api is not None:
            self._api = api
            self._client = api.api_client
            return
        try:
            self._client = _api_client(kubeconfig, context)
        except Exception as e:  # noqa: BLE001
            raise FetchError(f"failed to load cluster credentials: {e}") from e
        self._api = client.CoreV1Api(self._client)

    def _pages(self, what: str, list_fn: Callable[..., Any], **kwargs: Any) -> Iterator[Dict]:
        token: Optional[str] = None
        while True:
            try:
                if token:
                    resp = list_fn(limit=self.page_size, _continue=token, **kwargs)
                else:
                    resp = list_fn(limit=self.page_size, **kwargs)
            except ApiException as e:
                raise FetchError(f"failed to list {what}: {e.status} {e.reason}") from e
            except Exception as e:  # noqa: BLE001
                raise FetchError(f"failed to list {what}: {e}") from e
            for item in resp.items or []:
                yield self._client.sanitize_for_serialization(item)
            token = resp.metadata._continue if resp.metadata else None
            if not token:
                return

    def list_nodes(self) -> List[NodeRecord]:
        return [node_from_dict(n) for n in self._pages("nodes", self._api.list_node)]

    def list_workload_units(self, namespace: Optional[str] = None) -> List[WorkloadUnit]:
        kwargs: Dict[str, Any] = {}
        if namespace:
            kwargs["field_selector"] = f"metadata.namespace={namespace}"
        pages = self._pages("pods", self._api.list_pod_for_all_namespaces, **kwargs)
        return [unit_from_dict(p) for p in pages]

    def list_namespaces(self, name: Optional[str] = None) -> List[NamespaceRecord]:
        kwargs: Dict[str, Any] = {}
        if name:
            kwargs["field_selector"] = f"metadata.name={name}"
        pages = self._pages("namespaces", self._api.list_namespace, **kwargs)
        return [namespace_from_dict(ns) for ns in pages]


def fetch_snapshot(
    fetcher: KubeFetcher,
    *,
    namespace: Optional[str] = None,
    with_nodes: bool = True,
    with_namespaces: bool = False,
) -> Snapshot:
    """Gather everything up front; any FetchError aborts before aggregation."""
    snapshot = Snapshot(
        nodes=fetcher.list_nodes() if with_nodes else [],
        units=fetcher.list_workload_units(namespace),
        namespaces=fetcher.list_namespaces(namespace) if with_namespaces else [],
    )
    logger.info(
        "fetched %d nodes, %d pods, %d namespaces",
        len(snapshot.nodes),
        len(snapshot.units),
        len(snapshot.namespaces),
    )
    return snapshot
