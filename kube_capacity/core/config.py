from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


class Grouping(str, Enum):
    CLUSTER = "cluster"
    NODE_ROLE = "node-role"
    NODE = "node"
    NAMESPACE = "namespace"


@dataclass(slots=True)
class DisplayOptions:
    human: bool = True
    headers: bool = True
    ephemeral_storage: bool = False
    show_all: bool = False


@dataclass(slots=True)
class CapacityConfig:
    output: OutputFormat = OutputFormat.TABLE
    display: DisplayOptions = field(default_factory=DisplayOptions)
    unassigned: bool = False
    display_total: bool = False
    sort_by_role: bool = False
    namespace: Optional[str] = None
    snapshot_files: List[str] = field(default_factory=list)
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    max_workers: int = 1
    log_level: str = DEFAULT_LOG_LEVEL
