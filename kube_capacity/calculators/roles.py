from __future__ import annotations

from typing import List, Mapping, Optional


ROLE_LABEL_PREFIX = "node-role.kubernetes.io/"
LEGACY_ROLE_LABEL = "kubernetes.io/role"
NO_ROLE = "<none>"


def classify_roles(labels: Optional[Mapping[str, str]]) -> List[str]:
    """Return the sorted, de-duplicated role names carried by a node's labels.

    ``node-role.kubernetes.io/<role>`` contributes ``<role>`` (the value is
    ignored) and ``kubernetes.io/role=<role>`` contributes its value. Empty
    roles are dropped. A node without any role maps to ``<none>``.
    """
    roles: set[str] = set()
    for key, value in (labels or {}).items():
        if key.startswith(ROLE_LABEL_PREFIX):
            role = key[len(ROLE_LABEL_PREFIX):]
            if role:
                roles.add(role)
        elif key == LEGACY_ROLE_LABEL and value:
            roles.add(value)
    if not roles:
        roles.add(NO_ROLE)
    return sorted(roles)


def role_signature(roles: List[str]) -> str:
    """Comma-joined role list used to group nodes sharing the same roles."""
    return ",".join(roles)
