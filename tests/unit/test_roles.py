from kube_capacity.calculators.roles import NO_ROLE, classify_roles, role_signature


def test_prefixed_labels_ignore_value():
    labels = {"node-role.kubernetes.io/worker": "", "node-role.kubernetes.io/infra": "true"}
    assert classify_roles(labels) == ["infra", "worker"]


def test_legacy_label_uses_value():
    assert classify_roles({"kubernetes.io/role": "master"}) == ["master"]


def test_roles_are_deduplicated():
    labels = {"kubernetes.io/role": "worker", "node-role.kubernetes.io/worker": ""}
    assert classify_roles(labels) == ["worker"]


def test_empty_roles_dropped():
    labels = {"node-role.kubernetes.io/": "", "kubernetes.io/role": ""}
    assert classify_roles(labels) == [NO_ROLE]


def test_no_labels_is_none_role():
    assert classify_roles({}) == ["<none>"]
    assert classify_roles(None) == ["<none>"]
    assert classify_roles({"kubernetes.io/hostname": "n1"}) == ["<none>"]


def test_signature():
    assert role_signature(["infra", "worker"]) == "infra,worker"
    assert role_signature(["<none>"]) == "<none>"
