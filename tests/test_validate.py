import re

import pytest

from kindkit import errors
from kindkit.config import (
    Cluster,
    ClusterIPFamily,
    Node,
    NodeRole,
    PortMapping,
    set_defaults_cluster,
    set_defaults_node,
)
from kindkit.validate import validate_cluster, validate_node, validate_port


def _count_errors(exc):
    errs = errors.errors(exc)
    if not errs:
        errs = [exc]
    return len(errs)


def _new_defaulted_node(role):
    node = Node(role=role, image="myImage:latest")
    set_defaults_node(node)
    return node


def _defaulted(**changes):
    cluster = Cluster()
    set_defaults_cluster(cluster)
    for key, value in changes.items():
        setattr(cluster.networking, key, value)
    return cluster


def _case_defaulted():
    return _defaulted()


def _case_multiple_valid_nodes():
    cluster = _defaulted()
    cluster.nodes.extend(
        [_new_defaulted_node(NodeRole.WORKER), _new_defaulted_node(NodeRole.WORKER)]
    )
    return cluster


def _case_default_ipv6():
    cluster = Cluster()
    cluster.networking.ip_family = ClusterIPFamily.IPV6
    set_defaults_cluster(cluster)
    return cluster


def _case_missing_control_plane():
    cluster = _defaulted()
    cluster.nodes = []
    return cluster


def _case_bogus_node():
    cluster = Cluster(nodes=[Node(role="bogus"), Node()])
    set_defaults_cluster(cluster)
    return cluster


VALID_CLUSTER_CASES = [
    ("Defaulted", _case_defaulted),
    ("multiple valid nodes", _case_multiple_valid_nodes),
    ("default IPv6", _case_default_ipv6),
    (
        "valid dual stack podSubnet and serviceSubnet",
        lambda: _defaulted(
            pod_subnet="192.168.0.2/24,fd00:1::/25",
            service_subnet="192.168.0.2/24,fd00:1::/25",
            ip_family=ClusterIPFamily.DUAL_STACK,
        ),
    ),
    (
        "valid dual stack podSubnet and single stack serviceSubnet",
        lambda: _defaulted(
            pod_subnet="192.168.0.2/24,fd00:1::/25",
            service_subnet="192.168.0.2/24",
            ip_family=ClusterIPFamily.DUAL_STACK,
        ),
    ),
    (
        "valid dual stack serviceSubnet and single stack podSubnet",
        lambda: _defaulted(
            pod_subnet="192.168.0.2/24",
            service_subnet="192.168.0.2/24,fd00:1::/25",
            ip_family=ClusterIPFamily.DUAL_STACK,
        ),
    ),
]

INVALID_CLUSTER_CASES = [
    ("bogus podSubnet", lambda: _defaulted(pod_subnet="aa"), 1),
    ("bogus serviceSubnet", lambda: _defaulted(service_subnet="aa"), 1),
    ("bogus apiServerPort", lambda: _defaulted(api_server_port=9999999), 1),
    ("bogus kubeProxyMode", lambda: _defaulted(kube_proxy_mode="notiptables"), 1),
    (
        "invalid number of podSubnet",
        lambda: _defaulted(pod_subnet="192.168.0.2/24,2.2.2.0/24"),
        1,
    ),
    (
        "invalid dual stack podSubnet and multiple serviceSubnet",
        lambda: _defaulted(
            pod_subnet="192.168.0.2/24,fd00:1::/25",
            service_subnet="192.168.0.2/24,fd00:1::/25,10.0.0.0/16",
            ip_family=ClusterIPFamily.DUAL_STACK,
        ),
        1,
    ),
    (
        "bad dual stack podSubnet and serviceSubnet",
        lambda: _defaulted(
            pod_subnet="192.168.0.2/24,2.2.2.0/25",
            service_subnet="192.168.0.2/24,2.2.2.0/25",
            ip_family=ClusterIPFamily.DUAL_STACK,
        ),
        2,
    ),
    ("missing control-plane", _case_missing_control_plane, 1),
    ("bogus node", _case_bogus_node, 1),
]


@pytest.mark.parametrize("name,build", VALID_CLUSTER_CASES)
def test_cluster_validate_valid(name, build):
    assert validate_cluster(build()) is None


@pytest.mark.parametrize("name,build,expected", INVALID_CLUSTER_CASES)
def test_cluster_validate_invalid(name, build, expected):
    with pytest.raises(Exception) as info:
        validate_cluster(build())
    assert _count_errors(info.value) == expected


def test_cluster_validate_bad_name_message():
    cluster = _defaulted()
    cluster.name = "Bad_Name"
    with pytest.raises(
        Exception, match=re.escape("'Bad_Name' is not a valid cluster name")
    ) as info:
        validate_cluster(cluster)
    assert _count_errors(info.value) == 1
    assert "^[a-z0-9.-]+$" in str(info.value)


def _node_with(**changes):
    node = _new_defaulted_node(NodeRole.CONTROL_PLANE)
    for key, value in changes.items():
        setattr(node, key, value)
    return node


def test_node_validate_canonical():
    assert validate_node(_new_defaulted_node(NodeRole.CONTROL_PLANE)) is None
    assert validate_node(_new_defaulted_node(NodeRole.WORKER)) is None


@pytest.mark.parametrize(
    "name,node",
    [
        ("Empty image field", _node_with(image="")),
        ("Empty role field", _node_with(role="")),
        ("Unknown role field", _node_with(role="ssss")),
        (
            "Invalid ContainerPort",
            _node_with(
                extra_port_mappings=[PortMapping(container_port=999999999, host_port=8080)]
            ),
        ),
        (
            "Invalid HostPort",
            _node_with(
                extra_port_mappings=[PortMapping(container_port=8080, host_port=999999999)]
            ),
        ),
    ],
)
def test_node_validate_invalid(name, node):
    with pytest.raises(Exception) as info:
        validate_node(node)
    assert _count_errors(info.value) == 1


def test_node_validate_unknown_role_message():
    with pytest.raises(
        Exception, match="^" + re.escape('"ssss" is not a valid node role') + "$"
    ) as info:
        validate_node(_node_with(role="ssss"))
    assert _count_errors(info.value) == 1
    assert str(info.value) == '"ssss" is not a valid node role'


@pytest.mark.parametrize("port", [-1, 10])
def test_port_validate_valid(port):
    assert validate_port(port) is None


@pytest.mark.parametrize(
    "port,message",
    [(-2, "invalid port number: -2"), (65536, "invalid port number: 65536")],
)
def test_port_validate_invalid(port, message):
    with pytest.raises(Exception, match="^" + re.escape(message) + "$") as info:
        validate_port(port)
    assert _count_errors(info.value) == 1
    assert str(info.value) == message