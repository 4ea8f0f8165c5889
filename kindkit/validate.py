"""Validation of the internal cluster configuration."""

from __future__ import annotations

import ipaddress
import re
from enum import Enum
from typing import Any, Union

from kindkit import errors
from kindkit.config import (
    Cluster,
    ClusterIPFamily,
    Node,
    NodeRole,
    ProxyMode,
)

# similar to valid docker container names, relaxed since the name is
# prefixed and suffixed when naming containers
VALID_NAME_PATTERN = "^[a-z0-9.-]+$"
_VALID_NAME_RE = re.compile(r"[a-z0-9.-]+")

_DUAL_STACK_MESSAGE = (
    "expected one (IPv4 or IPv6) CIDR or two CIDRs from each family "
    "for dual-stack networking"
)

_Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def _value(item: Any) -> Any:
    return item.value if isinstance(item, Enum) else item


def _quote(text: Any) -> str:
    escaped = str(text).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def validate_cluster(cluster: Cluster) -> None:
    """Raise an error listing every problem with cluster, if there are any."""
    errs: list[BaseException] = []

    if not isinstance(cluster.name, str) or not _VALID_NAME_RE.fullmatch(cluster.name):
        errs.append(
            errors.errorf(
                "'%s' is not a valid cluster name, cluster names must match `%s`",
                cluster.name,
                VALID_NAME_PATTERN,
            )
        )

    net = cluster.networking
    # 0 means a random port is picked at runtime, so there is nothing to check
    if net.api_server_port != 0:
        try:
            validate_port(net.api_server_port)
        except Exception as err:  # noqa: BLE001 - collected into the aggregate
            errs.append(errors.wrapf(err, "invalid apiServerPort"))

    is_dual_stack = _value(net.ip_family) == ClusterIPFamily.DUAL_STACK.value
    try:
        _validate_subnets(net.pod_subnet, is_dual_stack)
    except Exception as err:  # noqa: BLE001
        errs.append(errors.errorf("invalid pod subnet %s", err))

    try:
        _validate_subnets(net.service_subnet, is_dual_stack)
    except Exception as err:  # noqa: BLE001
        errs.append(errors.errorf("invalid service subnet %s", err))

    mode = _value(net.kube_proxy_mode)
    if mode not in {m.value for m in ProxyMode}:
        errs.append(errors.errorf("invalid kubeProxyMode: %s", mode))

    num_by_role: dict[Any, int] = {}
    for index, node in enumerate(cluster.nodes):
        try:
            validate_node(node)
        except Exception as err:  # noqa: BLE001
            errs.append(
                errors.errorf("invalid configuration for node %d: %s", index, err)
            )
        role = _value(node.role)
        num_by_role[role] = num_by_role.get(role, 0) + 1

    if num_by_role.get(NodeRole.CONTROL_PLANE.value, 0) < 1:
        errs.append(
            errors.errorf("must have at least one %s node", NodeRole.CONTROL_PLANE.value)
        )

    if errs:
        raise errors.new_aggregate(errs)


def validate_node(node: Node) -> None:
    """Raise an error listing every problem with node, if there are any."""
    errs: list[BaseException] = []

    role = _value(node.role)
    if role not in (NodeRole.CONTROL_PLANE.value, NodeRole.WORKER.value):
        errs.append(errors.errorf("%s is not a valid node role", _quote(role)))

    if not node.image:
        errs.append(errors.new("image is a required field"))

    for mapping in node.extra_port_mappings:
        try:
            validate_port(mapping.host_port)
        except Exception as err:  # noqa: BLE001
            errs.append(errors.wrapf(err, "invalid hostPort"))
        try:
            validate_port(mapping.container_port)
        except Exception as err:  # noqa: BLE001
            errs.append(errors.wrapf(err, "invalid containerPort"))

    if errs:
        raise errors.new_aggregate(errs)


def validate_port(port: int) -> None:
    """Raise an error unless port is a valid port number or -1."""
    # -1 asks the container backend to pick the port
    if port < -1 or port > 65535:
        raise errors.errorf("invalid port number: %d", port)


def _parse_cidr(text: str) -> _Network:
    address, sep, prefix = text.partition("/")
    if not sep or not address or not (prefix.isascii() and prefix.isdigit()):
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError:
        raise ValueError(f"invalid CIDR address: {text}") from None


def _validate_subnets(subnets_text: str, dual_stack: bool) -> None:
    subnets = []
    for cidr_text in subnets_text.split(","):
        try:
            subnets.append(_parse_cidr(cidr_text))
        except ValueError as err:
            raise errors.new_without_stack(
                f"failed to parse cidr value:{_quote(cidr_text)} with error: {err}"
            ) from err

    errs: list[BaseException] = []
    if dual_stack and len(subnets) > 2:
        errs.append(errors.new(_DUAL_STACK_MESSAGE))
    elif dual_stack and len(subnets) == 2:
        if not _is_dual_stack_cidrs(subnets):
            errs.append(errors.new(_DUAL_STACK_MESSAGE))
    elif not dual_stack and len(subnets) > 1:
        errs.append(errors.new("only one CIDR allowed for single-stack networking"))

    if errs:
        raise errors.new_aggregate(errs)


def _is_v6(network: _Network) -> bool:
    if network.version != 6:
        return False
    # IPv4-mapped addresses count as IPv4
    return network.network_address.ipv4_mapped is None


def _is_dual_stack_cidrs(cidrs: list[_Network]) -> bool:
    v4_found = any(not _is_v6(cidr) for cidr in cidrs)
    v6_found = any(_is_v6(cidr) for cidr in cidrs)
    return v4_found and v6_found