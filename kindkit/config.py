"""The internal cluster configuration model and its defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

DEFAULT_CLUSTER_NAME = "kind"
"""The cluster name used when none is configured."""

DEFAULT_IMAGE = "kindest/node:latest"
"""The node image used when a node does not name one."""


class NodeRole(str, Enum):
    """The role of a node in the cluster."""

    CONTROL_PLANE = "control-plane"
    WORKER = "worker"


class ClusterIPFamily(str, Enum):
    """The IP family of the cluster network."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DUAL_STACK = "dual"


class ProxyMode(str, Enum):
    """The mode kube-proxy operates in."""

    IPTABLES = "iptables"
    IPVS = "ipvs"
    NONE = "none"


class MountPropagation(str, Enum):
    """How mounts propagate between host and container."""

    NONE = "None"
    HOST_TO_CONTAINER = "HostToContainer"
    BIDIRECTIONAL = "Bidirectional"


class PortMappingProtocol(str, Enum):
    """The protocol of a port mapping."""

    TCP = "TCP"
    UDP = "UDP"
    SCTP = "SCTP"


@dataclass
class PatchJSON6902:
    """An inline JSON 6902 patch and the resource it targets."""

    group: str = ""
    version: str = ""
    kind: str = ""
    patch: str = ""


@dataclass
class Mount:
    """A host path mounted into a node container."""

    container_path: str = ""
    host_path: str = ""
    readonly: bool = False
    selinux_relabel: bool = False
    propagation: Union[MountPropagation, str] = ""


@dataclass
class PortMapping:
    """A host port mapped to a node container port.

    A host port of 0 lets a random port be picked; -1 leaves the choice to the
    container backend.
    """

    container_port: int = 0
    host_port: int = 0
    listen_address: str = ""
    protocol: Union[PortMappingProtocol, str] = ""


@dataclass
class Networking:
    """Cluster-wide network settings."""

    ip_family: Union[ClusterIPFamily, str] = ""
    api_server_port: int = 0
    api_server_address: str = ""
    pod_subnet: str = ""
    service_subnet: str = ""
    disable_default_cni: bool = False
    kube_proxy_mode: Union[ProxyMode, str] = ""


@dataclass
class Node:
    """Settings for one node container of the cluster."""

    role: Union[NodeRole, str] = ""
    image: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    extra_mounts: list[Mount] = field(default_factory=list)
    extra_port_mappings: list[PortMapping] = field(default_factory=list)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(default_factory=list)


@dataclass
class Cluster:
    """The configuration of a whole cluster."""

    name: str = ""
    nodes: list[Node] = field(default_factory=list)
    networking: Networking = field(default_factory=Networking)
    feature_gates: dict[str, bool] = field(default_factory=dict)
    runtime_config: dict[str, str] = field(default_factory=dict)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(default_factory=list)
    containerd_config_patches: list[str] = field(default_factory=list)
    containerd_config_patches_json6902: list[str] = field(default_factory=list)


def set_defaults_cluster(obj: Cluster) -> None:
    """Fill in every unset field of obj, and of its nodes, with its default."""
    if not obj.name:
        obj.name = DEFAULT_CLUSTER_NAME

    if not obj.nodes:
        obj.nodes = [Node(role=NodeRole.CONTROL_PLANE, image=DEFAULT_IMAGE)]

    for node in obj.nodes:
        set_defaults_node(node)

    net = obj.networking
    if not net.ip_family:
        net.ip_family = ClusterIPFamily.IPV4

    if not net.api_server_address:
        net.api_server_address = (
            "::1" if net.ip_family == ClusterIPFamily.IPV6 else "127.0.0.1"
        )

    if not net.pod_subnet:
        if net.ip_family == ClusterIPFamily.IPV6:
            # the node mask defaults to /64, so a /56 leaves room for nodes
            net.pod_subnet = "fd00:10:244::/56"
        elif net.ip_family == ClusterIPFamily.DUAL_STACK:
            net.pod_subnet = "10.244.0.0/16,fd00:10:244::/56"
        else:
            net.pod_subnet = "10.244.0.0/16"

    if not net.service_subnet:
        if net.ip_family == ClusterIPFamily.IPV6:
            net.service_subnet = "fd00:10:96::/112"
        elif net.ip_family == ClusterIPFamily.DUAL_STACK:
            net.service_subnet = "10.96.0.0/16,fd00:10:96::/112"
        else:
            net.service_subnet = "10.96.0.0/16"

    if not net.kube_proxy_mode:
        net.kube_proxy_mode = ProxyMode.IPTABLES


def set_defaults_node(obj: Node) -> None:
    """Fill in the unset image and role of a node."""
    if not obj.image:
        obj.image = DEFAULT_IMAGE
    if not obj.role:
        obj.role = NodeRole.CONTROL_PLANE