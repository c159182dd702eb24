from __future__ import annotations

from typing import Callable, Iterable

from .models import NO_ACTION, DeployDecision, Node, NodeType, Version


def _versions_for_type(
    nodes: Iterable[Node], node_type: NodeType, to_version: Callable[[Node], Version | None]
) -> frozenset[Version]:
    return frozenset(v for v in (to_version(n) for n in nodes if n.type == node_type) if v is not None)


def current_versions(nodes: Iterable[Node], node_type: NodeType) -> frozenset[Version]:
    """Versions reported as running by nodes of the given type."""
    return _versions_for_type(nodes, node_type, lambda n: n.current_version)


def wanted_versions(nodes: Iterable[Node], node_type: NodeType) -> frozenset[Version]:
    """Versions the cluster membership of nodes of the given type asks for."""
    return _versions_for_type(nodes, node_type, lambda n: n.wanted_version)


def decide(nodes: Iterable[Node]) -> DeployDecision:
    """Decide which version, if any, the zone application should be deployed with.

    Config servers are the source of truth for the platform version. Once they
    all report the same version, and the proxies do not already want exactly
    that version, the zone application is deployed with it.
    """
    nodes = list(nodes)
    config_versions = current_versions(nodes, NodeType.config)
    proxy_versions = wanted_versions(nodes, NodeType.proxy)

    # Config servers are being upgraded (or none report yet); wait.
    if len(config_versions) != 1:
        return NO_ACTION

    # Strict set equality: proxies wanting a superset still get a deploy.
    if config_versions == proxy_versions:
        return NO_ACTION

    (version,) = config_versions
    return DeployDecision.deploy(version)
