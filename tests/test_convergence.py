import random

import pytest

from zad.convergence import current_versions, decide, wanted_versions
from zad.models import NO_ACTION, DeployDecision, Node, NodeType, Version

V710 = Version.from_string("7.1.0")
V709 = Version.from_string("7.0.9")


def cfg(host, current):
    return Node(host, NodeType.config, current_version=current)


def proxy(host, wanted, current=None):
    return Node(host, NodeType.proxy, current_version=current, wanted_version=wanted)


def test_converged_fleet_needs_no_deploy():
    nodes = [cfg("cfg1", V710), cfg("cfg2", V710)] + [proxy(f"proxy{i}", V710) for i in range(3)]
    assert decide(nodes) == NO_ACTION


def test_config_servers_disagree_is_ambiguous():
    nodes = [cfg("cfg1", V710), cfg("cfg2", V709), proxy("proxy1", V709)]
    assert decide(nodes) == NO_ACTION


def test_proxies_behind_config_servers_get_deploy():
    nodes = [cfg("cfg1", V710), cfg("cfg2", V710)] + [proxy(f"proxy{i}", V709) for i in range(3)]
    decision = decide(nodes)
    assert decision == DeployDecision.deploy(V710)
    assert decision.should_deploy
    assert decision.target == V710


def test_empty_snapshot():
    assert decide([]) == NO_ACTION
    assert not decide([]).should_deploy


def test_no_proxies_means_deploy():
    # Empty wanted set differs from the singleton config set.
    assert decide([cfg("cfg1", V710)]) == DeployDecision.deploy(V710)


def test_config_servers_without_reported_version_contribute_nothing():
    nodes = [cfg("cfg1", V710), cfg("cfg2", None), proxy("proxy1", V709)]
    assert decide(nodes) == DeployDecision.deploy(V710)


def test_no_config_server_reports_a_version():
    nodes = [cfg("cfg1", None), proxy("proxy1", V709)]
    assert decide(nodes) == NO_ACTION


def test_unallocated_proxies_are_ignored():
    nodes = [cfg("cfg1", V710), proxy("proxy1", V710), proxy("proxy2", None)]
    assert decide(nodes) == NO_ACTION


def test_proxies_wanting_a_superset_still_deploy():
    nodes = [cfg("cfg1", V710), proxy("proxy1", V710), proxy("proxy2", V709)]
    assert decide(nodes) == DeployDecision.deploy(V710)


def test_config_wanted_and_proxy_current_versions_are_not_used():
    nodes = [
        Node("cfg1", NodeType.config, current_version=V710, wanted_version=V709),
        proxy("proxy1", V710, current=V709),
    ]
    assert decide(nodes) == NO_ACTION


def test_other_node_types_are_ignored():
    nodes = [
        cfg("cfg1", V710),
        proxy("proxy1", V710),
        Node("host1", NodeType.confighost, current_version=V709),
        Node("tenant1", NodeType.tenant, current_version=V709, wanted_version=V709),
        Node("ph1", NodeType.proxyhost, wanted_version=V709),
    ]
    assert decide(nodes) == NO_ACTION


def test_decision_is_independent_of_order_and_repetition():
    nodes = [cfg("cfg1", V710), cfg("cfg2", V710), proxy("p1", V709), proxy("p2", V710), proxy("p3", None)]
    expected = decide(nodes)
    rng = random.Random(7)
    for _ in range(20):
        shuffled = list(nodes)
        rng.shuffle(shuffled)
        assert decide(shuffled) == expected
    assert decide(iter(nodes)) == expected


def test_version_sets():
    nodes = [cfg("cfg1", V710), cfg("cfg2", V709), proxy("p1", V709)]
    assert current_versions(nodes, NodeType.config) == {V710, V709}
    assert wanted_versions(nodes, NodeType.proxy) == {V709}
    assert wanted_versions(nodes, NodeType.config) == frozenset()


@pytest.mark.parametrize(
    "raw,full",
    [("7.1.0", "7.1.0"), ("7", "7.0.0"), ("7.1", "7.1.0"), ("7.1.2.rc1", "7.1.2.rc1")],
)
def test_version_full_string(raw, full):
    assert Version.from_string(raw).to_full_string() == full


def test_version_ordering_and_equality():
    assert Version.from_string("7.1") == V710
    assert V709 < V710 < Version.from_string("7.10.0")
    assert len({Version.from_string("7.1.0"), V710}) == 1


@pytest.mark.parametrize("raw", ["", "seven", "7..1", "7.1.0.", "-1.0"])
def test_invalid_version(raw):
    with pytest.raises(ValueError):
        Version.from_string(raw)
