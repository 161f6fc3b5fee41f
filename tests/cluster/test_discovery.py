"""Tests for CoordinatorDiscoveryService."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from innkeeper.cluster.application import CoordinatorDiscoveryService, ICoordinatorProbe
from innkeeper.cluster.domain import CoordinatorProbeResult, Node
from innkeeper.core import RepositoryException


class SlowProbe(ICoordinatorProbe):
    """Answers 'true' for every address, after a delay for the slow ones."""

    def __init__(self, slow_addresses, delay=5.0):
        self.slow_addresses = set(slow_addresses)
        self.delay = delay

    async def query_coordinator_flag(self, address):
        if address in self.slow_addresses:
            await asyncio.sleep(self.delay)
        return CoordinatorProbeResult(reachable=True, is_coordinator=True)


def node_repository(*addresses):
    repo = AsyncMock()
    repo.list_nodes.return_value = [
        Node(id=i + 1, ip_address=address, node_id=i + 1) for i, address in enumerate(addresses)
    ]
    return repo


class TestListNodesWithStatus:
    @pytest.mark.asyncio
    async def test_unreachable_peers_are_not_coordinators(self, fake_probe):
        fake_probe.answers = {"10.0.0.1": True, "10.0.0.2": False}
        service = CoordinatorDiscoveryService(
            node_repository("10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"),
            fake_probe,
            is_coordinator=lambda: False,
        )

        nodes = await service.list_nodes_with_status()

        assert [n.ip_address for n in nodes] == ["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"]
        assert [n.is_coordinator for n in nodes] == [True, False, False, False]
        assert sorted(fake_probe.calls) == ["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"]

    @pytest.mark.asyncio
    async def test_slow_peer_times_out(self):
        service = CoordinatorDiscoveryService(
            node_repository("fast", "slow"),
            SlowProbe(["slow"]),
            is_coordinator=lambda: False,
            timeout_seconds=0.05,
        )

        nodes = await service.list_nodes_with_status()

        assert [(n.ip_address, n.is_coordinator) for n in nodes] == [("fast", True), ("slow", False)]

    @pytest.mark.asyncio
    async def test_probe_bug_does_not_propagate(self):
        probe = AsyncMock(spec=ICoordinatorProbe)
        probe.query_coordinator_flag.side_effect = RuntimeError("unexpected")
        service = CoordinatorDiscoveryService(node_repository("a"), probe, is_coordinator=lambda: False)

        nodes = await service.list_nodes_with_status()

        assert nodes[0].is_coordinator is False

    @pytest.mark.asyncio
    async def test_split_brain_is_reported_not_resolved(self, fake_probe):
        fake_probe.answers = {"a": True, "b": True}
        service = CoordinatorDiscoveryService(node_repository("a", "b"), fake_probe, is_coordinator=lambda: True)

        nodes = await service.list_nodes_with_status()

        assert all(n.is_coordinator for n in nodes)

    @pytest.mark.asyncio
    async def test_no_nodes(self, fake_probe):
        service = CoordinatorDiscoveryService(node_repository(), fake_probe, is_coordinator=lambda: False)

        assert await service.list_nodes_with_status() == []

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, fake_probe):
        repo = AsyncMock()
        repo.list_nodes.side_effect = RepositoryException("Unable to list nodes")
        service = CoordinatorDiscoveryService(repo, fake_probe, is_coordinator=lambda: False)

        with pytest.raises(RepositoryException):
            await service.list_nodes_with_status()


class TestIsCoordinatorSelf:
    def test_reads_accessor(self, fake_probe):
        flag = {"value": False}
        service = CoordinatorDiscoveryService(
            node_repository(), fake_probe, is_coordinator=lambda: flag["value"]
        )

        assert service.is_coordinator_self() is False
        flag["value"] = True
        assert service.is_coordinator_self() is True
        assert fake_probe.calls == []
