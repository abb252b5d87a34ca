"""Shared fixtures — isolated state directory and a fake Bunny client."""

from unittest.mock import MagicMock, patch

import pytest

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyClient
from subdns.core.models import Allocation, Domain, Node, ProtocolMapping, Workload


@pytest.fixture
def tmp_state(tmp_path):
    """Patch all state directory paths to a temp dir for isolation."""
    patches = {
        "STATE_DIR": tmp_path,
        "LOGS_DIR": tmp_path / "logs",
        "DOMAINS_FILE": tmp_path / "domains.json",
        "SUBDOMAINS_FILE": tmp_path / "subdomains.json",
        "INVENTORY_FILE": tmp_path / "inventory.json",
        "SETTINGS_FILE": tmp_path / "settings.json",
    }
    with patch.multiple("subdns.core.state_manager", **patches):
        state_manager.init_state_dir()
        yield tmp_path


@pytest.fixture
def client():
    """A BunnyClient double where every call succeeds."""
    cf = MagicMock(spec=BunnyClient)
    cf.is_available = True
    cf.resolve_zone.return_value = "z1"
    cf.record_absent.return_value = True
    cf.create_cname_record.return_value = "rec-cname"
    cf.create_address_record.return_value = "rec-addr"
    cf.create_srv_record.return_value = "rec-srv"
    cf.delete_record.return_value = True
    cf.delete_record_by_name.return_value = True
    return cf


@pytest.fixture
def make_domain(tmp_state):
    """Store a domain with one mapping for recipe ``r1``."""

    def _make(hostname="play.example.com", service=None, transport="tcp",
              zone_id=None, is_active=True, recipe_id="r1", domain_id="d1"):
        mapping = ProtocolMapping(recipe_id=recipe_id, service=service, transport=transport,
                                  priority=5, weight=10, ttl=300)
        domain = Domain(id=domain_id, hostname=hostname, is_active=is_active,
                        zone_id=zone_id, mappings=[mapping])
        state_manager.save_domain(domain)
        return domain

    return _make


@pytest.fixture
def make_workload(tmp_state):
    """Store a workload with its allocation (and node, if given)."""

    def _make(workload_id="w1", recipe_id="r1", ip="10.0.0.5", port=25565,
              alias=None, node_ip=None):
        node_id = None
        if node_ip is not None:
            node_id = f"n-{workload_id}"
            state_manager.save_node(Node(id=node_id, public_ipv4=node_ip))
        allocation = Allocation(id=f"a-{workload_id}", ip=ip, port=port,
                                ip_alias=alias, node_id=node_id)
        state_manager.save_allocation(allocation)
        workload = Workload(id=workload_id, recipe_id=recipe_id, allocation_id=allocation.id)
        state_manager.save_workload(workload)
        return workload

    return _make
