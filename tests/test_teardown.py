"""Tests for core.teardown — record deletion by id or name, address cleanup."""

from unittest.mock import call

import pytest

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyAPIError
from subdns.core.errors import PersistenceError
from subdns.core.models import Allocation, Subdomain
from subdns.core.teardown import Teardown


def _entry(record_type="CNAME", record_id="rec-1", port=None, label="mc"):
    entry = Subdomain(id="s1", domain_id="d1", workload_id="w1", recipe_id="r1",
                      label=label, record_type=record_type, port=port, record_id=record_id)
    state_manager.create_subdomain(entry)
    return entry


class TestTeardown:
    def test_deletes_by_stored_id(self, client, make_domain):
        domain = make_domain(zone_id="z1")
        result = Teardown(client).teardown(_entry(), domain)

        client.delete_record.assert_called_once_with("z1", "rec-1")
        client.delete_record_by_name.assert_not_called()
        assert result.deleted == ["CNAME rec-1"]
        assert result.local_removed
        assert state_manager.get_subdomain("s1") is None

    def test_reconstructs_cname_name_without_id(self, client, make_domain):
        domain = make_domain(zone_id="z1")
        Teardown(client).teardown(_entry(record_id=None), domain, domain.mappings[0])
        client.delete_record_by_name.assert_called_once_with("z1", "CNAME", "mc.play.example.com")

    def test_reconstructs_srv_name_from_mapping(self, client, make_domain):
        domain = make_domain(zone_id="z1", service="_minecraft", transport="udp")
        Teardown(client).teardown(_entry("SRV", None, 19132), domain, domain.mappings[0])
        assert client.delete_record_by_name.call_args_list[0] == call(
            "z1", "SRV", "_minecraft._udp.mc.play.example.com"
        )

    def test_missing_reconstructed_record_still_removes_row(self, client, make_domain):
        client.delete_record_by_name.return_value = False
        domain = make_domain(zone_id="z1")
        result = Teardown(client).teardown(_entry(record_id=None), domain, domain.mappings[0])
        assert result.missed == ["CNAME mc.play.example.com"]
        assert result.local_removed
        assert state_manager.list_subdomains() == []

    def test_srv_without_alias_deletes_a_and_aaaa(self, client, make_domain):
        domain = make_domain(zone_id="z1", service="_minecraft")
        allocation = Allocation(id="a1", ip="10.0.0.5", port=25565)
        Teardown(client).teardown(_entry("SRV", "rec-srv", 25565), domain, domain.mappings[0], allocation)

        client.delete_record.assert_called_once_with("z1", "rec-srv")
        assert client.delete_record_by_name.call_args_list == [
            call("z1", "A", "mc.play.example.com"),
            call("z1", "AAAA", "mc.play.example.com"),
        ]

    def test_srv_with_ip_alias_deletes_address_records(self, client, make_domain):
        domain = make_domain(zone_id="z1", service="_minecraft")
        allocation = Allocation(id="a1", ip="10.0.0.5", port=25565, ip_alias="203.0.113.7")
        Teardown(client).teardown(_entry("SRV", "rec-srv", 25565), domain, domain.mappings[0], allocation)
        assert client.delete_record_by_name.call_count == 2

    def test_srv_with_hostname_alias_keeps_address_records(self, client, make_domain):
        domain = make_domain(zone_id="z1", service="_minecraft")
        allocation = Allocation(id="a1", ip="10.0.0.5", port=25565, ip_alias="edge.host.net")
        Teardown(client).teardown(_entry("SRV", "rec-srv", 25565), domain, domain.mappings[0], allocation)
        client.delete_record_by_name.assert_not_called()

    def test_cname_never_touches_address_records(self, client, make_domain):
        domain = make_domain(zone_id="z1")
        Teardown(client).teardown(_entry(), domain)
        client.delete_record_by_name.assert_not_called()

    def test_provider_failure_does_not_block_local_removal(self, client, make_domain):
        client.delete_record.side_effect = RuntimeError("connection reset")
        domain = make_domain(zone_id="z1")
        result = Teardown(client).teardown(_entry(), domain)
        assert result.errors == ["connection reset"]
        assert state_manager.get_subdomain("s1") is None

    def test_missing_zone_id_is_resolved(self, client, make_domain):
        domain = make_domain(zone_id=None)
        result = Teardown(client).teardown(_entry(), domain)
        client.resolve_zone.assert_called_once_with("play.example.com")
        client.delete_record.assert_called_once_with("z1", "rec-1")
        assert not result.skipped_provider
        assert state_manager.get_domain("d1").zone_id == "z1"

    def test_unresolvable_zone_skips_provider(self, client, make_domain):
        client.resolve_zone.return_value = None
        result = Teardown(client).teardown(_entry(), make_domain(zone_id=None))
        assert result.skipped_provider
        client.delete_record.assert_not_called()
        assert result.local_removed

    def test_zone_lookup_error_skips_provider(self, client, make_domain):
        client.resolve_zone.side_effect = BunnyAPIError(503, [{"message": "unavailable"}])
        result = Teardown(client).teardown(_entry(), make_domain(zone_id=None))
        assert result.skipped_provider
        assert result.errors == []
        assert result.local_removed

    def test_unconfigured_provider_skips_provider(self, client, make_domain):
        client.is_available = False
        result = Teardown(client).teardown(_entry(), make_domain(zone_id="z1"))
        assert result.skipped_provider
        assert result.local_removed

    def test_local_store_failure(self, client, make_domain, monkeypatch):
        entry = _entry()

        def broken(subdomain_id):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(state_manager, "delete_subdomain", broken)
        with pytest.raises(PersistenceError):
            Teardown(client).teardown(entry, make_domain(zone_id="z1"))
        client.delete_record.assert_called_once()
