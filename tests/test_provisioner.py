"""Tests for core.provisioner — record shape, ordering and invariants."""

from unittest.mock import MagicMock, call, patch

import pytest
import requests

from subdns.core import state_manager
from subdns.core.bunny_client import BunnyAPIError, BunnyClient
from subdns.core.errors import (
    AddressRecordCreateFailed,
    AddressRecordExists,
    LabelConflict,
    PersistenceError,
    PortMissing,
    ProviderError,
    ProviderNotConfigured,
    QuotaExceeded,
    RecordExists,
    ZoneResolutionFailed,
)
from subdns.core.models import Target
from subdns.core.provisioner import Provisioner


def _provision(client, domain, workload, label="mc", target=Target("10.0.0.5", 25565)):
    return Provisioner(client).provision(domain, workload, label, domain.mappings[0], target)


def _external_calls(client):
    return [c for c in client.mock_calls if c[0] != "is_available"]


# ------------------------------------------------------------------
# CNAME path
# ------------------------------------------------------------------

class TestCnamePath:
    def test_creates_one_cname(self, client, make_domain, make_workload):
        domain = make_domain()
        workload = make_workload()

        entry = _provision(client, domain, workload, target=Target("node1.example.net", 0))

        client.create_cname_record.assert_called_once_with("z1", "mc.play.example.com", "node1.example.net", 300)
        client.create_srv_record.assert_not_called()
        client.create_address_record.assert_not_called()
        assert entry.record_type == "CNAME"
        assert entry.port is None
        assert entry.record_id == "rec-cname"
        assert entry.recipe_id == "r1"
        assert state_manager.get_subdomain_by_label("d1", "mc") is not None

    def test_cname_with_ip_target_still_cname(self, client, make_domain, make_workload):
        entry = _provision(client, make_domain(), make_workload())
        assert entry.record_type == "CNAME"
        client.create_cname_record.assert_called_once_with("z1", "mc.play.example.com", "10.0.0.5", 300)


# ------------------------------------------------------------------
# SRV path
# ------------------------------------------------------------------

class TestSrvPath:
    def test_ipv4_target_creates_a_then_srv(self, client, make_domain, make_workload):
        domain = make_domain(service="_minecraft")
        entry = _provision(client, domain, make_workload())

        creates = [c for c in client.mock_calls if c[0].startswith("create_")]
        assert creates == [
            call.create_address_record("z1", "mc.play.example.com", "10.0.0.5", "A", 300),
            call.create_srv_record("z1", "_minecraft", "tcp", "mc", "play.example.com",
                                   "mc.play.example.com", 25565, 5, 10, 300),
        ]
        assert entry.record_type == "SRV"
        assert entry.port == 25565
        assert entry.record_id == "rec-srv"

    def test_ipv6_target_creates_aaaa(self, client, make_domain, make_workload):
        domain = make_domain(service="_minecraft")
        _provision(client, domain, make_workload(), target=Target("2001:db8::5", 25565))
        assert client.create_address_record.call_args.args[3] == "AAAA"

    def test_hostname_target_has_no_address_record(self, client, make_domain, make_workload):
        domain = make_domain(service="_minecraft", transport="udp")
        _provision(client, domain, make_workload(), target=Target("edge.host.net", 19132))

        client.create_address_record.assert_not_called()
        args = client.create_srv_record.call_args.args
        assert args[2] == "udp"
        assert args[5] == "edge.host.net"
        assert args[6] == 19132

    def test_preflight_checks_srv_then_address_name(self, client, make_domain, make_workload):
        _provision(client, make_domain(service="_minecraft"), make_workload())
        assert client.record_absent.call_args_list == [
            call("z1", "SRV", "_minecraft._tcp.mc.play.example.com"),
            call("z1", "A", "mc.play.example.com"),
        ]

    def test_missing_port(self, client, make_domain, make_workload):
        with pytest.raises(PortMissing):
            _provision(client, make_domain(service="_minecraft"), make_workload(),
                       target=Target("10.0.0.5", 0))
        client.create_address_record.assert_not_called()
        client.create_srv_record.assert_not_called()

    def test_existing_address_record(self, client, make_domain, make_workload):
        client.record_absent.side_effect = [True, False]
        with pytest.raises(AddressRecordExists):
            _provision(client, make_domain(service="_minecraft"), make_workload())
        client.create_address_record.assert_not_called()

    def test_address_create_failure(self, client, make_domain, make_workload):
        client.create_address_record.side_effect = BunnyAPIError(500, [{"message": "boom"}])
        with pytest.raises(AddressRecordCreateFailed):
            _provision(client, make_domain(service="_minecraft"), make_workload())
        client.create_srv_record.assert_not_called()
        assert state_manager.count_by_workload("w1") == 0

    def test_srv_failure_leaves_address_record(self, client, make_domain, make_workload, caplog):
        client.create_srv_record.side_effect = BunnyAPIError(500, [{"message": "boom"}])
        with pytest.raises(ProviderError):
            _provision(client, make_domain(service="_minecraft"), make_workload())
        client.delete_record.assert_not_called()
        assert "rec-addr" in caplog.text
        assert state_manager.count_by_workload("w1") == 0


# ------------------------------------------------------------------
# Invariants
# ------------------------------------------------------------------

class TestInvariants:
    def test_label_conflict_makes_no_external_call(self, client, make_domain, make_workload):
        domain = make_domain()
        make_workload("w1")
        other = make_workload("w2")
        state_manager.set_setting("max_subdomains_per_workload", 5)
        _provision(client, domain, state_manager.get_workload("w1"))
        client.reset_mock()

        with pytest.raises(LabelConflict):
            _provision(client, domain, other)
        assert _external_calls(client) == []

    def test_quota_exceeded_makes_no_external_call(self, client, make_domain, make_workload):
        domain = make_domain()
        workload = make_workload()
        _provision(client, domain, workload, label="one")
        client.reset_mock()

        with pytest.raises(QuotaExceeded):
            _provision(client, domain, workload, label="two")
        assert _external_calls(client) == []

    def test_quota_never_below_one(self, client, make_domain, make_workload):
        state_manager.set_setting("max_subdomains_per_workload", 0)
        entry = _provision(client, make_domain(), make_workload())
        assert entry.label == "mc"

    def test_existing_provider_record(self, client, make_domain, make_workload):
        client.record_absent.return_value = False
        with pytest.raises(RecordExists):
            _provision(client, make_domain(), make_workload())
        client.create_cname_record.assert_not_called()

    def test_unconfigured_provider(self, client, make_domain, make_workload):
        client.is_available = False
        with pytest.raises(ProviderNotConfigured):
            _provision(client, make_domain(), make_workload())

    def test_quota_reported_before_missing_provider(self, client, make_domain, make_workload):
        domain = make_domain()
        workload = make_workload()
        _provision(client, domain, workload, label="one")
        client.is_available = False
        with pytest.raises(QuotaExceeded):
            _provision(client, domain, workload, label="two")

    def test_label_conflict_reported_before_missing_provider(self, client, make_domain, make_workload):
        domain = make_domain()
        make_workload("w1")
        other = make_workload("w2")
        _provision(client, domain, state_manager.get_workload("w1"))
        client.is_available = False
        with pytest.raises(LabelConflict):
            _provision(client, domain, other)

    def test_store_rechecks_quota(self, client, make_domain, make_workload, monkeypatch):
        domain = make_domain()
        workload = make_workload()
        _provision(client, domain, workload, label="one")
        # Another create for the same workload landed between check and insert.
        monkeypatch.setattr(state_manager, "count_by_workload", lambda workload_id: 0)
        with pytest.raises(QuotaExceeded):
            _provision(client, domain, workload, label="two")
        assert [s.label for s in state_manager.list_subdomains()] == ["one"]


class TestGatewayFailures:
    @patch("subdns.core.bunny_client.requests.Session")
    def test_transport_error_is_provider_error(self, mock_session_cls, make_domain, make_workload):
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.request.side_effect = requests.exceptions.ChunkedEncodingError("reset")
        with pytest.raises(ProviderError):
            _provision(BunnyClient("0a1b2c3d-4e5f-6789-abcd-ef0123456789"), make_domain(zone_id="z1"),
                       make_workload())

    @patch("subdns.core.bunny_client.requests.Session")
    def test_malformed_body_is_provider_error(self, mock_session_cls, make_domain, make_workload):
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        resp = MagicMock(status_code=200, content=b"<html>", headers={})
        resp.json.side_effect = ValueError("Expecting value")
        mock_session.request.return_value = resp
        with pytest.raises(ProviderError):
            _provision(BunnyClient("0a1b2c3d-4e5f-6789-abcd-ef0123456789"), make_domain(), make_workload())


# ------------------------------------------------------------------
# Zone resolution
# ------------------------------------------------------------------

class TestZoneResolution:
    def test_zone_cached_after_first_lookup(self, client, make_domain, make_workload):
        domain = make_domain()
        state_manager.set_setting("max_subdomains_per_workload", 5)
        workload = make_workload()
        _provision(client, domain, workload, label="one")
        assert state_manager.get_domain("d1").zone_id == "z1"

        fresh = state_manager.get_domain("d1")
        _provision(client, fresh, workload, label="two")
        client.resolve_zone.assert_called_once_with("play.example.com")

    def test_stored_zone_id_skips_lookup(self, client, make_domain, make_workload):
        _provision(client, make_domain(zone_id="z9"), make_workload())
        client.resolve_zone.assert_not_called()
        assert client.create_cname_record.call_args.args[0] == "z9"

    def test_zone_not_found(self, client, make_domain, make_workload):
        client.resolve_zone.return_value = None
        with pytest.raises(ZoneResolutionFailed):
            _provision(client, make_domain(), make_workload())
        client.record_absent.assert_not_called()

    def test_zone_lookup_error(self, client, make_domain, make_workload):
        client.resolve_zone.side_effect = BunnyAPIError(0, [{"message": "timeout"}])
        with pytest.raises(ZoneResolutionFailed):
            _provision(client, make_domain(), make_workload())


# ------------------------------------------------------------------
# Persistence
# ------------------------------------------------------------------

class TestPersistence:
    def test_store_failure_reports_orphans(self, client, make_domain, make_workload, monkeypatch):
        def broken(entry, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(state_manager, "create_subdomain", broken)
        with pytest.raises(PersistenceError) as excinfo:
            _provision(client, make_domain(service="_minecraft"), make_workload())
        assert excinfo.value.orphaned_records == ["rec-addr", "rec-srv"]
