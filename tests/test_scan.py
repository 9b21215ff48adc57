"""
Tests for scan assembly.
"""

import asyncio

import pytest

from conftest import FakeResponse, FakeSession
from visitorprint.hashing import cyrb53
from visitorprint.models import NetworkRecord, VERIFIED, RESTRICTED
from visitorprint.providers import IP_API
from visitorprint.scan import (
    EntropyReaders,
    ScanError,
    build_fingerprint,
    estimate_confidence,
    run_scan,
    scan,
)
from visitorprint.sources import EntropySample

STUB_NETWORK = NetworkRecord(
    ip="198.51.100.7",
    city="Berlin",
    region="Berlin",
    country="Germany",
    isp="Example ISP",
    status=VERIFIED,
    source="ip-api.com",
)


async def stub_resolve(providers, session, timeout):
    return STUB_NETWORK


def fixed_readers(**overrides) -> EntropyReaders:
    async def audio():
        return "A1"

    readers = dict(
        canvas=lambda: "C1",
        audio=audio,
        gpu=lambda: "G",
        cores=lambda: 8,
        memory=lambda: 16,
        bot=lambda: False,
    )
    readers.update(overrides)
    return EntropyReaders(**readers)


class TestRunScan:

    def test_assembly_scenario(self):
        result = asyncio.run(run_scan(fixed_readers(), resolve=stub_resolve))
        fp = result.fingerprint

        assert fp.visitor_id == format(cyrb53("C1-A1-G-8-16", 0), "X")
        assert fp.canvas_id == "C1"
        assert fp.audio_id == "A1"
        assert fp.gpu == "G"
        assert fp.cores == 8
        assert fp.memory == 16
        assert fp.confidence == 99.9
        assert fp.is_bot_detected is False
        assert result.network is STUB_NETWORK

    def test_branches_run_concurrently(self):
        """Audio and network are awaited together, not one after the other."""
        order = []

        async def slow_resolve(providers, session, timeout):
            order.append("network-start")
            await asyncio.sleep(0.01)
            order.append("network-end")
            return STUB_NETWORK

        async def audio():
            order.append("audio-start")
            await asyncio.sleep(0.01)
            order.append("audio-end")
            return "A1"

        asyncio.run(run_scan(fixed_readers(audio=audio), resolve=slow_resolve))
        assert order.index("audio-start") < order.index("network-end")

    def test_sentinels_do_not_fail_scan(self):
        def denied():
            raise PermissionError("canvas blocked")

        async def no_audio():
            return None

        result = asyncio.run(run_scan(
            fixed_readers(canvas=denied, audio=no_audio, memory=lambda: None),
            resolve=stub_resolve,
        ))
        fp = result.fingerprint

        assert fp.canvas_id == "Blocked"
        assert fp.audio_id == "N/A"
        assert fp.memory == "N/A"
        assert fp.visitor_id == format(cyrb53("Blocked-N/A-G-8-N/A"), "X")

    def test_bot_flag(self):
        result = asyncio.run(run_scan(fixed_readers(bot=lambda: True), resolve=stub_resolve))
        assert result.fingerprint.is_bot_detected is True

    def test_unexpected_network_failure_surfaces_as_scan_error(self):
        async def broken_resolve(providers, session, timeout):
            raise RuntimeError("event loop torn down")

        with pytest.raises(ScanError) as exc_info:
            asyncio.run(run_scan(fixed_readers(), resolve=broken_resolve))

        assert exc_info.value.message == "Scan failed. Please retry."
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_computed_confidence(self):
        result = asyncio.run(run_scan(
            fixed_readers(canvas=lambda: None),
            resolve=stub_resolve,
            compute_confidence=True,
        ))
        assert result.fingerprint.confidence == 79.9

    def test_end_to_end_with_fake_session(self, ip_api_payload):
        session = FakeSession({IP_API.url: FakeResponse(ip_api_payload)})
        result = scan(fixed_readers(), session=session)

        assert result.network.status == VERIFIED
        assert result.network.source == "ip-api.com"
        assert result.fingerprint.visitor_id == "6B5701C599CD8"

    def test_end_to_end_all_providers_down(self, all_down_session):
        result = scan(fixed_readers(), session=all_down_session)
        assert result.network.status == RESTRICTED
        assert result.fingerprint.visitor_id == "6B5701C599CD8"

    def test_visitor_id_independent_of_network(self, ip_api_payload, all_down_session):
        online = scan(fixed_readers(), session=FakeSession({IP_API.url: FakeResponse(ip_api_payload)}))
        offline = scan(fixed_readers(), session=all_down_session)
        assert online.fingerprint.visitor_id == offline.fingerprint.visitor_id


class TestBuildFingerprint:

    def test_records_are_immutable(self):
        fp = build_fingerprint(*(EntropySample.of(v) for v in ("C1", "A1", "G", 8, 16)))
        with pytest.raises(AttributeError):
            fp.visitor_id = "0"

    def test_to_dict_uses_display_names(self):
        fp = build_fingerprint(*(EntropySample.of(v) for v in ("C1", "A1", "G", 8, 16)))
        data = fp.to_dict()
        assert data["visitorId"] == "6B5701C599CD8"
        assert data["isBotDetected"] is False


class TestEstimateConfidence:

    def test_all_usable(self):
        samples = [EntropySample.of(1)] * 5
        assert estimate_confidence(samples) == 99.9

    def test_none_usable(self):
        assert estimate_confidence([EntropySample.blocked(), EntropySample.unavailable()]) == 0.0

    def test_empty(self):
        assert estimate_confidence([]) == 0.0
