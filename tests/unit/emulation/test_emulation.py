"""Tests for client emulation profiles, identifiers and rounding."""

from __future__ import annotations

import random
import urllib.parse

import pytest

pytestmark = [pytest.mark.unit, pytest.mark.emulation]

from ratiospoof.emulation import (
    BLOCK_SIZE,
    PROFILES,
    Emulation,
    RoundingStyle,
    available_clients,
    generate_key,
    generate_peer_id,
    get_profile,
    round_counts,
    rounding_unit,
)
from ratiospoof.emulation.profiles import BASE36_CHARSET
from ratiospoof.exceptions import ConfigurationError, UnknownProfileError


class TestProfiles:
    def test_builtin_profiles(self):
        assert available_clients() == sorted(
            ["qbit-4.0.3", "qbit-4.3.3", "qbit-4.4.5", "transmission-2.94", "deluge-2.0.3"]
        )

    def test_qbit_prefix_from_version(self):
        assert PROFILES["qbit-4.3.3"].peer_id_prefix == "-qB4330-"
        assert PROFILES["qbit-4.3.3"].headers["User-Agent"].startswith("qBittorrent/4.3.3")

    def test_get_profile_is_case_insensitive(self):
        assert get_profile("QBIT-4.0.3").code == "qbit-4.0.3"

    def test_unknown_profile(self):
        with pytest.raises(UnknownProfileError) as exc_info:
            get_profile("utorrent-3.5")
        assert "qbit-4.0.3" in exc_info.value.details["available"]
        assert isinstance(exc_info.value, ConfigurationError)

    @pytest.mark.parametrize("code", sorted(PROFILES))
    def test_query_templates_have_all_placeholders(self, code):
        query = PROFILES[code].query
        for name in (
            "infohash",
            "peerid",
            "port",
            "uploaded",
            "downloaded",
            "left",
            "key",
            "event",
            "numwant",
        ):
            assert "{" + name + "}" in query


class TestIdentifiers:
    @pytest.mark.parametrize("code", sorted(PROFILES))
    def test_peer_id_shape(self, code):
        profile = PROFILES[code]
        peer_id = generate_peer_id(profile, random.Random(7))
        assert len(peer_id) == 20
        assert peer_id.startswith(profile.peer_id_prefix)

    def test_transmission_checksum(self):
        profile = PROFILES["transmission-2.94"]
        for seed in range(20):
            peer_id = generate_peer_id(profile, random.Random(seed))
            suffix = peer_id[len(profile.peer_id_prefix) :]
            total = sum(BASE36_CHARSET.index(ch) for ch in suffix)
            assert total % len(BASE36_CHARSET) == 0

    def test_key_styles(self):
        upper = generate_key(PROFILES["qbit-4.0.3"], random.Random(1))
        lower = generate_key(PROFILES["transmission-2.94"], random.Random(1))
        assert len(upper) == 8
        assert upper == upper.upper()
        assert lower == lower.lower()
        int(upper, 16)
        int(lower, 16)

    def test_emulation_identifiers_fixed_per_instance(self):
        emulation = Emulation.from_code("qbit-4.0.3", random.Random(3))
        assert emulation.peer_id() == emulation.peer_id()
        assert emulation.key() == emulation.key()
        raw = urllib.parse.unquote(emulation.peer_id())
        assert len(raw) == 20
        assert raw.startswith("-qB4030-")
        assert emulation.name == "qBittorrent v4.0.3"

    def test_headers_are_a_copy(self):
        emulation = Emulation.from_code("deluge-2.0.3")
        emulation.headers["User-Agent"] = "changed"
        assert emulation.headers["User-Agent"].startswith("Deluge/")


class TestRounding:
    def test_rounding_unit(self):
        assert rounding_unit(RoundingStyle.NONE, 262144) == 1
        assert rounding_unit(RoundingStyle.PIECE, 262144) == 262144
        assert rounding_unit(RoundingStyle.BLOCK, 262144) == BLOCK_SIZE
        # Pieces smaller than a block are reported in whole pieces
        assert rounding_unit(RoundingStyle.BLOCK, 10) == 10

    def test_none_is_identity(self):
        assert round_counts(RoundingStyle.NONE, 12345, 678, 1000, 16384) == (12345, 678, 1000)

    def test_piece_rounding_moves_remainder_to_left(self):
        piece = 262144
        downloaded, uploaded, left = round_counts(
            RoundingStyle.PIECE, piece * 3 + 100, 5555, 1000, piece
        )
        assert downloaded == piece * 3
        assert left == 1100
        assert uploaded == 5555

    def test_block_rounding(self):
        piece = 262144
        downloaded, uploaded, left = round_counts(
            RoundingStyle.BLOCK, BLOCK_SIZE * 5 + 7, 99, 10, piece
        )
        assert downloaded == BLOCK_SIZE * 5
        assert left == 17
        assert uploaded == 99

    def test_complete_download_not_rounded(self):
        assert round_counts(RoundingStyle.PIECE, 1005, 3, 0, 10) == (1005, 3, 0)

    @pytest.mark.parametrize("style", list(RoundingStyle))
    def test_total_preserved_and_never_above_candidate(self, style):
        rng = random.Random(11)
        piece = 32768
        total = piece * 40 + 123
        for _ in range(200):
            candidate = rng.randrange(0, total + 1)
            left_candidate = total - candidate
            downloaded, uploaded, left = round_counts(
                style, candidate, 777, left_candidate, piece
            )
            assert downloaded + left == total
            assert 0 <= downloaded <= candidate
            assert left >= 0
            assert uploaded == 777

    def test_emulation_round_uses_profile_style(self):
        emulation = Emulation.from_code("transmission-2.94")
        assert emulation.round(25, 0, 75, 10) == (20, 0, 80)
