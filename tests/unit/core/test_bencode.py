"""Tests for the bencode codec."""

from __future__ import annotations

import pytest

pytestmark = [pytest.mark.unit, pytest.mark.core]

from ratiospoof.core.bencode import BencodeDecoder, BencodeEncoder, decode, encode
from ratiospoof.exceptions import BencodeDecodeError, BencodeEncodeError, MalformedTorrentError


class TestBencodeDecoder:
    """Test cases for BencodeDecoder."""

    def test_decode_integers(self):
        assert decode(b"i42e") == 42
        assert decode(b"i0e") == 0
        assert decode(b"i-7e") == -7

    def test_decode_string(self):
        assert decode(b"4:spam") == b"spam"
        assert decode(b"0:") == b""

    def test_decode_list(self):
        assert decode(b"l4:spami42ee") == [b"spam", 42]
        assert decode(b"le") == []

    def test_decode_dict(self):
        assert decode(b"d3:cow3:moo4:spam4:eggse") == {b"cow": b"moo", b"spam": b"eggs"}

    def test_decode_nested(self):
        data = b"d4:infod6:lengthi100e4:name4:testee"
        assert decode(data) == {b"info": {b"length": 100, b"name": b"test"}}

    def test_decoder_class(self):
        assert BencodeDecoder(b"l1:a1:be").decode() == [b"a", b"b"]

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"i03e",
            b"i-0e",
            b"ie",
            b"i42",
            b"5:spam",
            b"l4:spam",
            b"x",
            b"i1ei2e",
            b"di1e3:fooe",
        ],
    )
    def test_decode_rejects_malformed(self, data):
        with pytest.raises(BencodeDecodeError):
            decode(data)

    def test_decode_error_is_malformed_torrent(self):
        with pytest.raises(MalformedTorrentError):
            decode(b"i03e")

    def test_decode_rejects_non_bytes(self):
        with pytest.raises(BencodeDecodeError):
            decode("i1e")  # type: ignore[arg-type]


class TestBencodeEncoder:
    """Test cases for BencodeEncoder."""

    def test_encode_scalars(self):
        assert encode(42) == b"i42e"
        assert encode(-3) == b"i-3e"
        assert encode(b"spam") == b"4:spam"
        assert encode("spam") == b"4:spam"

    def test_encode_unicode_string_uses_utf8_length(self):
        assert encode("é") == b"2:\xc3\xa9"

    def test_encode_sorts_dict_keys(self):
        assert encode({b"b": 1, b"a": 2}) == b"d1:ai2e1:bi1ee"

    def test_encode_list_and_tuple(self):
        assert encode([1, b"x"]) == b"li1e1:xe"
        assert encode((1, b"x")) == b"li1e1:xe"

    def test_encoder_class(self):
        assert BencodeEncoder().encode({"k": [1]}) == b"d1:kli1eee"

    def test_encode_rejects_bool(self):
        with pytest.raises(BencodeEncodeError):
            encode(True)

    def test_encode_rejects_unknown_type(self):
        with pytest.raises(BencodeEncodeError):
            encode(1.5)

    def test_reencode_is_canonical(self):
        raw = b"d4:infod6:lengthi100e4:name4:teste8:announce3:urle"
        assert encode(decode(raw)) == b"d8:announce3:url4:infod6:lengthi100e4:name4:testee"
