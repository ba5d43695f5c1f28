"""Bencode codec for torrent files and tracker responses.

Strings decode to ``bytes`` and dictionary keys stay ``bytes``; callers
decide which values are text. Encoding sorts dictionary keys by their raw
bytes so re-encoding a decoded ``info`` dictionary reproduces the original
bytes, which is what the info hash is computed over.
"""

from __future__ import annotations

from typing import Any

from ratiospoof.exceptions import BencodeDecodeError, BencodeEncodeError


class BencodeDecoder:
    """Decoder for bencoded data."""

    def __init__(self, data: bytes):
        """Initialize the decoder with raw bytes."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            msg = f"Cannot decode {type(data).__name__}, expected bytes"
            raise BencodeDecodeError(msg)
        self.data = bytes(data)
        self.pos = 0

    def decode(self) -> Any:
        """Decode the whole buffer.

        Raises:
            BencodeDecodeError: If the data is malformed or has trailing bytes

        """
        if not self.data:
            msg = "Cannot decode empty data"
            raise BencodeDecodeError(msg)
        value = self._decode_next()
        if self.pos != len(self.data):
            msg = f"Trailing data after position {self.pos}"
            raise BencodeDecodeError(msg)
        return value

    def _peek(self) -> int:
        if self.pos >= len(self.data):
            msg = "Unexpected end of data"
            raise BencodeDecodeError(msg)
        return self.data[self.pos]

    def _decode_next(self) -> Any:
        token = self._peek()
        if token == ord("i"):
            return self._decode_int()
        if token == ord("l"):
            return self._decode_list()
        if token == ord("d"):
            return self._decode_dict()
        if ord("0") <= token <= ord("9"):
            return self._decode_bytes()
        msg = f"Invalid token {chr(token)!r} at position {self.pos}"
        raise BencodeDecodeError(msg)

    def _decode_int(self) -> int:
        end = self.data.find(b"e", self.pos)
        if end == -1:
            msg = "Unterminated integer"
            raise BencodeDecodeError(msg)
        raw = self.data[self.pos + 1 : end]
        if not raw or raw == b"-" or raw == b"-0":
            msg = f"Invalid integer {raw!r}"
            raise BencodeDecodeError(msg)
        digits = raw[1:] if raw.startswith(b"-") else raw
        if not digits.isdigit() or (len(digits) > 1 and digits.startswith(b"0")):
            msg = f"Invalid integer {raw!r}"
            raise BencodeDecodeError(msg)
        self.pos = end + 1
        return int(raw)

    def _decode_bytes(self) -> bytes:
        colon = self.data.find(b":", self.pos)
        if colon == -1:
            msg = "Missing length separator in string"
            raise BencodeDecodeError(msg)
        raw_len = self.data[self.pos : colon]
        if not raw_len.isdigit() or (len(raw_len) > 1 and raw_len.startswith(b"0")):
            msg = f"Invalid string length {raw_len!r}"
            raise BencodeDecodeError(msg)
        length = int(raw_len)
        start = colon + 1
        end = start + length
        if end > len(self.data):
            msg = f"String of length {length} exceeds data"
            raise BencodeDecodeError(msg)
        self.pos = end
        return self.data[start:end]

    def _decode_list(self) -> list[Any]:
        self.pos += 1
        items = []
        while self._peek() != ord("e"):
            items.append(self._decode_next())
        self.pos += 1
        return items

    def _decode_dict(self) -> dict[bytes, Any]:
        self.pos += 1
        result: dict[bytes, Any] = {}
        while self._peek() != ord("e"):
            if not ord("0") <= self._peek() <= ord("9"):
                msg = f"Dictionary key must be a string at position {self.pos}"
                raise BencodeDecodeError(msg)
            key = self._decode_bytes()
            result[key] = self._decode_next()
        self.pos += 1
        return result


class BencodeEncoder:
    """Encoder for bencoded data."""

    def encode(self, obj: Any) -> bytes:
        """Encode a Python object.

        Raises:
            BencodeEncodeError: If the object has no bencode representation

        """
        out: list[bytes] = []
        self._encode_into(obj, out)
        return b"".join(out)

    def _encode_into(self, obj: Any, out: list[bytes]) -> None:
        # bool is an int subclass but has no bencode form
        if isinstance(obj, bool):
            msg = "Cannot encode bool"
            raise BencodeEncodeError(msg)
        if isinstance(obj, int):
            out.append(b"i%de" % obj)
        elif isinstance(obj, (bytes, bytearray)):
            out.append(b"%d:" % len(obj))
            out.append(bytes(obj))
        elif isinstance(obj, str):
            self._encode_into(obj.encode("utf-8"), out)
        elif isinstance(obj, (list, tuple)):
            out.append(b"l")
            for item in obj:
                self._encode_into(item, out)
            out.append(b"e")
        elif isinstance(obj, dict):
            out.append(b"d")
            items = []
            for key, value in obj.items():
                if isinstance(key, str):
                    key = key.encode("utf-8")
                if not isinstance(key, bytes):
                    msg = f"Dictionary keys must be strings, got {type(key).__name__}"
                    raise BencodeEncodeError(msg)
                items.append((key, value))
            for key, value in sorted(items, key=lambda kv: kv[0]):
                self._encode_into(key, out)
                self._encode_into(value, out)
            out.append(b"e")
        else:
            msg = f"Cannot encode {type(obj).__name__}"
            raise BencodeEncodeError(msg)


def decode(data: bytes) -> Any:
    """Decode bencoded bytes."""
    return BencodeDecoder(data).decode()


def encode(obj: Any) -> bytes:
    """Encode an object to bencoded bytes."""
    return BencodeEncoder().encode(obj)
