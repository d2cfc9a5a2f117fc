"""
Tests for the Response Decoder

Run with: python -m pytest tests/test_decoder.py -v
"""

import struct

import pytest
from cik.errors import FramingError, TransportError
from cik.network.transport import Transport
from cik.protocol.commands import Outcome, StatusClass, StatusCode
from cik.protocol.decoder import (
    ResponseDecoder,
    classify_status,
    decode_entry_info,
    decode_item_stream,
    parse_header,
)
from tests.conftest import FakeSocket, failure_reply, success_reply


def make_decoder(incoming: bytes, **kwargs) -> ResponseDecoder:
    return ResponseDecoder(Transport(FakeSocket(incoming=incoming, **kwargs)))


class TestParseHeader:
    """Test parse_header()."""

    def test_success_header(self):
        header = parse_header(b"CiKt" + struct.pack(">I", 42))
        assert header.status is StatusClass.SUCCESS
        assert header.size_or_error == 42
        assert header.is_success

    def test_failure_header(self):
        header = parse_header(b"CiKf\x00\x00\x00\x41")
        assert header.status is StatusClass.FAILURE
        assert header.size_or_error == 0x41
        assert not header.is_success

    @pytest.mark.parametrize("data", [
        b"CiXt\x00\x00\x00\x00",
        b"cikt\x00\x00\x00\x00",
        b"CiKx\x00\x00\x00\x00",
        b"CiKT\x00\x00\x00\x00",
        b"CiKt\x00\x00\x00",
    ])
    def test_bad_header_is_framing_error(self, data):
        """Wrong magic, unknown status byte or short header."""
        with pytest.raises(FramingError, match="Failed to parse CiK response header"):
            parse_header(data)


class TestClassifyStatus:
    """Test classify_status()."""

    @pytest.mark.parametrize("code", [0x11, 0x12, 0x13])
    def test_internal_errors_are_faults(self, code):
        assert classify_status(code) is Outcome.FAULT

    def test_protocol_error_is_fault(self):
        assert classify_status(StatusCode.PROTOCOL_ERROR) is Outcome.FAULT

    @pytest.mark.parametrize("code", [0x41, 0x42, 0x43])
    def test_client_messages_are_misses(self, code):
        assert classify_status(code) is Outcome.MISS

    def test_unknown_code_is_fault(self):
        assert classify_status(0x01) is Outcome.FAULT


class TestReadReply:
    """Test ResponseDecoder.read_reply()."""

    def test_empty_success_payload(self):
        """Size 0 gives an empty but present payload."""
        reply = make_decoder(success_reply()).read_reply()
        assert reply.is_ok
        assert reply.payload == b""

    def test_payload_read_verbatim(self):
        reply = make_decoder(success_reply(b"test value")).read_reply()
        assert reply.payload == b"test value"

    def test_payload_in_three_chunks(self):
        """Partial reads are concatenated in order."""
        value = b"a fairly long value split across several reads"
        decoder = make_decoder(success_reply(value), recv_sizes=[8, 5, 20, 100])
        reply = decoder.read_reply()
        assert reply.payload == value

    def test_header_in_single_bytes(self):
        """Even the header may arrive one byte at a time."""
        decoder = make_decoder(success_reply(b"xy"), recv_sizes=[1] * 10)
        assert decoder.read_reply().payload == b"xy"

    def test_does_not_read_past_reply(self):
        """Bytes of a following reply stay on the socket."""
        sock = FakeSocket(incoming=success_reply(b"one") + success_reply(b"two"))
        decoder = ResponseDecoder(Transport(sock))
        assert decoder.read_reply().payload == b"one"
        assert decoder.read_reply().payload == b"two"

    def test_not_found_is_miss(self):
        reply = make_decoder(failure_reply(StatusCode.NOT_FOUND)).read_reply()
        assert reply.is_miss
        assert reply.status_code == StatusCode.NOT_FOUND

    def test_protocol_error_is_fault(self):
        reply = make_decoder(failure_reply(StatusCode.PROTOCOL_ERROR)).read_reply()
        assert reply.outcome is Outcome.FAULT
        assert reply.status_code == 0x21

    def test_failure_has_no_payload(self):
        """A failure reply does not consume further bytes."""
        sock = FakeSocket(incoming=failure_reply(0x41) + b"rest")
        ResponseDecoder(Transport(sock)).read_reply()
        assert bytes(sock.incoming) == b"rest"

    def test_truncated_header_is_framing_error(self):
        with pytest.raises(FramingError, match="truncated"):
            make_decoder(b"CiKt").read_reply()

    def test_no_response_is_framing_error(self):
        """A closed stream instead of a reply is a framing fault."""
        with pytest.raises(FramingError):
            make_decoder(b"").read_reply()

    def test_truncated_payload_is_transport_error(self):
        data = success_reply(b"0123456789")[:-3]
        with pytest.raises(TransportError):
            make_decoder(data).read_reply()


class TestPayloadDecoders:
    """Test LIST and INFO payload decoding."""

    def test_item_stream(self):
        assert decode_item_stream(b"\x01a\x03bcd\x00") == [b"a", b"bcd", b""]

    def test_empty_item_stream(self):
        assert decode_item_stream(b"") == []

    def test_overrunning_item_stream(self):
        with pytest.raises(FramingError):
            decode_item_stream(b"\x05abc")

    def test_entry_info(self):
        payload = struct.pack(">QQ", 2000, 1000) + b"\x02t1\x02t2"
        info = decode_entry_info(payload)
        assert info.expires == 2000
        assert info.mtime == 1000
        assert info.tags == [b"t1", b"t2"]
        assert info.is_expired(2001)
        assert not info.is_expired(1999)

    @pytest.mark.parametrize("expires", [0, 0xFFFFFFFFFFFFFFFF])
    def test_entry_info_never_expires(self, expires):
        info = decode_entry_info(struct.pack(">QQ", expires, 1000))
        assert info.expires is None
        assert info.tags == []
        assert not info.is_expired(10 ** 12)

    def test_entry_info_too_short(self):
        with pytest.raises(FramingError):
            decode_entry_info(b"\x00" * 15)
