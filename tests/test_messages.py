"""Tests for boxsync.messages: Request/Response values and their wire form."""

import msgpack
import pytest

from boxsync.definitions import RequestType, ResponseStatus
from boxsync.errors import CodedError
from boxsync.messages import Request, Response


class TestRequest:
    def test_put_file_round_trip_binary_payload(self):
        request = Request.put_file("dir/blob.bin", b"\x00\x01\xff\x00tail\x00")
        assert Request.unpack(request.pack()) == request

    def test_put_file_round_trip_empty_payload(self):
        request = Request.put_file("empty", b"")
        decoded = Request.unpack(request.pack())
        assert decoded == request
        assert decoded.data == b""

    def test_mkdir_and_remove_have_no_payload_on_the_wire(self):
        assert "data" not in Request.mkdir("d").to_wire()
        assert "data" not in Request.remove("d").to_wire()
        assert Request.unpack(Request.remove("d").pack()).data == b""

    def test_path_is_text_and_payload_is_binary_on_the_wire(self):
        raw = msgpack.unpackb(Request.put_file("f", b"abc").pack(), raw=True)
        assert raw[b"path"] == b"f"
        assert isinstance(raw[b"data"], bytes)

    def test_equality(self):
        assert Request.mkdir("a") == Request(RequestType.MKDIR, "a")
        assert Request.mkdir("a") != Request.remove("a")
        assert Request.put_file("a", b"1") != Request.put_file("a", b"2")

    def test_repr_shows_payload_length_only(self):
        assert repr(Request.put_file("f", b"secret")) == "PutFile('f', 6 bytes)"
        assert repr(Request.mkdir("d")) == "MakeDirectory('d')"

    @pytest.mark.parametrize("args", [
        None,
        [1, "a"],
        {"path": "a"},
        {"type": RequestType.MKDIR},
        {"type": RequestType.PUT_FILE, "path": "a", "data": "not bytes"},
        {"type": RequestType.MKDIR, "path": 5},
    ])
    def test_from_wire_rejects_malformed_args(self, args):
        with pytest.raises(CodedError):
            Request.from_wire(args)


class TestResponse:
    def test_round_trip(self):
        for response in (Response.ok(), Response.error("No such file or directory")):
            assert Response.unpack(response.pack()) == response

    def test_ok_has_empty_message(self):
        response = Response.ok()
        assert response.status == ResponseStatus.OK
        assert response.message == ""
        assert not response.is_error

    def test_error(self):
        response = Response.error("boom")
        assert response.is_error
        assert repr(response) == "Error('boom')"

    def test_from_wire_rejects_malformed(self):
        with pytest.raises(CodedError):
            Response.from_wire({"message": "x"})
