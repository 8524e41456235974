"""Tests for boxsync.server against a live server on an ephemeral port."""

import socket

import msgpack
import pytest

from boxsync.definitions import Opcode, ParcelType
from boxsync.errors import CodedError, Error, TransportFailure
from boxsync.messages import Request, Response
from boxsync.protocol import Connection, read_parcel, send_message
from boxsync.server import Server, check_or_make_empty_directory

from conftest import start_server


class TestDestinationRoot:
    def test_missing_directory_is_created(self, tmp_path):
        check_or_make_empty_directory(str(tmp_path / "new"))
        assert (tmp_path / "new").is_dir()

    def test_empty_directory_is_accepted(self, tmp_path):
        check_or_make_empty_directory(str(tmp_path))

    def test_non_empty_directory_is_refused(self, tmp_path):
        (tmp_path / "f").write_bytes(b"")
        with pytest.raises(CodedError) as excinfo:
            Server("127.0.0.1", 0, str(tmp_path))
        assert excinfo.value.code == Error.ENOTEMPTY

    def test_file_is_refused(self, tmp_path):
        (tmp_path / "f").write_bytes(b"")
        with pytest.raises(CodedError) as excinfo:
            check_or_make_empty_directory(str(tmp_path / "f"))
        assert excinfo.value.code == Error.ENOTDIR

    def test_str(self, tmp_path):
        server = Server("localhost", 4242, str(tmp_path / "dest"))
        assert str(server) == "localhost:4242 -> " + str(tmp_path / "dest")


def connect(server):
    return Connection("127.0.0.1", server.port)


class TestSession:
    def test_requests_are_applied_in_order(self, server, server_root):
        with connect(server) as connection:
            assert connection.apply(Request.mkdir("d")) == Response.ok()
            assert connection.apply(Request.put_file("d/f", b"data")) == Response.ok()
        assert (server_root / "d" / "f").read_bytes() == b"data"

    def test_error_response_does_not_end_the_session(self, server, server_root):
        with connect(server) as connection:
            assert connection.apply(Request.put_file("../escape", b"x")).is_error
            assert connection.apply(Request.put_file("ok", b"x")) == Response.ok()
        assert not (server_root.parent / "escape").exists()
        assert (server_root / "ok").exists()

    def test_unknown_opcode_gets_error_parcel(self, server):
        with connect(server) as connection:
            send_message(connection.stream, [0x7F, {}])
            parcel_type, data = read_parcel(connection.stream)
        assert parcel_type == ParcelType.ERROR
        assert "Unknown opcode" in msgpack.unpackb(data, raw=False)["error"]

    def test_malformed_request_is_answered_as_error(self, server):
        with connect(server) as connection:
            send_message(connection.stream, [Opcode.APPLY_REQUEST, {"type": 1}])
            parcel_type, _ = read_parcel(connection.stream)
            assert parcel_type == ParcelType.ERROR
            send_message(connection.stream, "not a pair")
            parcel_type, _ = read_parcel(connection.stream)
            assert parcel_type == ParcelType.ERROR
            # Still serving after both.
            assert connection.apply(Request.remove("nothing")) == Response.ok()

    def test_sessions_are_served_one_after_another(self, server, server_root):
        for index in range(3):
            with connect(server) as connection:
                assert connection.apply(Request.put_file("f%d" % index, b"x")) == Response.ok()
        assert sorted(p.name for p in server_root.iterdir()) == ["f0", "f1", "f2"]

    def test_dropped_connection_keeps_applied_requests(self, server, server_root):
        connection = connect(server)
        connection.apply(Request.mkdir("kept"))
        connection.close()
        with connect(server) as second:
            assert second.apply(Request.mkdir("kept")).is_error
        assert (server_root / "kept").is_dir()


def send_raw(server, data):
    with socket.create_connection(("127.0.0.1", server.port)) as sock:
        sock.sendall(data)


class TestBadInput:
    @pytest.mark.parametrize("data", [
        b"\x90",          # empty array as the size header
        b"\xff",          # negative size
        b"\xc3",          # boolean size
        b"\xa1",          # truncated string header
        b"\x01\xc1",      # reserved msgpack byte as the body
    ])
    def test_bad_frame_only_ends_that_session(self, server, server_root, data):
        send_raw(server, data)
        with connect(server) as connection:
            assert connection.apply(Request.mkdir("after")) == Response.ok()
        assert (server_root / "after").is_dir()

    def test_frame_over_the_limit_is_dropped(self, tmp_path):
        limited, thread = start_server(tmp_path / "limited", max_message_size=1024)
        try:
            with Connection("127.0.0.1", limited.port) as connection:
                with pytest.raises(TransportFailure):
                    connection.apply(Request.put_file("big", b"x" * 4096))
            with Connection("127.0.0.1", limited.port) as connection:
                assert connection.apply(Request.put_file("small", b"x" * 100)) == Response.ok()
        finally:
            limited.close()
            thread.join(5)
        assert not (tmp_path / "limited" / "big").exists()
        assert (tmp_path / "limited" / "small").read_bytes() == b"x" * 100

    def test_payload_larger_than_msgpack_default_buffer(self, server, server_root):
        size = 101 * 1024 * 1024
        with connect(server) as connection:
            assert connection.apply(Request.put_file("big", b"\x00" * size)) == Response.ok()
        assert (server_root / "big").stat().st_size == size
