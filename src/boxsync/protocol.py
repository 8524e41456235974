import logging
import socket

import msgpack

from .definitions import Opcode, ParcelType, MAX_MESSAGE_SIZE
from .errors import TransportFailure
from .messages import Response

LENGTH_HEADER_SIZES = { 0xcc: 1, 0xcd: 2, 0xce: 4, 0xcf: 8 }

def read_length(stream):
    pack_header = stream.read(1)
    if len(pack_header) == 0:
        return None

    read_size = LENGTH_HEADER_SIZES.get(pack_header[0], 0)
    if read_size > 0:
        pack_header += stream.read(read_size)
    return msgpack.unpackb(pack_header, raw=False)

class MessageReader:
    def __init__(self, stream, max_size=MAX_MESSAGE_SIZE):
        self.stream = stream
        self.max_size = max_size
        self.message_size = 0

    def read_message_size(self):
        size = read_length(self.stream)
        if size is None:
            self.message_size = 0
            return
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            raise ValueError('Invalid message size header: ' + repr(size))
        if size > self.max_size:
            raise ValueError('Message of %d bytes exceeds the %d byte limit' % (size, self.max_size))
        self.message_size = size

    def read(self, bytes):
        if self.message_size <= 0:
            self.read_message_size()

        read_bytes = self.stream.read(min(16384, self.message_size))
        self.message_size -= len(read_bytes)
        return read_bytes

def prepare_message_reader(stream, max_size=MAX_MESSAGE_SIZE):
    # max_bin_len follows max_buffer_size, so whole-file payloads fit.
    return msgpack.Unpacker(MessageReader(stream, max_size), raw=False, max_buffer_size=max_size)

def send_message(stream, message):
    data = msgpack.packb(message)
    stream.write(msgpack.packb(len(data)))
    stream.write(data)
    stream.flush()

def send_parcel(stream, parcel_type, data):
    stream.write(bytearray([parcel_type]))
    stream.write(msgpack.packb(len(data)))
    stream.write(data)
    stream.flush()

def send_error(stream, code, message):
    send_parcel(stream, ParcelType.ERROR, msgpack.packb({ 'code': code, 'error': message }))

def send_response(stream, response):
    send_parcel(stream, ParcelType.HEADER, response.pack())

def read_parcel(stream):
    parcel_type = stream.read(1)
    if len(parcel_type) == 0:
        return None, None

    length = read_length(stream)
    if length is None:
        return None, None
    data = stream.read(length)
    if len(data) < length:
        return None, None
    return parcel_type[0], data

class Connection:
    """Client end of one session with the server.

    Only one request is outstanding at a time: apply() writes a request and
    blocks until its matching response has been read.
    """

    def __init__(self, address, port, ssl_context=None, server_hostname=None):
        try:
            sock = socket.create_connection((address, port))
        except OSError as err:
            raise TransportFailure('Connection to server failed: ' + str(err))

        if ssl_context is not None:
            try:
                sock = ssl_context.wrap_socket(sock, server_hostname=server_hostname or address)
            except OSError as err:
                sock.close()
                raise TransportFailure('TLS handshake with server failed: ' + str(err))

        self.sock = sock
        self.stream = sock.makefile('rwb')

    def apply(self, request):
        try:
            send_message(self.stream, [Opcode.APPLY_REQUEST, request.to_wire()])
            parcel_type, data = read_parcel(self.stream)
        except OSError as err:
            raise TransportFailure('Connection to server lost: ' + str(err))

        if parcel_type is None:
            raise TransportFailure('Connection closed by server')
        try:
            if parcel_type == ParcelType.HEADER:
                return Response.unpack(data)
            if parcel_type == ParcelType.ERROR:
                error = msgpack.unpackb(data, raw=False)
                return Response.error(error['error'])
        except (ValueError, TypeError, KeyError) as err:
            raise TransportFailure('Malformed response from server: ' + str(err))
        raise TransportFailure('Unexpected parcel type from server: ' + str(parcel_type))

    def close(self):
        try:
            self.stream.close()
            self.sock.close()
        except OSError as err:
            logging.debug('Error closing connection: ' + str(err))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
