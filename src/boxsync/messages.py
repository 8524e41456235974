import msgpack

from .definitions import RequestType, ResponseStatus
from .errors import CodedError, Error

class Request:
    def __init__(self, type, path, data=b''):
        self.type = type
        self.path = path
        self.data = data

    @classmethod
    def mkdir(cls, path):
        return cls(RequestType.MKDIR, path)

    @classmethod
    def put_file(cls, path, data):
        return cls(RequestType.PUT_FILE, path, data)

    @classmethod
    def remove(cls, path):
        return cls(RequestType.REMOVE, path)

    def to_wire(self):
        args = { 'type': self.type, 'path': self.path }
        if self.type == RequestType.PUT_FILE:
            args['data'] = bytes(self.data)
        return args

    @classmethod
    def from_wire(cls, args):
        if not isinstance(args, dict) or 'type' not in args or 'path' not in args:
            raise CodedError(Error.EINVAL, 'Malformed request: ' + repr(args))
        path = args['path']
        data = args.get('data', b'')
        if not isinstance(path, str) or not isinstance(data, bytes):
            raise CodedError(Error.EINVAL, 'Malformed request: ' + repr(args))
        return cls(args['type'], path, data)

    def pack(self):
        return msgpack.packb(self.to_wire())

    @classmethod
    def unpack(cls, raw):
        return cls.from_wire(msgpack.unpackb(raw, raw=False))

    def __eq__(self, other):
        if not isinstance(other, Request):
            return NotImplemented
        return (self.type, self.path, self.data) == (other.type, other.path, other.data)

    def __repr__(self):
        name = RequestType.names.get(self.type, str(self.type))
        if self.type == RequestType.PUT_FILE:
            return '%s(%r, %d bytes)' % (name, self.path, len(self.data))
        return '%s(%r)' % (name, self.path)

class Response:
    def __init__(self, status=ResponseStatus.OK, message=''):
        self.status = status
        self.message = message

    @classmethod
    def ok(cls):
        return cls(ResponseStatus.OK)

    @classmethod
    def error(cls, message):
        return cls(ResponseStatus.ERROR, message)

    @property
    def is_error(self):
        return self.status != ResponseStatus.OK

    def to_wire(self):
        return { 'status': self.status, 'message': self.message }

    @classmethod
    def from_wire(cls, args):
        if not isinstance(args, dict) or 'status' not in args:
            raise CodedError(Error.EINVAL, 'Malformed response: ' + repr(args))
        return cls(args['status'], args.get('message', ''))

    def pack(self):
        return msgpack.packb(self.to_wire())

    @classmethod
    def unpack(cls, raw):
        return cls.from_wire(msgpack.unpackb(raw, raw=False))

    def __eq__(self, other):
        if not isinstance(other, Response):
            return NotImplemented
        return (self.status, self.message) == (other.status, other.message)

    def __repr__(self):
        name = ResponseStatus.names.get(self.status, str(self.status))
        if self.message:
            return '%s(%r)' % (name, self.message)
        return name
