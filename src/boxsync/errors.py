import errno

class Error:
    OK      = 0
    EPERM   = 1  # Operation not permitted
    ENOENT  = 2  # No such file / directory
    EIO     = 5  # IO error
    EBADF   = 9  # Bad file number
    EAGAIN  = 11 # Try again
    EACCES  = 13 # Access denied
    EBUSY   = 16 # Device busy
    EEXIST  = 17 # File exists
    EXDEV   = 18 # Cross-device link
    ENODEV  = 19 # No such device
    ENOTDIR = 20 # Not a directory
    EISDIR  = 21 # Is a directory
    EINVAL  = 22 # Invalid argument
    ENOSPC  = 28 # No space left on device
    EROFS   = 30 # Read-only filesystem
    ENOTEMPTY = 39 # Directory not empty

class CodedError(Exception):
    def __init__(self, code, message):
        super(CodedError, self).__init__(message)
        self.code = code
        self.message = message

# Rejected by the path sanitizer; answered with an Error response.
class InvalidPath(CodedError):
    def __init__(self, message):
        super(InvalidPath, self).__init__(Error.EINVAL, message)

# Local filesystem error while applying a validated request.
class ApplyFailure(CodedError):
    pass

# Connection could not be established or was lost mid-flush.
class TransportFailure(CodedError):
    def __init__(self, message):
        super(TransportFailure, self).__init__(Error.EIO, message)

# Unreadable entry during the initial traversal.
class WalkFailure(CodedError):
    pass

class UnrecognizedEvent(CodedError):
    def __init__(self, message):
        super(UnrecognizedEvent, self).__init__(Error.EINVAL, message)

# The server answered a flushed request with an Error response.
class RequestRejected(CodedError):
    def __init__(self, request, response):
        super(RequestRejected, self).__init__(Error.EIO, "Sending request '%s' to server failed: %s" % (request, response.message))
        self.request = request
        self.response = response

def process_error(osError):
    return {
        0:               Error.OK,
        errno.EPERM:     Error.EPERM,
        errno.ENOENT:    Error.ENOENT,
        errno.EIO:       Error.EIO,
        errno.EBADF:     Error.EBADF,
        errno.EAGAIN:    Error.EAGAIN,
        errno.EACCES:    Error.EACCES,
        errno.EBUSY:     Error.EBUSY,
        errno.EEXIST:    Error.EEXIST,
        errno.EXDEV:     Error.EXDEV,
        errno.ENODEV:    Error.ENODEV,
        errno.ENOTDIR:   Error.ENOTDIR,
        errno.EISDIR:    Error.EISDIR,
        errno.EINVAL:    Error.EINVAL,
        errno.ENOSPC:    Error.ENOSPC,
        errno.EROFS:     Error.EROFS,
        errno.ENOTEMPTY: Error.ENOTEMPTY,
    }.get(osError, Error.EINVAL)

def from_os_error(error_class, err, path=None):
    message = err.strerror or str(err)
    if path is not None:
        message = path + ': ' + message
    return error_class(process_error(err.errno), message)
