import logging
import os
import shutil

from .definitions import Opcode, RequestType, DIRECTORY_MODE, FILE_MODE
from .errors import ApplyFailure, CodedError, Error, process_error
from .messages import Request, Response
from .tools import sanitize_path, to_local_path

def handle_mkdir(path, request):
    # Exclusive: fails if anything exists there or the parent is missing.
    os.mkdir(path, DIRECTORY_MODE)

def handle_put_file(path, request):
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, 'wb') as fh:
        fh.write(request.data)

def handle_remove(path, request):
    if not os.path.lexists(path):
        return

    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except FileNotFoundError:
        pass

request_handlers = {
    RequestType.MKDIR:    handle_mkdir,
    RequestType.PUT_FILE: handle_put_file,
    RequestType.REMOVE:   handle_remove,
}

def apply_request(root, request):
    logging.debug('Received request: ' + repr(request))
    try:
        sanitize_path(request.path)
        handler = request_handlers.get(request.type, None)
        if handler is None:
            raise CodedError(Error.EINVAL, 'Unhandled request: ' + repr(request))

        try:
            handler(to_local_path(root, request.path), request)
        except OSError as err:
            raise ApplyFailure(process_error(err.errno), str(err))
    except CodedError as err:
        logging.warning('Rejected ' + repr(request) + ': ' + err.message)
        return Response.error(err.message)

    return Response.ok()

def handle_apply_request(root, args):
    return apply_request(root, Request.from_wire(args))

message_handlers = {
    Opcode.APPLY_REQUEST: handle_apply_request,
}
