import os
import posixpath

from .errors import InvalidPath

def sanitize_path(path):
    if not isinstance(path, str) or len(path) == 0:
        raise InvalidPath('Missing request path')

    # Conservative: benign paths such as 'a/b/../c' are rejected too.
    segments = path.split('/')
    if (path != posixpath.normpath(path) or path.startswith('/') or '\0' in path
            or any(segment in ('.', '..') for segment in segments)):
        raise InvalidPath("Erroneous path value: '" + path + "'")

    return path

def to_request_path(root, abs_path):
    rel_path = os.path.relpath(abs_path, root)
    if os.sep != '/':
        rel_path = rel_path.replace(os.sep, '/')
    return rel_path

def to_local_path(root, request_path):
    return os.path.join(root, *request_path.split('/'))

def is_real_directory(path):
    return not os.path.islink(path) and os.path.isdir(path)
