import logging
import os
import stat

from .errors import WalkFailure, from_os_error
from .messages import Request
from .tools import to_request_path

def read_file(path):
    with open(path, 'rb') as fh:
        return fh.read()

def walk_tree(root):
    """Yield one request per entry below root, parents before children.

    Directories become MakeDirectory requests and regular files become
    PutFile requests carrying their full content. The first unreadable
    entry raises WalkFailure; requests yielded before it stay valid.
    """
    root = os.path.abspath(root)
    for request in walk_directory(root, root):
        yield request

def walk_directory(root, path):
    try:
        names = sorted(os.listdir(path))
    except OSError as err:
        raise from_os_error(WalkFailure, err, path)

    for name in names:
        child = os.path.join(path, name)
        try:
            child_mode = os.lstat(child)[stat.ST_MODE]
            if stat.S_ISLNK(child_mode):
                child_mode = os.stat(child)[stat.ST_MODE] if os.path.exists(child) else 0
                if not stat.S_ISREG(child_mode):
                    logging.warning('Skipping symbolic link ' + child)
                    continue
        except OSError as err:
            raise from_os_error(WalkFailure, err, child)

        rel_path = to_request_path(root, child)
        if stat.S_ISDIR(child_mode):
            yield Request.mkdir(rel_path)
            for request in walk_directory(root, child):
                yield request
        elif stat.S_ISREG(child_mode):
            try:
                content = read_file(child)
            except OSError as err:
                raise from_os_error(WalkFailure, err, child)
            yield Request.put_file(rel_path, content)
        else:
            logging.warning('Skipping special file ' + child)
