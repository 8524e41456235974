import errno
import logging
import os
import select
import struct
import threading
import time
from collections import deque, namedtuple

from .definitions import ChangeType
from .errors import CodedError, UnrecognizedEvent, from_os_error
from .libc import get_libc
from .messages import Request
from .tools import is_real_directory, to_request_path

ChangeEvent = namedtuple('ChangeEvent', ['type', 'path', 'is_dir', 'mask'])

class Watcher:
    """Recursive inotify subscription on a directory tree.

    Every directory below root is watched, including directories created
    after the watch began. Raw events are returned by poll() in the order
    the kernel reported them, and translate() turns each one into at most
    one Request.
    """

    def __init__(self, root):
        self.root = os.path.abspath(root)
        self.libc = get_libc()
        self.inotify_fd = self.libc.init()
        self.shutdown_read, self.shutdown_write = os.pipe()
        self.lock = threading.Lock()
        self.closed = False
        self.released = False

        self.inotify_buffer = b''
        self.pending = deque()
        self.watch_descriptors = {} # wd -> path
        self.watch_paths = {}       # path -> wd

        try:
            self.add_watch(self.root)
        except OSError:
            self.release()
            raise

    def find_paths(self, path):
        yield path
        try:
            names = sorted(os.listdir(path))
        except FileNotFoundError:
            return
        for name in names:
            child = os.path.join(path, name)
            if is_real_directory(child):
                for child_path in self.find_paths(child):
                    yield child_path

    def add_watch(self, path):
        for watch_path in self.find_paths(path):
            try:
                wd = self.libc.add_watch(self.inotify_fd, watch_path)
            except OSError as err:
                if err.errno in (errno.ENOENT, errno.ENOTDIR):
                    logging.debug('Not watching vanished directory ' + watch_path)
                    continue
                raise

            previous = self.watch_descriptors.get(wd)
            if previous is not None and previous != watch_path:
                self.watch_paths.pop(previous, None)
            self.watch_descriptors[wd] = watch_path
            self.watch_paths[watch_path] = wd
            logging.debug('Watching ' + watch_path)

    def rm_watch(self, path):
        prefix = path + os.sep
        for watch_path in [p for p in self.watch_paths if p == path or p.startswith(prefix)]:
            wd = self.watch_paths.pop(watch_path)
            if self.watch_descriptors.get(wd) == watch_path:
                del self.watch_descriptors[wd]
                self.libc.rm_watch(self.inotify_fd, wd)

    def watched_paths(self):
        return sorted(self.watch_paths)

    def poll(self, timeout):
        """Wait up to timeout seconds for events.

        Returns a non-empty list of ChangeEvents, an empty list when the
        timeout expired first, or None once the watcher has been closed.
        """
        deadline = time.monotonic() + timeout
        while True:
            if self.pending:
                events = list(self.pending)
                self.pending.clear()
                return events
            if self.closed and self.released:
                return None

            remaining = max(0.0, deadline - time.monotonic())
            ready = select.select([self.inotify_fd, self.shutdown_read], [], [], remaining)[0]
            if self.inotify_fd in ready:
                self.read_notify()
                if self.pending:
                    continue
            if self.shutdown_read in ready or self.closed:
                self.release()
                return None
            if not ready and time.monotonic() >= deadline:
                return []

    def read_notify(self):
        try:
            chunk = os.read(self.inotify_fd, 65536)
        except BlockingIOError:
            return
        self.inotify_buffer += chunk

        while len(self.inotify_buffer) >= self.libc.INOTIFY_HEADER_SIZE:
            raw_header = self.inotify_buffer[:self.libc.INOTIFY_HEADER_SIZE]
            wd, watch_mask, _, name_length = struct.unpack(self.libc.INOTIFY_HEADER_FORMAT, raw_header)

            total_size = self.libc.INOTIFY_HEADER_SIZE + name_length
            if len(self.inotify_buffer) < total_size:
                break

            name = os.fsdecode(self.inotify_buffer[self.libc.INOTIFY_HEADER_SIZE:total_size].rstrip(b'\0'))
            self.inotify_buffer = self.inotify_buffer[total_size:]
            self.process_event(wd, watch_mask, name)

    def process_event(self, wd, watch_mask, name):
        if watch_mask & self.libc.IN_Q_OVERFLOW:
            self.pending.append(ChangeEvent(ChangeType.OVERFLOW, self.root, False, watch_mask))
            return

        if watch_mask & self.libc.IN_IGNORED:
            watch_path = self.watch_descriptors.pop(wd, None)
            if watch_path is not None and self.watch_paths.get(watch_path) == wd:
                del self.watch_paths[watch_path]
            return

        watch_path = self.watch_descriptors.get(wd)
        if watch_path is None:
            logging.debug('Change to ' + name + ' found with a stale watch descriptor: ' + str(wd))
            return

        if watch_mask & self.libc.IN_SELF_CHANGES:
            # The parent directory's watch reports the same change by name.
            if watch_path == self.root:
                logging.warning('Watched directory ' + self.root + ' was removed or moved')
                self.close()
            return

        full_path = os.path.join(watch_path, name) if name else watch_path
        is_dir = bool(watch_mask & self.libc.IN_ISDIR)
        self.pending.append(ChangeEvent(self.process_change_type(watch_mask), full_path, is_dir, watch_mask))

    def process_change_type(self, watch_mask):
        if watch_mask & self.libc.IN_CREATED_CHANGES:
            return ChangeType.CREATED
        elif watch_mask & self.libc.IN_DELETED_CHANGES:
            return ChangeType.REMOVED
        elif watch_mask & self.libc.IN_RENAMED_CHANGES:
            return ChangeType.RENAMED
        elif watch_mask & (self.libc.IN_CLOSE_WRITE | self.libc.IN_MODIFY):
            return ChangeType.WRITTEN
        elif watch_mask & self.libc.IN_ATTRIB:
            return ChangeType.ATTRIBUTES
        return None

    def translate(self, event):
        if event.type == ChangeType.OVERFLOW:
            raise UnrecognizedEvent('Event queue overflowed under ' + self.root + ', changes were lost')

        rel_path = to_request_path(self.root, event.path)
        if event.type == ChangeType.CREATED:
            if is_real_directory(event.path):
                self.add_watch(event.path)
                return Request.mkdir(rel_path)
            return self.put_file_request(event.path, rel_path)
        elif event.type == ChangeType.WRITTEN:
            return self.put_file_request(event.path, rel_path)
        elif event.type == ChangeType.REMOVED:
            if event.is_dir:
                self.rm_watch(event.path)
            return Request.remove(rel_path)
        elif event.type == ChangeType.RENAMED:
            # A rename inside the tree also produces a creation event for
            # the new name; only the old name is handled here.
            if event.is_dir:
                self.rm_watch(event.path)
            return Request.remove(rel_path)
        elif event.type == ChangeType.ATTRIBUTES:
            return None

        raise UnrecognizedEvent('Erroneous event value (%d): %s' % (event.mask, event.path))

    def put_file_request(self, path, rel_path):
        if os.path.isdir(path):
            logging.warning('Skipping symbolic link ' + path)
            return None
        try:
            with open(path, 'rb') as fh:
                content = fh.read()
        except FileNotFoundError:
            # Gone already; its removal event is queued behind this one.
            logging.debug('Skipping vanished file ' + path)
            return None
        except OSError as err:
            raise from_os_error(CodedError, err, path)
        return Request.put_file(rel_path, content)

    def close(self):
        with self.lock:
            if self.closed:
                return
            self.closed = True
            if not self.released:
                os.write(self.shutdown_write, b'x')

    def release(self):
        with self.lock:
            if self.released:
                return
            self.closed = True
            self.released = True
            for fd in (self.inotify_fd, self.shutdown_read, self.shutdown_write):
                os.close(fd)
