import logging
import os
import socket

from .definitions import BATCH_SIZE, QUIESCENCE_WINDOW
from .errors import CodedError, Error, RequestRejected
from .protocol import Connection
from .walker import walk_tree
from .watcher import Watcher

class Client:
    """Mirrors a local directory onto a server.

    sync() sends the whole tree once; sync_and_monitor() additionally keeps
    sending changes until the watcher is closed or something fails. Requests
    are sent in batches of at most batch_size, one connection per batch.
    """

    def __init__(self, address, port, path, ssl_context=None, batch_size=BATCH_SIZE,
                 quiescence_window=QUIESCENCE_WINDOW):
        if not os.path.isdir(path):
            raise CodedError(Error.ENOTDIR, path + ': Path not a directory')
        try:
            socket.getaddrinfo(address, port, type=socket.SOCK_STREAM)
        except OSError as err:
            raise CodedError(Error.EINVAL, '%s:%d: %s' % (address, port, err))

        self.address = address
        self.port = port
        self.path = os.path.abspath(path)
        self.ssl_context = ssl_context
        self.batch_size = batch_size
        self.quiescence_window = quiescence_window
        self.watcher = None
        self.monitoring = False

    def __str__(self):
        return '%s -> %s:%d' % (self.path, self.address, self.port)

    def connect(self):
        return Connection(self.address, self.port, self.ssl_context)

    def send_requests(self, requests):
        if len(requests) == 0:
            return

        logging.info('Sending %d requests to %s:%d' % (len(requests), self.address, self.port))
        with self.connect() as connection:
            for request in requests:
                response = connection.apply(request)
                # No rollback and no retry; the rest of the batch is dropped.
                if response.is_error:
                    raise RequestRejected(request, response)

    def sync(self):
        batch = []
        for request in walk_tree(self.path):
            batch.append(request)
            if len(batch) >= self.batch_size:
                self.send_requests(batch)
                batch = []
        self.send_requests(batch)
        logging.info('Initial sync of ' + self.path + ' complete')

    def start_watcher(self):
        self.watcher = Watcher(self.path)

    def watch(self):
        # The watcher is released only by the thread running this loop.
        batch = []
        self.monitoring = True
        try:
            while True:
                events = self.watcher.poll(self.quiescence_window)
                if events is None:
                    if batch:
                        logging.warning('Dropping %d unsent requests' % len(batch))
                    logging.info('Done monitoring')
                    return

                if len(events) == 0:
                    if batch:
                        self.send_requests(batch)
                        batch = []
                    continue

                for event in events:
                    request = self.watcher.translate(event)
                    if request is None:
                        continue
                    logging.debug('Queued ' + repr(request))
                    batch.append(request)
                    if len(batch) >= self.batch_size:
                        self.send_requests(batch)
                        batch = []
        finally:
            self.monitoring = False
            self.watcher.release()

    def sync_and_monitor(self):
        # Watch first so that changes made during the initial walk are not lost.
        self.start_watcher()
        self.monitoring = True
        try:
            self.sync()
        except (CodedError, OSError):
            logging.error('Initial files sending failure')
            self.monitoring = False
            self.watcher.release()
            raise
        self.watch()

    def close(self):
        if self.watcher is None:
            return
        self.watcher.close()
        if not self.monitoring:
            self.watcher.release()
