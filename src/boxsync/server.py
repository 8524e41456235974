import logging
import os
import select
import socket
import traceback

from .definitions import ROOT_MODE, MAX_MESSAGE_SIZE
from .errors import CodedError, Error
from .handlers import message_handlers
from .protocol import prepare_message_reader, send_error, send_response

def check_or_make_empty_directory(path):
    if not os.path.lexists(path):
        os.mkdir(path, ROOT_MODE)
        return

    if not os.path.isdir(path):
        raise CodedError(Error.ENOTDIR, path + ': Not a directory')
    if len(os.listdir(path)) > 0:
        raise CodedError(Error.ENOTEMPTY, path + ': Directory is not empty')

class Server:
    def __init__(self, address, port, path, ssl_context=None, max_message_size=MAX_MESSAGE_SIZE):
        self.address = address
        self.port = port
        self.path = os.path.abspath(path)
        self.ssl_context = ssl_context
        self.max_message_size = max_message_size
        self.listener = None
        self.running = False
        check_or_make_empty_directory(self.path)

    def __str__(self):
        return '%s:%d -> %s' % (self.address, self.port, self.path)

    def bind(self):
        self.listener = socket.create_server((self.address, self.port))
        self.port = self.listener.getsockname()[1]
        self.running = True

    def listen(self):
        self.bind()
        logging.info('Server: ' + str(self))
        self.serve_forever()

    def serve_forever(self, poll_interval=0.5):
        # One connection is drained completely before the next is accepted.
        # Requests are not commutative, so sessions must never interleave.
        try:
            while self.running:
                ready = select.select([self.listener], [], [], poll_interval)
                if not ready[0]:
                    continue
                try:
                    sock, peer = self.listener.accept()
                except OSError as err:
                    if self.running:
                        logging.warning('Accepting connection failed: ' + str(err))
                    continue
                self.handle_connection(sock, peer)
        finally:
            self.listener.close()

    def handle_connection(self, sock, peer):
        logging.info('Connection from %s:%d' % peer[:2])
        if self.ssl_context is not None:
            try:
                sock = self.ssl_context.wrap_socket(sock, server_side=True)
            except OSError as err:
                sock.close()
                logging.warning('TLS handshake with %s:%d failed: %s' % (peer[0], peer[1], err))
                return

        try:
            with sock, sock.makefile('rwb') as stream:
                self.run_session(stream)
        except OSError as err:
            logging.warning('Session with %s:%d ended: %s' % (peer[0], peer[1], err))
        except ValueError as err:
            # Undecodable stream; the framing cannot be recovered.
            logging.warning('Dropping %s:%d after malformed message: %s' % (peer[0], peer[1], err))
        except Exception as err:
            # Only this session ends; the server keeps accepting.
            logging.warning('Session with %s:%d failed: %s\n%s' % (peer[0], peer[1], err, traceback.format_exc()))
        else:
            logging.info('Session with %s:%d closed' % peer[:2])

    def run_session(self, stream):
        for message in prepare_message_reader(stream, self.max_message_size):
            try:
                [opcode, args] = message
                handler = message_handlers.get(opcode, None)
                if handler is not None:
                    send_response(stream, handler(self.path, args))
                else:
                    send_error(stream, Error.EINVAL, 'Unknown opcode: ' + str(opcode))
            except CodedError as err:
                send_error(stream, err.code, err.message)
            except (TypeError, ValueError) as err:
                logging.warning('Malformed message: ' + str(err))
                send_error(stream, Error.EINVAL, 'Malformed message: ' + str(err))
            except OSError:
                raise
            except Exception as err:
                logging.warning(''.join(traceback.format_exception(type(err), err, err.__traceback__)))
                send_error(stream, Error.EINVAL, str(err) + '\n' + traceback.format_exc())

    def close(self):
        self.running = False
