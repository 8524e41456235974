import argparse
import logging
import sys

from .client import Client
from .definitions import DEFAULT_ADDRESS, DEFAULT_PORT, DEFAULT_CERT_FILE, DEFAULT_KEY_FILE
from .errors import CodedError
from .server import Server
from .tls import client_context, server_context

def port_number(value):
    port = int(value)
    if port <= 0 or port > 65535:
        raise argparse.ArgumentTypeError('port must be between 1 and 65535')
    return port

def build_parser():
    parser = argparse.ArgumentParser(prog='boxsync', description='Mirror a directory to a remote server over TLS')
    subparsers = parser.add_subparsers(dest='mode', required=True)

    def add_common(subparser, directory_help):
        subparser.add_argument('--directory', required=True, help=directory_help)
        subparser.add_argument('--address', default=DEFAULT_ADDRESS, help='Network address (default: %(default)s)')
        subparser.add_argument('--port', type=port_number, default=DEFAULT_PORT, help='TCP port (default: %(default)s)')
        subparser.add_argument('--log-file', help='Write logs to this file instead of stderr')
        subparser.add_argument('-v', '--verbose', action='store_true', help='Log every request')

    server_parser = subparsers.add_parser('server', help='Receive files into an empty directory')
    add_common(server_parser, 'Empty directory to write to')
    server_parser.add_argument('--cert', default=DEFAULT_CERT_FILE, help='Server certificate (default: %(default)s)')
    server_parser.add_argument('--key', default=DEFAULT_KEY_FILE, help='Server private key (default: %(default)s)')
    server_parser.add_argument('--client-ca', help='Require client certificates signed by this CA')

    client_parser = subparsers.add_parser('client', help='Send a directory and its changes to a server')
    add_common(client_parser, 'Directory to monitor and send')
    client_parser.add_argument('--ca-cert', default=DEFAULT_CERT_FILE, help='Certificate used to verify the server (default: %(default)s)')
    client_parser.add_argument('--cert', help='Client certificate for mutual authentication')
    client_parser.add_argument('--key', help='Client private key for mutual authentication')

    return parser

def setup_logging(log_file=None, verbose=False):
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(message)s',
    )

def run_server(args):
    try:
        context = server_context(args.cert, args.key, args.client_ca)
        server = Server(args.address, args.port, args.directory, context)
        server.listen()
    except CodedError as err:
        logging.error(err.message)
        return 1
    except OSError as err:
        logging.error(str(err))
        return 1
    except KeyboardInterrupt:
        logging.info('Server stopped')
    return 0

def run_client(args):
    client = None
    try:
        context = client_context(args.ca_cert, args.cert, args.key)
        client = Client(args.address, args.port, args.directory, context)
        client.sync_and_monitor()
    except CodedError as err:
        logging.error(err.message)
        return 1
    except OSError as err:
        logging.error(str(err))
        return 1
    except KeyboardInterrupt:
        logging.info('Client stopped')
    finally:
        if client is not None:
            client.close()
    return 0

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.directory or not args.address:
        parser.error('--directory and --address must not be empty')
    if args.mode == 'client' and (args.cert is None) != (args.key is None):
        parser.error('--cert and --key must be given together')

    setup_logging(args.log_file, args.verbose)
    if args.mode == 'server':
        return run_server(args)
    return run_client(args)

if __name__ == '__main__':
    sys.exit(main())
