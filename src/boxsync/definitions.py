BATCH_SIZE        = 100  # Max requests buffered before a flush
QUIESCENCE_WINDOW = 5.0  # Seconds without new events before a partial batch is flushed
MAX_MESSAGE_SIZE  = 2**32 - 1  # Largest frame accepted; msgpack bin32 limit

DIRECTORY_MODE = 0o700
FILE_MODE      = 0o600
ROOT_MODE      = 0o755

DEFAULT_ADDRESS   = 'localhost'
DEFAULT_PORT      = 12345
DEFAULT_CERT_FILE = './certs/server.cert'
DEFAULT_KEY_FILE  = './certs/server.key'

class ParcelType:
    # Request responses
    HEADER        = 0x01
    ERROR         = 0x03

class Opcode:
    APPLY_REQUEST = 0x01

class RequestType:
    MKDIR    = 0x01
    PUT_FILE = 0x02
    REMOVE   = 0x03

    names = { MKDIR: 'MakeDirectory', PUT_FILE: 'PutFile', REMOVE: 'Remove' }

class ResponseStatus:
    OK    = 0x00
    ERROR = 0x01

    names = { OK: 'Ok', ERROR: 'Error' }

class ChangeType:
    CREATED    = 0x01
    WRITTEN    = 0x02
    REMOVED    = 0x03
    RENAMED    = 0x04
    ATTRIBUTES = 0x05
    OVERFLOW   = 0x06
