import ssl

from .errors import CodedError, from_os_error

def server_context(cert_file, key_file, client_ca_file=None):
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    try:
        context.load_cert_chain(cert_file, key_file)
        if client_ca_file is not None:
            context.load_verify_locations(client_ca_file)
            context.verify_mode = ssl.CERT_REQUIRED
    except OSError as err:
        raise from_os_error(CodedError, err, 'Creating TLS config failed')
    return context

def client_context(ca_file, cert_file=None, key_file=None):
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_verify_locations(ca_file)
        if cert_file is not None:
            context.load_cert_chain(cert_file, key_file)
    except OSError as err:
        raise from_os_error(CodedError, err, 'Creating TLS config failed')
    return context
