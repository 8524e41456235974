from .client import Client
from .messages import Request, Response
from .server import Server

__version__ = '0.1.0'
