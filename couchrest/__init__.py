"""
A thin client library for CouchDB style document databases.

:author: Doug Skrypa
"""

from .__version__ import __version__
from .api import *
from .config import settings, ConnectionOptions, ConfigException, InvalidConfigError
from .connection import Connection
from .database import Database
from .exceptions import *
from .serialization import register_json_class, unregister_json_class
from .server import Server
