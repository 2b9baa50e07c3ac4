"""
Server-level operations: listing / creating databases, server info, and batched UUID generation.

:author: Doug Skrypa
"""

import logging
from threading import local
from typing import Union

from wrapt import synchronized

from .config import ConnectionOptions, settings
from .connection import Connection
from .database import Database
from .exceptions import PreconditionFailed
from .utils import parse_uri, clean_uri, url_without_credentials, ParsedURI

__all__ = ['Server', 'current_connections', 'DEFAULT_URL']
log = logging.getLogger(__name__)

DEFAULT_URL = 'http://127.0.0.1:5984'
_thread_local = local()


def current_connections() -> dict[str, Connection]:
    """The connections that were created by the current thread, keyed by server URL"""
    try:
        return _thread_local.connections
    except AttributeError:
        _thread_local.connections = connections = {}
        return connections


class Server:
    """
    :param uri: The URL of the server.  Any path, query, or fragment is ignored.
    :param int uuid_batch_count: The number of UUIDs to request at a time (default: ``settings.uuid_batch_count``)
    :param connection_options: Options to use when creating a :class:`~couchrest.connection.Connection`
    """

    def __init__(self, uri: Union[str, ParsedURI] = DEFAULT_URL, uuid_batch_count: int = None, **connection_options):
        self.uri = clean_uri(parse_uri(uri))
        self.uuid_batch_count = uuid_batch_count or settings.uuid_batch_count
        self.connection_options = ConnectionOptions(connection_options).as_dict(include_defaults=False)
        self.uuids = []

    def __repr__(self):
        return f'<{self.__class__.__name__}[{self.public_url}]>'

    @property
    def url(self) -> str:
        return self.uri.geturl()

    @property
    def public_url(self) -> str:
        """The server URL without any credentials, for display and logging"""
        return url_without_credentials(self.uri)

    @property
    def connection(self) -> Connection:
        """
        The connection to this server for the current thread.  Connections are cached per thread and shared by all
        Server objects with the same URL.
        """
        connections = current_connections()
        try:
            return connections[self.url]
        except KeyError:
            log.debug(f'Creating connection to {self}')
            connections[self.url] = conn = Connection(self.uri, **self.connection_options)
            return conn

    def info(self) -> dict:
        """The server welcome document, which includes the server version"""
        return self.connection.get('')

    def databases(self) -> list[str]:
        """The names of all databases on this server"""
        return self.connection.get('_all_dbs')

    def database(self, name: str) -> Database:
        """Returns a :class:`~couchrest.database.Database` object for the given name without checking that it exists"""
        return Database(self, name)

    def create_db(self, name: str) -> Database:
        db = self.database(name)
        db.create()
        return db

    def get_or_create_database(self, name: str) -> Database:
        db = self.database(name)
        try:
            db.create()
        except PreconditionFailed:
            log.debug(f'Database {name!r} already exists on {self}')
        return db

    def restart(self) -> dict:
        return self.connection.post('_restart')

    @synchronized
    def next_uuid(self, count: int = None) -> str:
        """
        Returns a UUID from the server.  UUIDs are retrieved from the server in batches and cached in :attr:`.uuids`.

        :param int count: The number of UUIDs to retrieve if a new batch is needed (default: :attr:`.uuid_batch_count`)
        """
        if not self.uuids:
            count = count or self.uuid_batch_count
            self.uuids = self.connection.get('_uuids', params={'count': count})['uuids']
        return self.uuids.pop()
