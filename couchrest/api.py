"""
Shortcuts for making requests with absolute URLs, without explicitly creating a Server first.

Example::

    >>> import couchrest
    >>> couchrest.put('http://127.0.0.1:5984/test_db/doc_1', {'value': 1})
    {'ok': True, 'id': 'doc_1', 'rev': '1-2d7b1bc2d6a3a47e16cc4f8f0b7e5ba0'}
    >>> couchrest.parse('http://127.0.0.1:5984/test_db/doc_1')
    {'host': 'http://127.0.0.1:5984', 'database': 'test_db', 'doc': 'doc_1'}

:author: Doug Skrypa
"""

import logging
from typing import Any, Optional
from urllib.parse import unquote

from .database import Database
from .server import Server
from .utils import parse_uri, clean_uri

__all__ = ['get', 'put', 'post', 'delete', 'copy', 'head', 'open_database', 'get_or_create_database', 'parse']
log = logging.getLogger(__name__)


def _split_url(url: str) -> tuple[Server, str]:
    uri = parse_uri(url)
    path = uri.path[1:] if uri.path.startswith('/') else uri.path
    if uri.query:
        path = f'{path}?{uri.query}'
    return Server(uri), path


def get(url: str, **options):
    server, path = _split_url(url)
    return server.connection.get(path, **options)


def put(url: str, doc: Any = None, **options):
    server, path = _split_url(url)
    return server.connection.put(path, doc, **options)


def post(url: str, doc: Any = None, **options):
    server, path = _split_url(url)
    return server.connection.post(path, doc, **options)


def delete(url: str, **options):
    server, path = _split_url(url)
    return server.connection.delete(path, **options)


def copy(url: str, destination: str, **options):
    server, path = _split_url(url)
    return server.connection.copy(path, destination, **options)


def head(url: str, **options):
    server, path = _split_url(url)
    return server.connection.head(path, **options)


def parse(url: str) -> dict[str, Optional[str]]:
    """
    Split a URL into the server URL, database name, and document ID

    :param str url: A URL such as ``http://127.0.0.1:5984/db_name/doc_id``
    :return dict: A dict with ``host``, ``database``, and ``doc`` keys.  Missing parts are None.
    """
    uri = parse_uri(url)
    db, _, doc = uri.path.lstrip('/').partition('/')
    return {'host': clean_uri(uri).geturl(), 'database': unquote(db) or None, 'doc': unquote(doc) or None}


def open_database(url: str) -> Database:
    """
    :param str url: The URL of a database, such as ``http://127.0.0.1:5984/db_name``
    :return: The :class:`~couchrest.database.Database`; it is not created if it does not exist
    """
    parsed = parse(url)
    if not parsed['database']:
        raise ValueError(f'Invalid database URL={url!r} - a database name is required')
    return Server(parsed['host']).database(parsed['database'])


def get_or_create_database(url: str) -> Database:
    db = open_database(url)
    return db.server.get_or_create_database(db.name)
