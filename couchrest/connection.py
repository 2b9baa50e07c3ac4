"""
The HTTP connection to a database server.

A :class:`Connection` wraps a `requests.Session <https://requests.readthedocs.io/en/latest/api/#requests.Session>`_ and
translates the GET / PUT / POST / DELETE / COPY / HEAD verbs into requests that send and receive JSON documents.

Example::

    >>> from urllib.parse import urlsplit
    >>> conn = Connection(urlsplit('http://127.0.0.1:5984'))
    >>> conn.put('test_db')
    {'ok': True}
    >>> conn.put('test_db/doc_1', {'value': 1})
    {'ok': True, 'id': 'doc_1', 'rev': '1-2d7b1bc2d6a3a47e16cc4f8f0b7e5ba0'}
    >>> conn.get('test_db/doc_1')
    {'_id': 'doc_1', '_rev': '1-2d7b1bc2d6a3a47e16cc4f8f0b7e5ba0', 'value': 1}

:author: Doug Skrypa
"""

import logging
from atexit import register as atexit_register
from contextlib import suppress
from typing import Callable, Optional, Any
from urllib.parse import unquote
from weakref import WeakSet

import requests
from requests.structures import CaseInsensitiveDict
from wrapt import synchronized

from .__version__ import __version__
from .config import ConnectionOptions
from .exceptions import RequestFailed, RequestTimeout, ServerBrokeConnection
from .serialization import dumps, loads
from .streamer import StreamRowParser
from .utils import clean_uri, url_without_credentials, is_http_uri, mime_type_for, guess_mime_type, encode_params
from .utils import ParsedURI

__all__ = ['Connection', 'requests_session', 'http_cleanup', 'USER_AGENT']
log = logging.getLogger(__name__)
__instances = WeakSet()

USER_AGENT = f'couchrest/{__version__}'
STREAM_CHUNK_SIZE = 8192


def requests_session(proxy: str = None) -> requests.Session:
    session = requests.Session()
    if proxy:
        session.proxies['http'] = proxy
        session.proxies['https'] = proxy

    with synchronized(__instances):
        __instances.add(session)
    return session


class Connection:
    """
    :param uri: The parsed URL of the server, as returned by :func:`urllib.parse.urlsplit`.  Only the scheme and host
      (including any credentials and port) are used; the path, query, and fragment are ignored.
    :param options: Connection options; see :class:`~couchrest.config.ConnectionOptions` (timeout, read_timeout,
      open_timeout, verify_ssl, ssl_client_cert, ssl_client_key, ssl_ca_file, proxy)
    """

    def __init__(self, uri: ParsedURI, **options):
        if not is_http_uri(uri):
            raise TypeError(
                f'Connection requires an http(s) URL parsed as urllib.parse.SplitResult or ParseResult'
                f' - found {type(uri).__name__}: {uri!r}'
            )
        self.uri = clean_uri(uri)
        self.options = ConnectionOptions(options)
        self.read_timeout = self.options.effective_read_timeout
        self.open_timeout = self.options.open_timeout
        self._base_url = url_without_credentials(self.uri)
        self.__session = None
        self._get_session()

    def __repr__(self):
        return f'<{self.__class__.__name__}[{self._base_url}]>'

    # region Session

    @synchronized
    def _get_session(self) -> requests.Session:
        if self.__session is None:
            self.__session = self._create_session()
        return self.__session

    def _create_session(self) -> requests.Session:
        opts = self.options
        session = requests_session(opts.proxy)
        session.headers['User-Agent'] = USER_AGENT
        if opts.verify_ssl is not None:
            session.verify = opts.verify_ssl
        if opts.ssl_ca_file and opts.verify_ssl is not False:
            session.verify = opts.ssl_ca_file
        if opts.ssl_client_cert:
            session.cert = (opts.ssl_client_cert, opts.ssl_client_key) if opts.ssl_client_key else opts.ssl_client_cert
        if self.uri.username:
            session.auth = (unquote(self.uri.username), unquote(self.uri.password or ''))
        return session

    @property
    def http(self) -> requests.Session:
        """
        The `requests.Session <https://requests.readthedocs.io/en/latest/api/#requests.Session>`_ used for requests.  A
        new session is created if this connection was closed.
        """
        with synchronized(self):
            return self._get_session()

    @http.setter
    def http(self, value: requests.Session):
        with synchronized(self):
            self.__session = value

    @property
    def timeout(self):
        return self.open_timeout, self.read_timeout

    def close(self):
        """Close the underlying session.  This connection may still be used after being closed."""
        with synchronized(self):
            if self.__session is not None:
                try:
                    self.__session.close()
                except Exception as e:
                    log.debug('Encountered {} while closing {}: {}'.format(type(e).__name__, self, e))
                self.__session = None

    # endregion

    # region Verbs

    def get(self, path: str, **options):
        """
        :param str path: The path to request, relative to the server URL.  May include a query string.
        :param options: Request options: headers, content_type, accept, params, raw, on_row.  Any other options are
          forwarded to the JSON parser (see :func:`json.loads`).
        :return: The decoded response body
        """
        return self._request('GET', path, options)

    def put(self, path: str, doc: Any = None, **options):
        """
        :param str path: The path to request, relative to the server URL
        :param doc: The document to send.  Dicts and objects that provide ``as_couch_json`` are sent as JSON, file-like
          objects are streamed, and ``raw=True`` sends the given str / bytes as-is.
        :param options: Request options (see :meth:`.get`)
        :return: The decoded response body
        """
        return self._request('PUT', path, options, doc, has_body=True)

    def post(self, path: str, doc: Any = None, **options):
        return self._request('POST', path, options, doc, has_body=True)

    def delete(self, path: str, **options):
        return self._request('DELETE', path, options)

    def copy(self, path: str, destination: str, **options):
        """
        :param str path: The path of the document to copy
        :param str destination: The ID of the new document, optionally followed by ``?rev=`` to overwrite an existing
          document
        :param options: Request options (see :meth:`.get`)
        """
        headers = dict(options.get('headers') or {})
        headers['Destination'] = destination
        options['headers'] = headers
        return self._request('COPY', path, options)

    def head(self, path: str, **options) -> CaseInsensitiveDict:
        """
        :return: The response headers.  Missing documents raise :class:`~couchrest.exceptions.NotFound`.
        """
        return self._request('HEAD', path, options)

    # endregion

    def url_for(self, path: str) -> str:
        return '{}/{}'.format(self._base_url, path if not path.startswith('/') else path[1:])

    def _request(self, method: str, path: str, options: dict[str, Any], doc: Any = None, has_body: bool = False):
        headers, fixed_content_type = _prepare_headers(options)
        raw = options.pop('raw', False)
        params = encode_params(options.pop('params', None))
        on_row = options.pop('on_row', None)  # type: Optional[Callable[[Any], Any]]
        data = None
        if has_body:
            data = self._prepare_body(path, doc, raw, headers, fixed_content_type)

        url = self.url_for(path)
        log.debug('{} -> {}'.format(method, url))
        try:
            resp = self.http.request(
                method,
                url,
                params=params or None,
                data=data,
                headers=headers,
                timeout=self.timeout,
                stream=on_row is not None,
            )
        except requests.Timeout as e:
            raise RequestTimeout(e, url) from e
        except requests.ConnectionError as e:
            raise ServerBrokeConnection(e, url) from e
        except requests.RequestException as e:
            raise RequestFailed(e, url) from e

        if resp.status_code >= 400:
            raise RequestFailed(resp, url)
        elif method == 'HEAD':
            return resp.headers
        elif on_row is not None:
            mode = 'feed' if params.get('feed') == 'continuous' else 'array'
            return _stream_rows(resp, on_row, StreamRowParser(mode, **options))
        elif raw:
            return resp.content
        elif not resp.content:
            return None
        return loads(resp.content, **options)

    @staticmethod
    def _prepare_body(path: str, doc: Any, raw: bool, headers: CaseInsensitiveDict, fixed_content_type: bool):
        if doc is None:
            return b''
        elif hasattr(doc, 'read'):  # Attachments are streamed from files / file-like objects
            if not fixed_content_type:
                if mime_type := guess_mime_type(path, getattr(doc, 'name', None)):
                    headers['Content-Type'] = mime_type
            return doc
        elif raw:
            return doc
        return dumps(doc).encode('utf-8')


def _prepare_headers(options: dict[str, Any]) -> tuple[CaseInsensitiveDict, bool]:
    """
    Headers that were explicitly provided are never replaced.  The ``content_type`` and ``accept`` options are used
    when the corresponding headers were not provided, and JSON is used otherwise.
    """
    headers = CaseInsensitiveDict(options.pop('headers', None) or {})
    content_type = options.pop('content_type', None)
    accept = options.pop('accept', None)
    fixed_content_type = 'Content-Type' in headers or content_type is not None
    if 'Content-Type' not in headers:
        headers['Content-Type'] = mime_type_for(content_type or 'json')
    if 'Accept' not in headers:
        headers['Accept'] = mime_type_for(accept or 'json')
    return headers, fixed_content_type


def _stream_rows(resp: requests.Response, on_row: Callable[[Any], Any], parser: StreamRowParser):
    try:
        for chunk in resp.iter_content(chunk_size=STREAM_CHUNK_SIZE):
            for row in parser.parse(chunk):
                on_row(row)
        for row in parser.finish():
            on_row(row)
    finally:
        resp.close()
    return parser.header


@atexit_register
def http_cleanup():
    with synchronized(__instances):
        for session in __instances:
            with suppress(Exception):
                session.close()
