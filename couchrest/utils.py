"""
URL, query parameter, and MIME type helpers shared by the connection, server, and database layers.

:author: Doug Skrypa
"""

import json
import logging
import mimetypes
from typing import Optional, Union, Mapping, Any
from urllib.parse import SplitResult, ParseResult, urlsplit, quote

__all__ = [
    'parse_uri', 'clean_uri', 'url_without_credentials', 'is_http_uri', 'mime_type_for', 'guess_mime_type',
    'encode_params', 'escape_docid', 'enable_http_debug_logging', 'ParsedURI',
]
log = logging.getLogger(__name__)

ParsedURI = Union[SplitResult, ParseResult]

HTTP_SCHEMES = ('http', 'https')
JSON_PARAMS = {'key', 'keys', 'startkey', 'endkey', 'start_key', 'end_key'}
SHORT_MIME_TYPES = {'json': 'application/json', 'text': 'text/plain', 'form': 'application/x-www-form-urlencoded'}
SPECIAL_DOC_PREFIXES = ('_design/', '_local/')


def parse_uri(uri: Union[str, ParsedURI]) -> SplitResult:
    """
    :param uri: A URL string or the result of :func:`urllib.parse.urlsplit` / :func:`urllib.parse.urlparse`
    :return: The URL as a :class:`urllib.parse.SplitResult`
    """
    if isinstance(uri, SplitResult):
        return uri
    elif isinstance(uri, ParseResult):
        return urlsplit(uri.geturl())
    elif isinstance(uri, str):
        parsed = urlsplit(uri)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f'Invalid URL={uri!r} - expected an absolute URL such as http://127.0.0.1:5984')
        return parsed
    raise TypeError(f'Unexpected URL type={type(uri).__name__} for {uri!r}')


def clean_uri(uri: ParsedURI) -> SplitResult:
    """Returns a new SplitResult that only contains the scheme and netloc of the given parsed URL."""
    return SplitResult(uri.scheme, uri.netloc, '', '', '')


def url_without_credentials(uri: ParsedURI) -> str:
    """The scheme and host of the given parsed URL, without any user / password from its netloc."""
    return '{}://{}'.format(uri.scheme, uri.netloc.rpartition('@')[-1])


def is_http_uri(uri: Any) -> bool:
    return isinstance(uri, (SplitResult, ParseResult)) and uri.scheme in HTTP_SCHEMES and bool(uri.netloc)


def mime_type_for(value: str) -> str:
    """
    Convert a short content type name (such as ``json``) into a full MIME type.  Values that already look like MIME
    types, and values that cannot be resolved, are returned unchanged.
    """
    value = str(value)
    if '/' in value:
        return value
    try:
        return SHORT_MIME_TYPES[value]
    except KeyError:
        pass
    return mimetypes.types_map.get(f'.{value}', value)


def guess_mime_type(*names: Optional[str]) -> Optional[str]:
    for name in names:
        if name and isinstance(name, str):
            if mime_type := mimetypes.guess_type(name.partition('?')[0])[0]:
                return mime_type
    return None


def encode_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """
    Prepare query parameters for a request.  Parameters with a value of None are dropped.  Key-like parameters and any
    non-string values are JSON-encoded, as expected by view and changes endpoints.

    :param params: A mapping of query parameter names to values
    :return: A new dict containing the encoded parameters
    """
    encoded = {}
    if params:
        for name, value in params.items():
            if value is None:
                continue
            if name in JSON_PARAMS or not isinstance(value, str):
                value = json.dumps(value)
            encoded[name] = value
    return encoded


def escape_docid(docid: str) -> str:
    """Percent-encode the given document ID, leaving ``_design/`` and ``_local/`` prefixes intact."""
    if docid.startswith('/'):
        docid = docid[1:]
    for prefix in SPECIAL_DOC_PREFIXES:
        if docid.startswith(prefix):
            return prefix + quote(docid[len(prefix):], safe='')
    return quote(docid, safe='')


def enable_http_debug_logging():
    import http.client as http_client
    http_client.HTTPConnection.debuglevel = 1
    req_logger = logging.getLogger('urllib3')
    req_logger.setLevel(logging.DEBUG)
    req_logger.propagate = True
