"""
Exceptions raised when requests to the database server fail

:author: Doug Skrypa
"""

import json

__all__ = [
    'RequestFailed', 'ServerBrokeConnection', 'BadRequest', 'Unauthorized', 'Forbidden', 'NotFound', 'MethodNotAllowed',
    'NotAcceptable', 'RequestTimeout', 'Conflict', 'PreconditionFailed', 'RequestEntityTooLarge',
    'UnsupportedMediaType', 'RequestedRangeNotSatisfiable', 'ExpectationFailed', 'InternalServerError', 'BadGateway',
    'ServiceUnavailable', 'http_code_and_reason',
]


def http_code_and_reason(cause):
    """
    Determines the HTTP response code and its associated string representation based on the given Exception or Response.

    :param cause: An Exception of :class:`requests.Response` object
    :return tuple: (int(code), str(reason)) if possible, otherwise (None, None)
    """
    if isinstance(cause, Exception):
        return None, None
    try:
        return cause.status_code, cause.reason
    except AttributeError:
        return None, None


def _decode_error_body(text):
    """Returns the decoded ``{"error": ..., "reason": ...}`` body that the server sends with errors, if present"""
    if not text:
        return None
    try:
        body = json.loads(text)
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


class RequestFailed(Exception):
    """
    Base class for all errors that occur while sending a request to the database server.

    If the cause is a Response object, then the code and reason are extracted from it.  If the cause is an exception
    raised by the transport, then no response will be available.

    If a RequestFailed is raised when a more specific exception (that is a subclass of RequestFailed) exists for the
    given cause's status code, then the more specific subclass will be returned by __new__.  Subclasses must define a
    `_code` property that matches an HTTP status code in order to be used in this manner.

    :param cause: An Exception or a :class:`requests.Response` object
    :param str url: The URL that was requested
    :param args: Additional args to pass to the Exception constructor, including an optional message first parameter
    """
    _types = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        try:
            # noinspection PyUnresolvedReferences
            cls._types[cls._code] = cls
        except AttributeError:
            pass

    def __new__(cls, cause, url, *args):
        code, reason = http_code_and_reason(cause)
        if (cls is RequestFailed) and (code in cls._types):
            obj = super().__new__(cls._types[code])
        else:
            obj = super().__new__(cls)
        obj.http_code = code if code is not None else getattr(cls, '_code', None)
        obj.reason = reason
        return obj

    def __init__(self, cause, url, *args):
        self.url = url
        self.error = None
        if isinstance(cause, Exception):
            self.response = None
            self.exception = cause
            self.msg = args[0] if len(args) > 0 else str(cause)
        else:
            self.response = cause
            self.exception = None
            self.msg = args[0] if len(args) > 0 else None
            self.error = _decode_error_body(self.http_body)
            if self.error:
                if not self.msg and 'error' in self.error:
                    self.msg = '{}: {}'.format(self.error['error'], self.error.get('reason'))
            if not self.msg:
                txt = self.http_body
                if isinstance(txt, str) and ((len(txt.splitlines()) < 6) and (len(txt) < 500)):
                    self.msg = txt
        super().__init__(*args)

    @property
    def http_body(self):
        if self.response is None:
            return None
        return self.response.text

    @property
    def http_headers(self):
        if self.response is None:
            return None
        return self.response.headers

    def __reduce__(self):
        """Makes pickle work properly; implementing __getnewargs__ was not working"""
        new_args = (self.exception or self.response, self.url)
        state = self.__dict__.copy()
        state['args'] = self.args       # args does not seem to show up in __dict__ for exceptions...
        return type(self), new_args, state

    def __setstate__(self, state):
        self.__dict__.update(state)

    def __str__(self):
        if self.msg:
            return '{} [{}] {} on {}: {}'.format(type(self).__name__, self.http_code, self.reason, self.url, self.msg)
        return '{} [{}] {} on {}'.format(type(self).__name__, self.http_code, self.reason, self.url)

    __repr__ = __str__


class ServerBrokeConnection(RequestFailed):
    """The connection to the server was refused, reset, or closed before a response was received"""


class BadRequest(RequestFailed):
    _code = 400


class Unauthorized(RequestFailed):
    """Raised when the server rejects the provided credentials, or when credentials are required"""
    _code = 401


class Forbidden(RequestFailed):
    _code = 403


class NotFound(RequestFailed):
    """Raised when the requested database, document, or attachment does not exist"""
    _code = 404


class MethodNotAllowed(RequestFailed):
    _code = 405


class NotAcceptable(RequestFailed):
    _code = 406


class RequestTimeout(RequestFailed):
    """Raised when the server reports a timeout, or when the client timed out waiting for the server"""
    _code = 408


class Conflict(RequestFailed):
    """Raised when a document update does not include the current revision"""
    _code = 409


class PreconditionFailed(RequestFailed):
    """Raised when creating a database that already exists"""
    _code = 412


class RequestEntityTooLarge(RequestFailed):
    _code = 413


class UnsupportedMediaType(RequestFailed):
    _code = 415


class RequestedRangeNotSatisfiable(RequestFailed):
    _code = 416


class ExpectationFailed(RequestFailed):
    _code = 417


class InternalServerError(RequestFailed):
    _code = 500


class BadGateway(RequestFailed):
    _code = 502


class ServiceUnavailable(RequestFailed):
    _code = 503
