"""
Helpers for serializing documents to JSON and deserializing response bodies

:author: Doug Skrypa
"""

import json
import logging
from base64 import b64encode
from collections.abc import Mapping, KeysView, ValuesView
from datetime import datetime, date

from .config import settings

__all__ = ['CouchJSONEncoder', 'dumps', 'loads', 'register_json_class', 'unregister_json_class', 'JSON_CREATE_ID']
log = logging.getLogger(__name__)

JSON_CREATE_ID = 'json_class'
_json_classes = {}


class CouchJSONEncoder(json.JSONEncoder):
    def default(self, o):
        if hasattr(o, 'as_couch_json'):
            return o.as_couch_json()
        elif isinstance(o, (set, frozenset, KeysView)):
            return sorted(o)
        elif isinstance(o, ValuesView):
            return list(o)
        elif isinstance(o, Mapping):
            return dict(o)
        elif isinstance(o, (bytes, bytearray)):
            try:
                return o.decode('utf-8')
            except UnicodeDecodeError:
                return b64encode(o).decode('utf-8')
        elif isinstance(o, datetime):
            return o.isoformat()
        elif isinstance(o, date):
            return o.strftime('%Y-%m-%d')
        return super().default(o)


def dumps(doc) -> str:
    """
    Serialize the given document as JSON.  If the document provides an ``as_couch_json`` method, then the value that it
    returns is serialized instead.
    """
    if hasattr(doc, 'as_couch_json'):
        doc = doc.as_couch_json()
    return json.dumps(doc, cls=CouchJSONEncoder, separators=(',', ':'))


def loads(text, **parser_opts):
    """
    Deserialize the given JSON text.  Parser options are forwarded to :func:`json.loads`.

    If :data:`couchrest.config.settings.decode_json_objects` is enabled and no ``object_hook`` was provided, then JSON
    objects with a ``json_class`` key that matches a registered class will be converted via that class's
    ``json_create`` classmethod.
    """
    if settings.decode_json_objects and _json_classes and 'object_hook' not in parser_opts:
        parser_opts['object_hook'] = _create_json_object
    return json.loads(text, **parser_opts)


def _create_json_object(obj: dict):
    try:
        cls = _json_classes[obj[JSON_CREATE_ID]]
    except (KeyError, TypeError):
        return obj
    return cls.json_create(obj)


def register_json_class(cls=None, *, name: str = None):
    """
    Register a class so that it may be re-created from decoded JSON objects.  May be used as a class decorator, with or
    without a ``name`` to use instead of the class's name.  The class must define a ``json_create`` classmethod that
    accepts the decoded dict.
    """
    def _register(_cls):
        if not callable(getattr(_cls, 'json_create', None)):
            raise TypeError(f'{_cls.__name__} cannot be registered - it does not define a json_create method')
        _json_classes[name or _cls.__name__] = _cls
        log.debug(f'Registered {_cls.__name__} for JSON object decoding')
        return _cls

    return _register if cls is None else _register(cls)


def unregister_json_class(name: str):
    _json_classes.pop(name, None)
