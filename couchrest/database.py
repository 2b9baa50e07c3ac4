"""
Document CRUD, queries, and attachments for a single database.

:author: Doug Skrypa
"""

import logging
from base64 import b64encode
from io import BytesIO
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Union
from urllib.parse import quote

from .connection import Connection
from .exceptions import NotFound
from .utils import escape_docid, guess_mime_type

if TYPE_CHECKING:
    from .server import Server

__all__ = ['Database']
log = logging.getLogger(__name__)

IdOrDoc = Union[str, dict]
RowCallback = Optional[Callable[[Any], Any]]


class Database:
    """
    :param server: The :class:`~couchrest.server.Server` that contains this database
    :param str name: The name of the database
    """

    def __init__(self, server: 'Server', name: str):
        self.server = server
        self.name = name
        self.path = quote(name, safe='')

    def __repr__(self):
        return f'<{self.__class__.__name__}[{self.server.public_url}/{self.path}]>'

    def __eq__(self, other):
        return isinstance(other, Database) and self.name == other.name and self.server.url == other.server.url

    def __hash__(self):
        return hash((self.__class__, self.server.url, self.name))

    @property
    def connection(self) -> Connection:
        return self.server.connection

    @property
    def url(self) -> str:
        return f'{self.server.url}/{self.path}'

    def _path(self, *parts: str) -> str:
        return '/'.join((self.path, *parts))

    # region Database Management

    def info(self) -> dict:
        return self.connection.get(self.path)

    def exists(self) -> bool:
        try:
            self.connection.head(self.path)
        except NotFound:
            return False
        return True

    def create(self) -> dict:
        log.debug(f'Creating database {self.name!r}')
        return self.connection.put(self.path)

    def delete(self) -> dict:
        """Delete this database and all of its documents"""
        log.debug(f'Deleting database {self.name!r}')
        return self.connection.delete(self.path)

    def recreate(self):
        try:
            self.delete()
        except NotFound:
            pass
        return self.create()

    # endregion

    # region Documents

    def get(self, docid: str, **params) -> dict:
        """
        :param str docid: The ID of the document to retrieve
        :param params: Query parameters, such as ``rev`` to retrieve a specific revision
        :return dict: The document
        """
        return self.connection.get(self._path(escape_docid(docid)), params=params)

    def save_doc(self, doc: dict, batch: bool = False) -> dict:
        """
        Save the given document.  If it does not have an ``_id``, then one will be assigned from
        :meth:`Server.next_uuid<couchrest.server.Server.next_uuid>`.  The ``_id`` and ``_rev`` of the given document are
        updated to reflect the saved revision.

        :param dict doc: The document to save
        :param bool batch: Use batch mode; the server acknowledges the write before it is committed
        :return dict: The server's response
        """
        if '_attachments' in doc:
            doc['_attachments'] = encode_attachments(doc['_attachments'])
        if '_id' not in doc:
            doc['_id'] = self.server.next_uuid()

        params = {'batch': 'ok'} if batch else None
        result = self.connection.put(self._path(escape_docid(doc['_id'])), doc, params=params)
        if 'rev' in result:
            doc['_rev'] = result['rev']
        return result

    def delete_doc(self, doc: dict) -> dict:
        """
        :param dict doc: The document to delete; it must include its current ``_id`` and ``_rev``
        """
        try:
            docid, rev = doc['_id'], doc['_rev']
        except KeyError as e:
            raise ValueError(f'Unable to delete document without {e.args[0]}: {doc}') from None
        return self.connection.delete(self._path(escape_docid(docid)), params={'rev': rev})

    def copy_doc(self, doc: IdOrDoc, dest: IdOrDoc) -> dict:
        """
        :param doc: The ID of the document to copy, or the document itself
        :param dest: The ID of the new document, or an existing document (including ``_id`` and ``_rev``) to overwrite
        """
        docid = doc if isinstance(doc, str) else doc['_id']
        if isinstance(dest, str):
            destination = dest
        elif '_rev' in dest:
            destination = '{}?rev={}'.format(dest['_id'], dest['_rev'])
        else:
            destination = dest['_id']
        return self.connection.copy(self._path(escape_docid(docid)), destination)

    def bulk_save(self, docs: list[dict], all_or_nothing: bool = False, use_uuids: bool = True) -> list[dict]:
        """
        Save multiple documents with a single request.  Documents that were saved successfully are updated with their
        new ``_id`` and ``_rev``; the results should be checked for per-document errors.

        :param docs: The documents to save
        :param bool all_or_nothing: Request all-or-nothing semantics
        :param bool use_uuids: Assign IDs from the server's UUIDs to documents without an ``_id``
        :return list: The per-document results
        """
        if use_uuids:
            for doc in docs:
                if '_id' not in doc:
                    doc['_id'] = self.server.next_uuid()

        payload = {'docs': docs}
        if all_or_nothing:
            payload['all_or_nothing'] = True

        results = self.connection.post(self._path('_bulk_docs'), payload)
        for doc, result in zip(docs, results):
            if 'error' in result:
                error, reason = result['error'], result.get('reason')
                log.debug('Error saving doc={!r}: {}: {}'.format(doc.get('_id'), error, reason))
            else:
                doc['_id'] = result['id']
                doc['_rev'] = result['rev']
        return results

    def bulk_delete(self, docs: Iterable[dict], all_or_nothing: bool = False) -> list[dict]:
        docs = list(docs)
        for doc in docs:
            doc['_deleted'] = True
        return self.bulk_save(docs, all_or_nothing=all_or_nothing, use_uuids=False)

    # endregion

    # region Queries

    def all_docs(self, on_row: RowCallback = None, **params):
        """
        :param on_row: A callback that should receive each row while the response is streamed.  If provided, the rows
          are not included in the returned value.
        :param params: Query parameters, such as ``include_docs``, ``startkey``, or ``keys``
        """
        return self._query(self._path('_all_docs'), on_row, params)

    def view(self, name: str, on_row: RowCallback = None, **params):
        """
        :param str name: A ``design_doc/view_name`` name, or a path relative to this database
        :param on_row: A callback that should receive each row while the response is streamed
        :param params: Query parameters, such as ``key``, ``reduce``, or ``keys``
        """
        try:
            design, view = name.split('/')
        except ValueError:
            path = self._path(name)
        else:
            path = self._path('_design', quote(design, safe=''), '_view', quote(view, safe=''))
        return self._query(path, on_row, params)

    def changes(self, on_row: RowCallback = None, **params):
        return self.connection.get(self._path('_changes'), params=params, on_row=on_row)

    def _query(self, path: str, on_row: RowCallback, params: dict[str, Any]):
        if 'keys' in params:
            keys = params.pop('keys')
            return self.connection.post(path, {'keys': keys}, params=params, on_row=on_row)
        return self.connection.get(path, params=params, on_row=on_row)

    # endregion

    # region Attachments

    def _attachment_path(self, doc: IdOrDoc, name: str) -> str:
        docid = doc if isinstance(doc, str) else doc['_id']
        return self._path(escape_docid(docid), quote(name, safe=''))

    def fetch_attachment(self, doc: IdOrDoc, name: str) -> bytes:
        return self.connection.get(self._attachment_path(doc, name), raw=True)

    def put_attachment(self, doc: dict, name: str, content, content_type: str = None) -> dict:
        """
        :param dict doc: The document that the attachment should be added to; its ``_rev`` is updated
        :param str name: The name of the attachment
        :param content: The content of the attachment as str, bytes, or a file-like object
        :param str content_type: The MIME type of the attachment (default: guessed from the name, falling back to
          application/octet-stream)
        """
        if isinstance(content, str):
            content = content.encode('utf-8')
        if isinstance(content, (bytes, bytearray)):
            content = BytesIO(content)
        if not content_type:
            content_type = guess_mime_type(name, getattr(content, 'name', None)) or 'application/octet-stream'

        params = {'rev': doc['_rev']} if '_rev' in doc else None
        path = self._attachment_path(doc, name)
        result = self.connection.put(path, content, content_type=content_type, params=params)
        if 'rev' in result:
            doc['_rev'] = result['rev']
        return result

    def delete_attachment(self, doc: dict, name: str) -> dict:
        result = self.connection.delete(self._attachment_path(doc, name), params={'rev': doc['_rev']})
        if 'rev' in result:
            doc['_rev'] = result['rev']
        return result

    # endregion


def encode_attachments(attachments: dict[str, dict]) -> dict[str, dict]:
    """Base64-encode the ``data`` of inline attachments that were provided as bytes"""
    for attachment in attachments.values():
        if attachment.get('stub', False):
            continue
        data = attachment.get('data')
        if isinstance(data, (bytes, bytearray)):
            attachment['data'] = b64encode(data).decode('utf-8')
    return attachments
