"""
Incremental parsing of view, all_docs, and changes responses so rows can be processed while they are being received.

Example::

    >>> parser = StreamRowParser()
    >>> list(parser.parse('{"total_rows":2,"offset":0,"rows":[\\r\\n{"id":"a"},'))
    [{'id': 'a'}]
    >>> list(parser.parse('\\r\\n{"id":"b"}\\r\\n]}'))
    [{'id': 'b'}]
    >>> parser.header
    {'total_rows': 2, 'offset': 0, 'rows': []}

:author: Doug Skrypa
"""

import logging
from codecs import getincrementaldecoder
from typing import Iterator, Optional, Any

from .serialization import loads

__all__ = ['StreamRowParser']
log = logging.getLogger(__name__)

ROW_KEYS = ('rows', 'results')
MODES = ('array', 'feed')


class StreamRowParser:
    """
    :param str mode: ``array`` for responses containing a ``rows`` / ``results`` array, or ``feed`` for newline
      delimited JSON (continuous changes feeds)
    :param parser_opts: Keyword arguments to pass to :func:`couchrest.serialization.loads` for each row
    """

    def __init__(self, mode: str = 'array', **parser_opts):
        if mode not in MODES:
            raise ValueError(f'Invalid mode={mode!r} - expected one of: {", ".join(MODES)}')
        self.mode = mode
        self.parser_opts = parser_opts
        self._decoder = getincrementaldecoder('utf-8')()
        self._header = []
        self._row = []
        self._scalar_row = False
        self._stack = []
        self._in_string = False
        self._escaped = False
        self._key = []
        self._last_string = None
        self._in_row_array = False
        self._line = ''

    def parse(self, chunk) -> Iterator[Any]:
        """
        Feed the next chunk of the response to this parser.

        :param chunk: A str or bytes chunk of the response body
        :return: Generator that yields each row that was completed by the given chunk
        """
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(chunk)  # a multi-byte character may be split across chunks
        if self.mode == 'feed':
            return self._parse_lines(chunk)
        return self._parse_array(chunk)

    @property
    def header(self) -> Optional[dict]:
        """The content of the response outside of the row array, available after the full response was parsed"""
        if self.mode == 'feed':
            return None
        text = ''.join(self._header).strip()
        return loads(text, **self.parser_opts) if text else None

    def _parse_lines(self, chunk: str):
        self._line += chunk
        *lines, self._line = self._line.split('\n')
        for line in lines:
            if line := line.strip():
                yield loads(line, **self.parser_opts)

    def finish(self) -> Iterator[Any]:
        """Yields any final row that was not terminated by a newline (feed mode only)"""
        if self.mode == 'feed' and (line := self._line.strip()):
            self._line = ''
            yield loads(line, **self.parser_opts)

    def _parse_array(self, chunk: str):
        for c in chunk:
            if self._row:
                if self._scalar_row and not self._in_string and c in ',]':
                    yield self._finish_row()
                    if c == ']':
                        self._end_row_array(c)
                    continue
                self._row.append(c)
                if self._track(c) and len(self._stack) == 2:
                    yield self._finish_row()
            elif self._in_row_array:
                if c == ']':
                    self._end_row_array(c)
                elif c != ',' and not c.isspace():  # Separators and whitespace between rows are dropped
                    self._row.append(c)
                    self._scalar_row = c not in '{['
                    self._track(c)
            else:
                self._header.append(c)
                self._track(c)

    def _finish_row(self):
        row, self._row = ''.join(self._row), []
        return loads(row, **self.parser_opts)

    def _end_row_array(self, c: str):
        self._header.append(c)
        self._track(c)
        self._in_row_array = False

    def _track(self, c: str) -> bool:
        """
        Update nesting / string state for the given character.

        :return: True if the character closed an object or array
        """
        if self._in_string:
            if self._escaped:
                self._escaped = False
            elif c == '\\':
                self._escaped = True
            elif c == '"':
                self._in_string = False
                if len(self._stack) == 1 and not self._row:
                    self._last_string = ''.join(self._key)
            elif len(self._stack) == 1 and not self._row:
                self._key.append(c)
        elif c == '"':
            self._in_string = True
            self._key = []
        elif c in '{[':
            if c == '[' and len(self._stack) == 1 and not self._row:
                self._in_row_array = self._last_string in ROW_KEYS
            self._stack.append(c)
        elif c in '}]':
            if self._stack:
                self._stack.pop()
            return True
        return False
