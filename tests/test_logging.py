#!/usr/bin/env python

import logging
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.append(Path(__file__).parents[1].as_posix())
from couchrest.logging import init_logging, ENTRY_FMT_DETAILED

log = logging.getLogger(__name__)


class LoggingInitTest(unittest.TestCase):
    def _cleanup_handlers(self, *names):
        for name in names:
            logger = logging.getLogger(name)
            while logger.handlers:
                logger.handlers[0].close()
                del logger.handlers[0]

    def test_stream_handlers(self):
        self.assertIsNone(init_logging(names=['test_streams']))
        handlers = {h.name: h for h in logging.getLogger('test_streams').handlers}
        self.assertSetEqual({'stdout', 'stderr'}, set(handlers))
        self.assertEqual(logging.INFO, handlers['stdout'].level)
        self.assertEqual('%(message)s', handlers['stdout'].formatter._fmt)
        self._cleanup_handlers('test_streams')

    def test_verbosity(self):
        init_logging(3, names=['test_verbose'])
        handlers = {h.name: h for h in logging.getLogger('test_verbose').handlers}
        self.assertEqual(logging.DEBUG - 1, handlers['stdout'].level)
        self.assertEqual(ENTRY_FMT_DETAILED, handlers['stdout'].formatter._fmt)
        self._cleanup_handlers('test_verbose')

    def test_stdout_stderr_split(self):
        init_logging(names=['test_split'])
        handlers = {h.name: h for h in logging.getLogger('test_split').handlers}
        warning = logging.LogRecord('test_split', logging.WARNING, __file__, 1, 'warning', None, None)
        info = logging.LogRecord('test_split', logging.INFO, __file__, 1, 'info', None, None)
        self.assertFalse(handlers['stdout'].filter(warning))
        self.assertTrue(handlers['stdout'].filter(info))
        self.assertTrue(handlers['stderr'].filter(warning))
        self.assertFalse(handlers['stderr'].filter(info))
        self._cleanup_handlers('test_split')

    def test_handlers_replaced(self):
        init_logging(names=['test_replace'])
        init_logging(names=['test_replace'])
        self.assertEqual(2, len(logging.getLogger('test_replace').handlers))
        init_logging(names=['test_replace'], replace_handlers=False)
        self.assertEqual(4, len(logging.getLogger('test_replace').handlers))
        self._cleanup_handlers('test_replace')

    def test_log_path(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_path = init_logging(log_path=Path(tmp_dir, 'logs', 'test.log'), names=['test_file'])
            self.assertEqual(Path(tmp_dir, 'logs', 'test.log'), log_path)
            logging.getLogger('test_file').debug('test message')
            self._cleanup_handlers('test_file')
            self.assertIn('test message', log_path.read_text('utf-8'))


if __name__ == '__main__':
    try:
        unittest.main(warnings='ignore', verbosity=2, exit=False)
    except KeyboardInterrupt:
        print()
