#!/usr/bin/env python3
"""Test suite for logging configuration"""

import logging
import os
import tempfile
import unittest
from pyppp.logger import (
    ROOT_LOGGER, ColoredFormatter, LogContext, LoggerConfig, LogLevel,
    get_logger, level_value, setup_logger
)


class LoggerTestCase(unittest.TestCase):

    def tearDown(self):
        for name in (ROOT_LOGGER, 'pyppp.test'):
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
            logger.setLevel(logging.NOTSET)


class TestLevels(LoggerTestCase):
    """Test level names and the TRACE level"""

    def test_level_value(self):
        self.assertEqual(level_value('TRACE'), 5)
        self.assertEqual(level_value('debug'), logging.DEBUG)
        with self.assertRaises(ValueError):
            level_value('VERBOSE')

    def test_trace_method(self):
        self.assertEqual(logging.getLevelName(LogLevel.TRACE.value), 'TRACE')
        logger = get_logger('pyppp.test')
        with self.assertLogs('pyppp.test', level=LogLevel.TRACE.value) as logs:
            logger.trace("matrix %d", 3)
        self.assertEqual(logs.records[0].levelname, 'TRACE')
        self.assertEqual(logs.records[0].getMessage(), 'matrix 3')

    def test_trace_disabled(self):
        logger = get_logger('pyppp.test')
        logger.setLevel(logging.DEBUG)
        with self.assertRaises(AssertionError):
            with self.assertLogs('pyppp.test', level=logging.DEBUG):
                logger.trace("hidden")


class TestSetupLogger(LoggerTestCase):
    """Test handler setup"""

    def test_console(self):
        logger = setup_logger(level='DEBUG')
        self.assertEqual(logger.name, ROOT_LOGGER)
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)
        self.assertIsInstance(logger.handlers[0].formatter, ColoredFormatter)

    def test_repeated_setup_replaces_handlers(self):
        setup_logger(level='INFO')
        logger = setup_logger(level='WARNING')
        self.assertEqual(len(logger.handlers), 1)
        self.assertEqual(logger.level, logging.WARNING)

    def test_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'ppp.log')
            logger = setup_logger(level='INFO', log_file=path, console=False)
            logger.info("epoch done")
            for handler in logger.handlers:
                handler.flush()
            with open(path) as fh:
                self.assertIn('epoch done', fh.read())
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_colored_formatter_keeps_record(self):
        formatter = ColoredFormatter('%(levelname)s %(message)s')
        record = logging.LogRecord('pyppp', logging.WARNING, __file__, 1, 'msg', None, None)
        text = formatter.format(record)
        self.assertIn('\033[33mWARNING', text)
        self.assertEqual(record.levelname, 'WARNING')


class TestLogContext(LoggerTestCase):
    """Test temporary level changes"""

    def test_restores_level(self):
        logger = get_logger('pyppp.test')
        logger.setLevel(logging.WARNING)
        with LogContext(logger, 'TRACE') as ctx_logger:
            self.assertIs(ctx_logger, logger)
            self.assertEqual(logger.level, 5)
        self.assertEqual(logger.level, logging.WARNING)


class TestLoggerConfig(LoggerTestCase):
    """Test module-specific configuration"""

    def test_configure_from_dict(self):
        config = LoggerConfig()
        config.configure_from_dict({
            'default_level': 'ERROR',
            'console': False,
            'module_levels': {'pyppp.test': 'DEBUG'},
        })
        self.assertEqual(config.get_level_for_module('pyppp.test'), 'DEBUG')
        self.assertEqual(config.get_level_for_module('pyppp.ppp.kalman'), 'ERROR')

        config.setup_all_loggers()
        self.assertEqual(logging.getLogger(ROOT_LOGGER).level, logging.ERROR)
        self.assertEqual(logging.getLogger(ROOT_LOGGER).handlers, [])
        self.assertEqual(logging.getLogger('pyppp.test').level, logging.DEBUG)


if __name__ == '__main__':
    unittest.main()
