import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path

from callbridge.config.logging_config import configure_logging


class TestLoggingConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.log_dir = Path(self._tmp.name) / "logs"

    def tearDown(self):
        logger = logging.getLogger("callbridge")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        self._tmp.cleanup()

    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging("INFO", self.log_dir)
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "callbridge")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        # Console handler first, then the rotating file
        self.assertEqual(len(logger.handlers), 2)
        handler = logger.handlers[0]
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        self.assertIsInstance(logger.handlers[1], RotatingFileHandler)
        self.assertTrue((self.log_dir / "callbridge.log").exists())

    def test_explicit_level(self):
        logger = configure_logging("debug", self.log_dir)
        self.assertEqual(logger.level, logging.DEBUG)

    def test_reconfiguring_replaces_handlers(self):
        configure_logging("INFO", self.log_dir)
        for handler in logging.getLogger("callbridge").handlers:
            handler.close()
        logger = configure_logging("WARNING", self.log_dir)
        self.assertEqual(len(logger.handlers), 2)
        self.assertEqual(logger.level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
