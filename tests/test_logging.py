"""Tests for logging setup when embedded in a host application."""

import logging
import os
import shutil
import tempfile
import unittest

from LayerSmith import CompositorConfig, LayeredMaterial
from LayerSmith.core.logging import LOGGER_NAME, setup_logging


class TestEmbeddedLoggingSetup(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.root = logging.getLogger()
        self.host_handler = logging.NullHandler()
        self.root.addHandler(self.host_handler)
        self.material_logger = logging.getLogger(LOGGER_NAME)
        self.saved_level = self.material_logger.level
        self.saved_handlers = list(self.material_logger.handlers)

    def tearDown(self):
        for handler in list(self.material_logger.handlers):
            if handler not in self.saved_handlers:
                self.material_logger.removeHandler(handler)
                handler.close()
        self.material_logger.setLevel(self.saved_level)
        self.root.removeHandler(self.host_handler)
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _file_handlers(self):
        return [
            h for h in self.material_logger.handlers
            if isinstance(h, logging.FileHandler) and h not in self.saved_handlers
        ]

    def test_host_root_handlers_untouched(self):
        before = list(self.root.handlers)
        setup_logging("DEBUG")
        self.assertEqual(self.root.handlers, before)
        self.assertEqual(self.material_logger.level, logging.DEBUG)

    def test_file_handler_added_once(self):
        log_file = os.path.join(self.tmp, "logs", "material.log")
        setup_logging("INFO", log_file)
        setup_logging("INFO", log_file)
        self.assertEqual(len(self._file_handlers()), 1)
        self.assertTrue(os.path.isdir(os.path.dirname(log_file)))

    def test_same_path_spelled_differently_added_once(self):
        log_file = os.path.join(self.tmp, "material.log")
        setup_logging("INFO", log_file)
        setup_logging("INFO", os.path.join(self.tmp, ".", "material.log"))
        self.assertEqual(len(self._file_handlers()), 1)

    def test_material_applies_configured_level(self):
        LayeredMaterial(config=CompositorConfig(log_level="warning"))
        self.assertEqual(self.material_logger.level, logging.WARNING)
        LayeredMaterial()
        self.assertEqual(self.material_logger.level, logging.WARNING)

    def test_invalid_level_falls_back_to_info(self):
        with self.assertLogs(LOGGER_NAME, level="WARNING") as cm:
            setup_logging("LOUD")
            self.assertEqual(self.material_logger.level, logging.INFO)
        self.assertTrue(any("Invalid log level" in line for line in cm.output))


if __name__ == "__main__":
    unittest.main(verbosity=2)
