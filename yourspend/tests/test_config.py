import io
import logging
import os
import unittest
from pathlib import Path
from unittest import mock

from yourspend.config import Settings
from yourspend.logging_setup import configure_logging, parse_level

try:
    import tomllib
except ModuleNotFoundError:  # Python 3.10
    tomllib = None

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


class SettingsTests(unittest.TestCase):
    def test_reads_environment(self) -> None:
        env = {
            "DATABASE_URL": "sqlite://",
            "DEFAULT_CURRENCY": "usd",
            "TIMEZONE": "Europe/London",
            "FIRST_WEEKDAY": "6",
        }
        with mock.patch.dict(os.environ, env):
            settings = Settings()

        self.assertEqual(settings.database_url, "sqlite://")
        self.assertEqual(settings.default_currency, "USD")
        self.assertEqual(settings.timezone, "Europe/London")
        self.assertEqual(settings.calendar.first_weekday, 6)

    def test_invalid_values_fall_back_to_defaults(self) -> None:
        env = {"DEFAULT_CURRENCY": "dollars", "TIMEZONE": "Mars/Olympus", "FIRST_WEEKDAY": "nine"}
        with mock.patch.dict(os.environ, env):
            settings = Settings()

        self.assertEqual(settings.default_currency, "CNY")
        self.assertEqual(settings.timezone, "UTC")
        self.assertEqual(settings.first_weekday, 0)


class LoggingSetupTests(unittest.TestCase):
    def test_parse_level(self) -> None:
        self.assertEqual(parse_level("debug"), logging.DEBUG)
        self.assertEqual(parse_level("30"), logging.WARNING)
        self.assertEqual(parse_level("nonsense"), logging.INFO)
        self.assertEqual(parse_level(None), logging.INFO)

    def test_configure_logging_attaches_one_handler(self) -> None:
        logger = logging.getLogger("yourspend")
        original_handlers = list(logger.handlers)
        try:
            stream = io.StringIO()
            configure_logging("INFO", stream=stream)
            configure_logging("INFO", stream=stream)
            added = [handler for handler in logger.handlers if handler not in original_handlers]

            self.assertLessEqual(len(added), 1)
            self.assertEqual(logger.level, logging.INFO)
        finally:
            for handler in list(logger.handlers):
                if handler not in original_handlers:
                    logger.removeHandler(handler)


@unittest.skipIf(tomllib is None or not PYPROJECT.exists(), "needs tomllib and a source checkout")
class PackagingTests(unittest.TestCase):
    def test_package_without_init_is_discovered(self) -> None:
        with PYPROJECT.open("rb") as handle:
            find = tomllib.load(handle)["tool"]["setuptools"]["packages"]["find"]

        self.assertFalse((PYPROJECT.parent / "yourspend" / "__init__.py").exists())
        self.assertTrue(find.get("namespaces"))
        self.assertIn("yourspend*", find["include"])


if __name__ == "__main__":
    unittest.main()
