import logging
import unittest

from digichars.core.logging import configure_logging, get_logger


class Foo:
    pass


class LoggingTestCase(unittest.TestCase):
    def tearDown(self) -> None:
        configure_logging(level=logging.DEBUG)

    def test_get_logger(self):
        self.assertEqual("Foo", get_logger(Foo()).name)
        self.assertEqual("Foo.bar", get_logger(Foo(), "bar").name)

    def test_configure_logging_with_level_name(self):
        configure_logging(level="info")
        self.assertEqual(logging.INFO, logging.getLogger().level)

    def test_configure_logging_with_invalid_level_name(self):
        with self.assertRaises(ValueError):
            configure_logging(level="LOUD")


if __name__ == "__main__":
    unittest.main()
