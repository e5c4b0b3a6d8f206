import logging
import unittest
from datetime import timedelta
from logging import Logger
from time import monotonic, sleep
from typing import Callable

from digichars.core.logging import configure_logging

configure_logging(level=logging.DEBUG)


class DigiCharsTestCase(unittest.TestCase):
    maxDiff = None

    def get_logger(self, name: str) -> Logger:
        return logging.getLogger(f"{self.__class__.__name__}.{name}")

    def await_condition(
        self,
        condition: Callable[[], bool],
        timeout: timedelta = timedelta(seconds=5),
        msg: str | None = None,
    ):
        """
        Events are published asynchronously, thus tests need to give them time to stream through.
        """
        deadline = monotonic() + timeout.total_seconds()
        while not condition():
            if monotonic() > deadline:
                self.fail(msg if msg else "timed out waiting for condition")
            sleep(0.01)


if __name__ == "__main__":
    unittest.main()
