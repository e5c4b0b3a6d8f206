"""
Provides support for the Command pattern.

Commands are configured with their collaborators (ledger adapters, session factories, ...) when they are constructed,
and then invoked as functions with a request.
"""
from abc import ABC, abstractmethod
from logging import Logger
from typing import TypeVar, Generic

from digichars.core.logging import get_logger

Args = TypeVar("Args")

Result = TypeVar("Result")


class Command(Generic[Args, Result], ABC):
    """
    Commands are invoked as functions
    """

    @abstractmethod
    def __call__(self, args: Args) -> Result:
        """
        Executes the command
        """

    @property
    def name(self) -> str:
        """
        By default, the command class name is used.
        """
        return self.__class__.__name__

    def get_logger(self, name: str | None = None) -> Logger:
        """
        Returns a logger named after the command class.
        If `name` is specifed, then it is appended to the class name: `{self.name}.{name}`
        """
        return get_logger(self, name)
