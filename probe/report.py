"""Reporting abstractions for hueping.

Contains:
- Report ABC: Base class for all reports
"""

from abc import ABC, abstractmethod

from rich.console import Console
from rich.text import Text

from probe.render import report_line


class Report(ABC):
    """Abstract base class for ping reports."""

    @abstractmethod
    def lines(self) -> list[Text]:
        """Return the report as rendered lines."""
        pass

    @abstractmethod
    def success(self) -> bool:
        """Return True if the report indicates success."""
        pass

    def print(self, out: Console | None = None) -> None:
        """Print the report to the console."""
        for line in self.lines():
            report_line(line, out)
