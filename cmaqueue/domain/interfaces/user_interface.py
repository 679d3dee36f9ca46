"""Interface for reporting to the user.

Defines the contract for displaying information, warnings, errors and
structured results, allowing different UI implementations.
"""

import abc
from typing import Any


class UserInterface(abc.ABC):
    """Abstract Base Class for user-facing output."""

    @abc.abstractmethod
    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Displays a structured result (rendered as JSON).

        Args:
            output: The value to display.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass
