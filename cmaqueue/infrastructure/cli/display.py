import logging
from typing import Any, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.text import Text

from cmaqueue.domain.exceptions import to_pretty_json
from cmaqueue.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, console: Console) -> None:
        self._console = console

    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Displays a result as highlighted JSON inside a panel.

        Args:
            output: Any JSON-serializable value.
            **kwargs: Additional arguments including:
                - title: Panel title (default: "Result")
                - raw: If True, print bare JSON with no panel, suitable for piping
        """
        title = kwargs.get("title", "Result")
        text = to_pretty_json(output)
        logger.debug(f"display_output called: title={title}, content_length={len(text)}")

        if kwargs.get("raw"):
            self.console.print_json(text)
            return

        self.console.print(Panel(
            JSON(text),
            title=f"[bold white]{title}[/bold white]",
            title_align="left",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1)
        ))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
