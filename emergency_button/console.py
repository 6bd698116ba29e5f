"""
Console output for operators.

Colour is an explicit setting carried by each ``Console`` instance.
"""

import click


class Console:
    """Prints clearly marked status lines to the terminal."""

    def __init__(self, color: bool = True):
        self.color = color

    def _echo(self, message: str, err: bool = False, **style) -> None:
        if self.color and style:
            message = click.style(message, **style)
        # None lets click strip styling when the stream is not a terminal.
        click.echo(message, err=err, color=None if self.color else False)

    def banner(self, title: str) -> None:
        width = max(46, len(title) + 6)
        self._echo("\n╔" + "═" * (width - 2) + "╗", fg="red")
        self._echo("║" + title.center(width - 2) + "║", fg="red")
        self._echo("╚" + "═" * (width - 2) + "╝\n", fg="red")

    def heading(self, title: str) -> None:
        self._echo(f"\n═══ {title} ═══", fg="cyan", bold=True)

    def info(self, message: str) -> None:
        self._echo(message)

    def success(self, message: str) -> None:
        self._echo(f"✓ {message}", fg="green")

    def warn(self, message: str) -> None:
        self._echo(f"WARNING: {message}", err=True, fg="yellow")

    def error(self, message: str) -> None:
        self._echo(f"ERROR: {message}", err=True, fg="red", bold=True)

    def plan(self, message: str) -> None:
        """A dry-run line: something that would have happened."""
        self._echo(f"[dry-run] {message}", fg="cyan")
