"""Terminal interaction helpers.

Contains:
- select_option: Numbered menu returning the chosen index
- confirm: Yes/no question, "no" by default
- read_choice: Read one lower-cased token from the user
- Spinner / spinner: Progress indicator shown while a backend works
- wait_until: Poll a condition with a deadline
"""

import sys
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

import typer

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


def select_option(label: str, options: Sequence[str], default: int = 0) -> int:
    """Show a numbered menu and return the chosen index.

    Args:
        label: Question shown above the menu.
        options: Menu entries.
        default: Index preselected when the user just presses Enter.

    Returns:
        Zero-based index of the chosen entry.

    Raises:
        ValueError: If options is empty.
    """
    if not options:
        raise ValueError("select_option needs at least one option")

    typer.echo(label)
    for i, option in enumerate(options, 1):
        typer.echo(f"  {i}. {option}")

    while True:
        choice = typer.prompt(
            f"Select an option (1-{len(options)})",
            type=int,
            default=default + 1,
        )
        if 1 <= choice <= len(options):
            return choice - 1
        typer.echo("Invalid choice.", err=True)


def confirm(question: str) -> bool:
    return typer.confirm(question, default=False)


def read_choice() -> str:
    """Read a single approval token from the user.

    Returns:
        The trimmed, lower-cased input, or "c" on end of input.
    """
    try:
        token = typer.prompt(
            "[a]pprove  [e]dit  [r]egenerate  [c]ancel",
            default="",
            show_default=False,
            prompt_suffix=" > ",
        )
    except typer.Abort:
        # End of input: nothing more will be typed
        return "c"
    return token.strip().lower()


class Spinner:
    """Terminal spinner for progress indication."""

    def __init__(self, message: str = "Generating", enabled: Optional[bool] = None):
        self.message = message
        self.enabled = sys.stderr.isatty() if enabled is None else enabled
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the spinner in a separate thread."""
        if not self.enabled or self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._spin, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the spinner and clear its line."""
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        sys.stderr.write("\r" + " " * (len(self.message) + 10) + "\r")
        sys.stderr.flush()

    def _spin(self) -> None:
        i = 0
        while not self._stop.is_set():
            sys.stderr.write(f"\r{SPINNER_FRAMES[i % len(SPINNER_FRAMES)]} {self.message}...")
            sys.stderr.flush()
            self._stop.wait(0.1)
            i += 1


@contextmanager
def spinner(message: str = "Generating", enabled: Optional[bool] = None) -> Iterator[Spinner]:
    """Show a spinner for the duration of a block, whatever its outcome."""
    indicator = Spinner(message, enabled=enabled)
    indicator.start()
    try:
        yield indicator
    finally:
        indicator.stop()


def wait_until(check, timeout: float, interval: float = 1.0) -> bool:
    """Poll check() until it returns True or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if check():
            return True
        time.sleep(interval)
    return check()
