"""User-facing status output for land operations."""

from abc import ABC, abstractmethod

import click


def user_output(message: str = "") -> None:
    """Write a line for the user to stderr, keeping stdout free for scripting."""
    click.echo(message, err=True)


def format_label(label: str, fg: str) -> str:
    return click.style(f" {label} ", fg=fg, bold=True, reverse=True)


class Feedback(ABC):
    """Categorized status output for the land pipeline.

    Every status line carries a short label naming the phase it belongs to
    ("ONTO REMOTE", "MERGING", "CLEANUP", ...) followed by a human-readable
    message. Commands the user may need to run (recovery, manual push,
    restore) go through command() so they are always printed verbatim.

    Usage:
        feedback.status("FETCH", 'Fetching "master" from remote "origin"...')
        feedback.warning("LOCAL CYCLE", 'Local branch "x" tracks itself.')
        feedback.command("git checkout -b feature 1234abcd5678")
    """

    @abstractmethod
    def status(self, label: str, message: str) -> None:
        """Report progress of a pipeline phase."""

    @abstractmethod
    def warning(self, label: str, message: str) -> None:
        """Report a non-fatal problem (always shown)."""

    @abstractmethod
    def success(self, label: str, message: str) -> None:
        """Report successful completion."""

    @abstractmethod
    def info(self, message: str) -> None:
        """Show an unlabeled explanatory line."""

    @abstractmethod
    def command(self, command_line: str) -> None:
        """Show a copy-pasteable command line (always shown)."""


class InteractiveFeedback(Feedback):
    """Feedback shown in interactive mode (all messages)."""

    def status(self, label: str, message: str) -> None:
        user_output(f"{format_label(label, 'blue')} {message}")

    def warning(self, label: str, message: str) -> None:
        user_output(f"{format_label(label, 'yellow')} {message}")

    def success(self, label: str, message: str) -> None:
        user_output(f"{format_label(label, 'green')} {message}")

    def info(self, message: str) -> None:
        user_output(message)

    def command(self, command_line: str) -> None:
        user_output()
        user_output(f"    $ {command_line}")
        user_output()


class QuietFeedback(Feedback):
    """Feedback for --quiet: progress is suppressed.

    Warnings and commands are still shown since the user may need to act on them.
    """

    def status(self, label: str, message: str) -> None:
        pass

    def warning(self, label: str, message: str) -> None:
        user_output(f"{format_label(label, 'yellow')} {message}")

    def success(self, label: str, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        user_output(message)

    def command(self, command_line: str) -> None:
        user_output(f"    $ {command_line}")
