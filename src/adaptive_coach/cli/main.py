"""
CLI entry point using Typer.

Provides commands for the progression and engagement engine:
- init: Create the profile and event log, start the program
- complete-day: Complete the current recovery-program day
- log-workout / log-habit: Append completion events
- status / xp: Recomputed program, streak and XP state
- next-weight / rpe-preview / adjust: Progression calculators
- config: Resolved engine settings
"""

from typing import Annotated

import typer

from ..logging_setup import configure_logging
from .app import app
from .commands import engagement, program, progression  # noqa: F401  (register commands)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log engine computations to stderr"),
    ] = False,
) -> None:
    """
    Adaptive training progression, recovery program and XP engine.
    """
    configure_logging(level="DEBUG" if verbose else None)


if __name__ == "__main__":
    app()
