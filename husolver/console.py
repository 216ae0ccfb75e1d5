"""Terminal helpers: rich logging, solve progress and strategy tables."""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from husolver.game.state import Position
from husolver.solver.mccfr import MCCFRSolver
from husolver.solver.strategy import StrategyProfile


def configure_logging(level: Union[int, str] = logging.INFO, console: Optional[Console] = None) -> None:
    """Route the package's log records through a rich handler."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    package_logger = logging.getLogger("husolver")
    package_logger.handlers = [handler]
    package_logger.setLevel(level)
    package_logger.propagate = False


def solve_with_progress(
    solver: MCCFRSolver,
    num_iterations: Optional[int] = None,
    console: Optional[Console] = None,
) -> StrategyProfile:
    """
    Run solver.solve() behind a progress bar.

    The solver's progress callback is replaced for the duration of the
    solve and restored afterwards.
    """
    console = console or Console()
    total = solver.config.num_iterations if num_iterations is None else num_iterations
    previous = solver.progress_callback

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"Running MCCFR ({total} iterations)...", total=total)

        def callback(iteration, total_iterations, exploitability):
            progress.update(
                task,
                completed=iteration,
                description=f"MCCFR iteration {iteration}, exploit={exploitability:.2f}",
            )

        solver.set_progress_callback(callback)
        try:
            profile = solver.solve(num_iterations)
        finally:
            solver.set_progress_callback(previous)

    return profile


def strategy_table(solver: MCCFRSolver, player: Position) -> Table:
    """Average strategy of every hand type in player's range at its first decision."""
    strategies = solver.get_all_strategies(player)
    actions = solver.decision_point(player).get_available_actions()

    table = Table(title=f"{player.name} strategy")
    table.add_column("Hand", style="cyan")
    for action in actions:
        table.add_column(str(action), justify="right")

    for hand_type, strategy in strategies.items():
        cells = [f"{p:.0%}" for p in strategy.probabilities]
        style = None if strategy.visited else "dim"
        table.add_row(hand_type.name, *cells, style=style)

    return table
