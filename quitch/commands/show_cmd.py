"""Show command implementation - print plan objects."""

from pathlib import Path

from rich.console import Console

from ..errors import QuitchError
from ..plan import load_plan


def run_show_change(plan_file: Path, change_name: str) -> int:
    """Print the canonical form of a change, exactly as it is hashed.

    Args:
        plan_file: Path to the plan file
        change_name: Name of the change in the plan

    Returns:
        Exit code
    """
    console = Console(stderr=True)
    try:
        plan = load_plan(plan_file, console)
        text = plan.show_change(change_name)
    except (QuitchError, OSError) as e:
        console.print(str(e), style="red", markup=False)
        return 1

    print(text)
    return 0
