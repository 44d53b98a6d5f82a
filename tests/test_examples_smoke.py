import os
import subprocess
import sys
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]


def run_command(args):
    env = os.environ.copy()
    env["PYTHONPATH"] = str(REPO_ROOT / "src")
    command = [sys.executable, *args]
    return subprocess.run(
        command,
        cwd=REPO_ROOT,
        env=env,
        check=True,
        text=True,
        capture_output=True,
    )


@pytest.mark.slow
@pytest.mark.examples_smoke
def test_examples_smoke():
    result = run_command(["examples/run_spacing_evolution.py", "--nsteps", "3"])
    assert "[step   3]" in result.stdout
    assert "[set]" in result.stdout

    result = run_command(["examples/run_deactivation_two_sets.py", "--nsteps", "2", "--policy", "general"])
    assert "cumulative phi over the run" in result.stdout

    result = run_command(["examples/run_dfn_square_cell.py", "--max-steps", "30"])
    assert "[set0]" in result.stdout and "[set1]" in result.stdout


@pytest.mark.slow
@pytest.mark.examples_smoke
def test_examples_ductile_mode_runs():
    result = run_command(["examples/run_spacing_evolution.py", "--nsteps", "1", "--mode", "ductile"])
    assert "status=not_implemented" in result.stdout
