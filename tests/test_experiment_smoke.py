"""Smoke tests for experiment script imports and --help.
Verifies that each experiment script can be imported without running its
__main__ block and that the CLI entrypoints parse --help without error.
"""
import importlib
import os
import subprocess
import sys
from pathlib import Path

import pytest

EXPERIMENTS_DIR = Path(__file__).resolve().parents[1] / "experiments"

EXPERIMENT_SCRIPTS = [
    "maxcut_diagonal_qaoa",
    "xyz_adapt_vqe",
]


@pytest.mark.parametrize("script", EXPERIMENT_SCRIPTS)
def test_experiment_imports(script):
    """Each experiment script must be importable without side effects."""
    module = importlib.import_module(f"experiments.{script}")
    assert module.OUTPUT_CSV.name == f"{script}.csv"
    assert not module.OUTPUT_CSV.exists() or module.OUTPUT_CSV.stat().st_size > 0


@pytest.mark.parametrize("script", EXPERIMENT_SCRIPTS)
def test_experiment_help(script):
    """Scripts with argparse must respond to --help without error."""
    env = dict(os.environ, PYTHONPATH=str(EXPERIMENTS_DIR.parent))
    result = subprocess.run(
        [sys.executable, str(EXPERIMENTS_DIR / f"{script}.py"), "--help"],
        capture_output=True, text=True, timeout=60,
        cwd=str(EXPERIMENTS_DIR.parent),
        env=env,
    )
    assert result.returncode == 0, f"--help failed for {script}: {result.stderr[:500]}"
    assert "usage" in result.stdout.lower()
