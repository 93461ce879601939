"""Allow ``python -m qcd``."""

from qcd.cli import run

run()
