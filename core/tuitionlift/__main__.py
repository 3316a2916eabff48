"""Entry point for ``python -m tuitionlift``."""

from tuitionlift.cli import cli

cli()
