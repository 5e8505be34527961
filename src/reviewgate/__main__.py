"""Entry point for ``python -m reviewgate``."""

from reviewgate.cli import cli

if __name__ == "__main__":
    cli()
