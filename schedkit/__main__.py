"""Entry point for `python -m schedkit`."""

from schedkit.cli.commands import app

if __name__ == "__main__":
    app()
