"""Allow ``python -m mastery``."""

from mastery.cli.commands import app

if __name__ == "__main__":
    app()
