"""Allow ``python -m anideck``."""

from anideck.cli.typer_app import app

if __name__ == "__main__":
    app()
