"""Entry point for running pullfetch as a module.

Allows running the application with:
    python -m pullfetch

This delegates to the Typer CLI app.
"""

from pullfetch.cli import app

if __name__ == "__main__":
    app()
