"""
Entry point for python -m stremio_manager.cli
"""
from stremio_manager.cli.cli import app

if __name__ == "__main__":
    app()
