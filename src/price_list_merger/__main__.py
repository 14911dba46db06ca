"""Allow ``python -m price_list_merger``."""

from price_list_merger.cli import app

if __name__ == "__main__":
    app()
