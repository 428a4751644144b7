"""Module entrypoint for running Chat2Ebook as ``python -m chat2ebook``."""

from __future__ import annotations

from chat2ebook.cli import main


if __name__ == "__main__":
    main()
