"""WSGI entrypoint for Weekplanner."""

from __future__ import annotations

from weekplanner import create_app

app = create_app()

if __name__ == "__main__":
    from weekplanner.server import main

    main()
