"""Entry point for `python -m eventsync` command."""

from eventsync.cli import main

if __name__ == "__main__":
    main()
