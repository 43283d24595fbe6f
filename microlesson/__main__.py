from __future__ import annotations

from .app import run


def main() -> int:
    """Entry point for running the lessons from the command line."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
