"""Module entry point so ``python -m cli`` behaves like ``dynamo-migrate``."""

from __future__ import annotations

from cli.main import main


if __name__ == "__main__":
    raise SystemExit(main())
