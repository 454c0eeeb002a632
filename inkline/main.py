"""
Inkline entry point.
"""
from __future__ import annotations

from inkline.app import InklineApplication


def main(argv: list[str] | None = None) -> int:
    app = InklineApplication(argv)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
