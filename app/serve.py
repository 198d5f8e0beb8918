"""Run one of the services under uvicorn.

RUN:  python -m app.serve issuance
      python -m app.serve verification

Listens on PORT (see app.core.config).  Same image, different argument:
each deployment runs exactly one of the two apps.
"""

from __future__ import annotations

import sys

import uvicorn

from app.core.config import SETTINGS

APPS = {
    "issuance": "app.main:issuance_app",
    "verification": "app.main:verification_app",
}


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1 or args[0] not in APPS:
        print(f"usage: python -m app.serve {{{'|'.join(APPS)}}}", file=sys.stderr)
        return 2

    uvicorn.run(
        APPS[args[0]],
        host="0.0.0.0",
        port=SETTINGS.port,
        # setup_logging() in app.main owns the root logger
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
