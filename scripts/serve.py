"""
Run the sponsor tracker API with uvicorn.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sponsor_api.config import get_settings


def main() -> int:
    parser = argparse.ArgumentParser(description="Sponsor tracker API server")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=5001, help="Bind port")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (development only)",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    uvicorn.run(
        "sponsor_api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
