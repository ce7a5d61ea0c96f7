#!/usr/bin/env python3
"""Run the group service with explicit args (avoids shell interpolation)."""
from __future__ import annotations

import argparse

import uvicorn
from dotenv import load_dotenv

from group_service import GroupServiceSettings, create_app


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--env-file", default=".env")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    load_dotenv(args.env_file)
    settings = GroupServiceSettings.from_env()
    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port or settings.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
