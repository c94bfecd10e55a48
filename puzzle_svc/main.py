# Path: puzzle_svc/main.py
"""
Purpose: Process entry point: configure logging and serve the ASGI app with uvicorn.
Usage: puzzle-svc --port 10000 --log-level debug  (or python -m puzzle_svc)
"""
from __future__ import annotations

import argparse
import logging

import uvicorn

from . import config


def main(argv=None):
    parser = argparse.ArgumentParser(description="Live chess puzzle session server")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="DEBUG, INFO, WARNING, ...")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run("puzzle_svc.app:app", host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
