"""Command line entry for Global-311."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from global311.core.config import settings


def run_server(host: str, port: int) -> None:
    uvicorn.run("global311.api.main:app", host=host, port=port, log_level="debug" if settings.DEBUG else "info")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Global-311 pin service")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
    run_server(args.host, args.port)


if __name__ == "__main__":
    main()
