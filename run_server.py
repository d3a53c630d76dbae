#!/usr/bin/env python
"""
Server Entry Point

Starts the Pillow Store data API with uvicorn.

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py --port 9000
"""

import argparse

import uvicorn

from pillowstore.config import get_settings

APP = "pillowstore.main:app"


def run_server(host: str, port: int, dev: bool = False) -> None:
    """
    Run the API.

    Always a single worker: the connectivity verdict, the pending markers
    and an in-memory local cache belong to one client process.
    """
    settings = get_settings()
    options = {
        "host": host,
        "port": port,
        "workers": 1,
        "access_log": True,
        "log_level": "debug" if dev else settings.monitoring.log_level.lower(),
    }
    if dev:
        options.update(reload=True, reload_dirs=["pillowstore"])
    else:
        options.update(proxy_headers=True, forwarded_allow_ips="*", server_header=False)

    uvicorn.run(APP, **options)


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Pillow Store API Server")
    parser.add_argument("--dev", action="store_true", help="Run with auto-reload and debug logging")
    parser.add_argument("--host", default=settings.api_host, help=f"Interface to bind (default: {settings.api_host})")
    parser.add_argument("--port", type=int, default=settings.api_port, help=f"Port to run on (default: {settings.api_port})")
    args = parser.parse_args()

    mode = "development" if args.dev else settings.app_env
    print(f"Starting Pillow Store API ({mode}) on {args.host}:{args.port}...")
    run_server(args.host, args.port, dev=args.dev)


if __name__ == "__main__":
    main()
