#!/usr/bin/env python3
"""
Startup script for the Last Digit Predictor API.

Runs a single uvicorn worker: the predictor owns one feed subscription and
one stats ledger, so extra worker processes would duplicate both.

Usage:
    python run_api.py

    Or with custom settings:
    python run_api.py --host 127.0.0.1 --port 8000 --symbol R_50
"""

import argparse
import os
import socket
import sys


def is_port_in_use(host: str, port: int) -> bool:
    """Check if a port is already in use."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host if host != "0.0.0.0" else "127.0.0.1", port))
            return False
        except OSError:
            return True


def find_available_port(host: str, start_port: int, max_attempts: int = 10) -> int:
    """Find an available port starting from start_port."""
    for i in range(max_attempts):
        port = start_port + i
        if not is_port_in_use(host, port):
            return port
    return -1


def main():
    """Run the FastAPI application."""
    parser = argparse.ArgumentParser(description="Start the Last Digit Predictor API")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--symbol",
        type=str,
        default=None,
        help="Initial symbol to subscribe to (default: DEFAULT_SYMBOL setting)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--auto-port",
        action="store_true",
        help="Automatically find available port if default is in use",
    )

    args = parser.parse_args()

    # Settings are read at import time, so export overrides before importing the app
    if args.symbol:
        os.environ["DEFAULT_SYMBOL"] = args.symbol
    os.environ["LOG_LEVEL"] = args.log_level.upper()

    import uvicorn

    port = args.port
    if is_port_in_use(args.host, port):
        if args.auto_port:
            new_port = find_available_port(args.host, port)
            if new_port == -1:
                print(f"ERROR: No available ports found starting from {port}")
                sys.exit(1)
            print(f"WARNING: Port {port} is in use, using port {new_port} instead")
            port = new_port
        else:
            print(f"ERROR: Port {port} is already in use!")
            print(f"  Use a different port: python run_api.py --port {port + 1}")
            print("  Or auto-select one:    python run_api.py --auto-port")
            sys.exit(1)

    print("=" * 60)
    print("Last Digit Predictor API")
    print("=" * 60)
    print(f"Host: {args.host}")
    print(f"Port: {port}")
    print(f"Symbol: {args.symbol or 'default'}")
    print(f"Log Level: {args.log_level}")
    print("=" * 60)
    print(f"API docs: http://{args.host}:{port}/docs")
    print(f"WebSocket: ws://{args.host}:{port}/ws")
    print()

    uvicorn.run(
        "lastdigit.api.main:app",
        host=args.host,
        port=port,
        log_level=args.log_level,
        workers=1,
    )


if __name__ == "__main__":
    main()
