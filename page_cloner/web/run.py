#!/usr/bin/env python3
"""
Entry point for running the Page Cloner web UI.

Usage:
    python -m page_cloner.web.run --host 0.0.0.0 --port 5000
"""

import argparse
import logging

from page_cloner.utils.log import setup_logger
from page_cloner.web.app import run_app


def main():
    """Parse arguments and run the web application."""
    parser = argparse.ArgumentParser(
        description='Run the Page Cloner web UI'
    )
    parser.add_argument(
        '--host',
        default='127.0.0.1',
        help='Host to bind to (default: 127.0.0.1)'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        default=5000,
        help='Port to listen on (default: 5000)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )

    args = parser.parse_args()

    setup_logger(level=logging.DEBUG if args.debug else logging.INFO)
    print(f"Starting Page Cloner Web UI at http://{args.host}:{args.port}")
    run_app(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
