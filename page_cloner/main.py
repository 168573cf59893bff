#!/usr/bin/env python3
"""
Page Cloner - save any web page as a single offline HTML file.

Usage:
    python -m page_cloner.main --url https://example.com --output cloned-page.html

Features:
    - Inlines stylesheets, scripts, images, media and icons
    - Routes requests through relay services when direct access is blocked
    - Retries failed requests with exponential backoff
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from page_cloner.snapshot import (
    Fetcher,
    CloneFailure,
    DEFAULT_PROXY_ENDPOINTS,
    SnapshotAssembler,
    parse_endpoint,
)
from page_cloner.utils.constants import (
    DEFAULT_ATTEMPTS,
    DEFAULT_OUTPUT_FILENAME,
    DEFAULT_TIMEOUT,
)
from page_cloner.utils.log import (
    setup_logger,
    print_status,
    print_success,
    print_error,
    print_info
)
from page_cloner.utils.paths import validate_url


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='page-cloner',
        description='Clone a web page into a single self-contained HTML file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --url https://example.com
    %(prog)s --url example.com --output example.html --attempts 5
    %(prog)s --url https://example.com --proxy 'json+https://relay.example/get?url={url}'
        """
    )

    parser.add_argument(
        '--url', '-u',
        type=str,
        required=True,
        help='URL of the page to clone (e.g., https://example.com)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        default=DEFAULT_OUTPUT_FILENAME,
        help=f'Output HTML file (default: {DEFAULT_OUTPUT_FILENAME})'
    )

    parser.add_argument(
        '--proxy', '-p',
        action='append',
        default=None,
        metavar='TEMPLATE',
        help=(
            'Relay endpoint template containing {url}; prefix with json+ for '
            'relays wrapping the page in a JSON "contents" field. '
            'Repeat to give several, in priority order (default: built-in relays)'
        )
    )

    parser.add_argument(
        '--attempts', '-a',
        type=int,
        default=DEFAULT_ATTEMPTS,
        help=f'Attempts per request (default: {DEFAULT_ATTEMPTS})'
    )

    parser.add_argument(
        '--timeout', '-t',
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f'Timeout of a single attempt in seconds (default: {DEFAULT_TIMEOUT})'
    )

    parser.add_argument(
        '--concurrency', '-c',
        type=int,
        default=None,
        help='Maximum simultaneous requests (default: unlimited)'
    )

    parser.add_argument(
        '--direct',
        action='store_true',
        help='Try fetching pages, stylesheets and scripts directly before using relays'
    )

    parser.add_argument(
        '--no-direct-media',
        action='store_true',
        help='Always fetch images and other media through relays'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress output except errors'
    )

    return parser.parse_args(argv)


def build_fetcher(args: argparse.Namespace) -> Fetcher:
    """
    Create the fetcher described by the command line.

    Raises:
        ValueError: If a proxy template is invalid
    """
    if args.proxy:
        endpoints = [parse_endpoint(value) for value in args.proxy]
    else:
        endpoints = DEFAULT_PROXY_ENDPOINTS

    return Fetcher(
        endpoints=endpoints,
        attempts=args.attempts,
        timeout=args.timeout,
        direct_binary=not args.no_direct_media,
        direct_text=args.direct,
        concurrency=args.concurrency,
    )


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the page cloner.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_arguments(argv)

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logger(level=log_level)

    try:
        url = validate_url(args.url)
        fetcher = build_fetcher(args)

        if not args.quiet:
            print_status("Page Cloner", "bold cyan")
            print_info(f"Target URL: {url}")
            print_info(f"Relays: {', '.join(e.name for e in fetcher.endpoints)}")

        async with fetcher:
            html = await SnapshotAssembler(fetcher).clone(url)

        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(html)

        if not args.quiet:
            print_success(f"Page cloned to: {os.path.abspath(args.output)}")
        return 0

    except KeyboardInterrupt:
        print_error("Clone interrupted by user")
        return 1
    except ValueError as e:
        print_error(f"Invalid input: {e}")
        return 1
    except CloneFailure as e:
        print_error(f"Failed to clone page: {e.reason}")
        return 1
    except OSError as e:
        print_error(f"Could not write {args.output}: {e}")
        return 1


def run() -> None:
    """Entry point wrapper for running as module."""
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
