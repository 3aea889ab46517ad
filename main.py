#!/usr/bin/env python3
"""
Blob Store Server - Main entry point

Usage:
    blob_store_server [DIR] \
        [--port=<PORT>] \
        [--host=<HOST>] \
        [--tmp=<TMP_DIR>] \
        [--depth=<DEPTH>] \
        [--algorithm=<ALGORITHM>] \
        [--verbose] \
        [--debug]

Environment:
    BLOB_STORE_PORT   Port to listen on (default: 8080)
    BLOB_STORE_TMP    Directory for staging files (default: system temp dir)
    VERBOSE=1         Log every request
    DEBUG=1           Log per-operation detail
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn
from pydantic import ValidationError

from domain.config import BlobStoreConfig
from domain.hash_constants import HASH_ALGORITHM, DEFAULT_DEPTH
from interfaces.api import initialize_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Blob Store Server - Content-addressable blob storage',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument('dir', nargs='?', default='.',
                        help='Root directory of the blob store (default: current directory)')
    parser.add_argument('--port', type=int, default=int(os.environ.get('BLOB_STORE_PORT', 8080)),
                        help='Port to listen on (default: 8080)')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--tmp', default=os.environ.get('BLOB_STORE_TMP'),
                        help='Directory for staging files (default: system temp dir)')
    parser.add_argument('--depth', type=int, default=DEFAULT_DEPTH,
                        help=f'Number of two-character shard segments (default: {DEFAULT_DEPTH})')
    parser.add_argument('--algorithm', default=HASH_ALGORITHM,
                        help=f'Digest algorithm for identifiers (default: {HASH_ALGORITHM})')
    parser.add_argument('-v', '--verbose', action='store_true',
                        default=os.environ.get('VERBOSE') == '1',
                        help='Log every request')
    parser.add_argument('-d', '--debug', action='store_true',
                        default=os.environ.get('DEBUG') == '1',
                        help='Log per-operation detail')
    return parser


def build_config(args: argparse.Namespace) -> BlobStoreConfig:
    """Translate parsed arguments into a store configuration."""
    values = {
        'dir': Path(args.dir).expanduser().resolve(),
        'depth': args.depth,
        'algorithm': args.algorithm,
    }
    if args.tmp:
        values['tmp'] = Path(args.tmp).expanduser().resolve()
    return BlobStoreConfig(**values)


def configure_logging(verbose: bool, debug: bool) -> int:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    return level


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    level = configure_logging(args.verbose, args.debug)

    try:
        store_config = build_config(args)
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        sys.exit(1)

    app = initialize_app(store_config)

    logger.info(f"Starting blob store server on {args.host}:{args.port}")
    logger.info(f"Storage directory: {store_config.dir}")
    logger.info(f"Staging directory: {store_config.tmp}")

    uvicorn.run(app, host=args.host, port=args.port, log_level=logging.getLevelName(level).lower())


if __name__ == '__main__':
    main()
