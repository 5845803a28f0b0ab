#!/usr/bin/env python3
"""
Command-line testing tool for bitstream storage backends.

Stores, fetches, describes or removes a single bitstream using the same
settings and composition root as the application.

Usage:
    python scripts/bitstore_tool.py -a ACCESS -s SECRET -f photo.jpg put
    python scripts/bitstore_tool.py --id 1234 -f copy.jpg get
    python scripts/bitstore_tool.py --id 1234 about
    python scripts/bitstore_tool.py --id 1234 remove

Requires:
    - .env file (or environment) with BITSTORE_* settings; flags override it
"""

import logging
import shutil
import sys
from contextlib import closing
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from bitstore.config.settings import Settings
from bitstore.core.models import KNOWN_ATTRIBUTES, Bitstream
from bitstore.core.service import BitStoreError
from bitstore.dependencies import create_bitstore_service

# Load environment variables
load_dotenv()


def build_settings(args) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    overrides = {
        'bitstore_access_key': args.access_key,
        'bitstore_secret_key': args.secret_key,
        'bitstore_backend': args.backend,
        'bitstore_endpoint_url': args.endpoint,
        'bitstore_bucket_name': args.bucket,
        'bitstore_subfolder': args.subfolder,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def run(args) -> int:
    settings = build_settings(args)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )

    service = create_bitstore_service(settings)
    service.init()

    if args.command == 'put':
        if not args.file:
            print("ERROR: put requires -f FILE")
            return 1
        bitstream = Bitstream(internal_id=args.id or service.generate_id())
        with open(args.file, 'rb') as f:
            service.put(bitstream, f)
        print(f"Stored: {bitstream.internal_id}")
        print(f"  size_bytes: {bitstream.size_bytes}")
        print(f"  checksum: {bitstream.checksum} ({bitstream.checksum_algorithm})")
        return 0

    if not args.id:
        print(f"ERROR: {args.command} requires --id")
        return 1

    bitstream = Bitstream(internal_id=args.id)

    if args.command == 'get':
        stream = service.get(bitstream)
        if stream is None:
            print(f"Not found: {args.id}")
            return 1
        with closing(stream):
            if args.file:
                with open(args.file, 'wb') as out:
                    shutil.copyfileobj(stream, out)
                print(f"Wrote {args.file}")
            else:
                shutil.copyfileobj(stream, sys.stdout.buffer)
        return 0

    if args.command == 'about':
        attrs = service.about(bitstream, sorted(KNOWN_ATTRIBUTES))
        if attrs is None:
            print(f"Not found: {args.id}")
            return 1
        for name, value in sorted(attrs.items()):
            print(f"  {name}: {value}")
        return 0

    service.remove(bitstream)
    print(f"Removed: {args.id}")
    return 0


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Exercise a bitstream storage backend')
    parser.add_argument('command', choices=['put', 'get', 'about', 'remove'])
    parser.add_argument('-a', '--access-key', help='Access key (overrides BITSTORE_ACCESS_KEY)')
    parser.add_argument('-s', '--secret-key', help='Secret key (overrides BITSTORE_SECRET_KEY)')
    parser.add_argument('-f', '--file', help='File to upload (put) or write to (get)')
    parser.add_argument('-b', '--backend', help='Backend identifier (overrides BITSTORE_BACKEND)')
    parser.add_argument('-e', '--endpoint', help='Endpoint URL')
    parser.add_argument('--bucket', help='Bucket name')
    parser.add_argument('--subfolder', help='Key prefix inside the bucket')
    parser.add_argument('--id', help='Bitstream internal id (generated for put if omitted)')
    args = parser.parse_args()

    try:
        code = run(args)
    except (BitStoreError, ValueError) as e:
        print(f"ERROR: {e}")
        code = 1

    sys.exit(code)


if __name__ == '__main__':
    main()
