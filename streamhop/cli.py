"""
Command line entry point.

    streamhop tt0137523
    streamhop tt0944947 --series -s 1 -e 2 --save-scripts scripts
"""
from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from streamhop.config import load_settings
from streamhop.providers.base import DecodeRule, MediaKind, ResolutionRequest
from streamhop.providers.errors import ResolverError, ShapeChangedError
from streamhop.providers.fetcher import Fetcher
from streamhop.providers.pipeline import ResolutionPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve HLS stream variants for an IMDb id")
    parser.add_argument("imdb_id", help="IMDb id, e.g. tt0137523")
    parser.add_argument("--series", action="store_true", help="Resolve a series episode")
    parser.add_argument("-s", "--season", type=int, help="Season number (series only)")
    parser.add_argument("-e", "--episode", type=int, help="Episode number (series only)")
    parser.add_argument("--decode", choices=[r.value for r in DecodeRule],
                        help="Primary token decode variant (default from STREAMHOP_PRIMARY_DECODE)")
    parser.add_argument("--key", help="XOR key for decode variant B")
    parser.add_argument("--save-scripts", metavar="DIR", help="Keep a copy of the prorcp player script")
    parser.add_argument("--manifest-only", action="store_true", help="Print the master playlist URL and stop")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


async def _run(args, settings) -> int:
    kind = MediaKind.SERIES if args.series else MediaKind.MOVIE
    request = ResolutionRequest(args.imdb_id, kind, args.season, args.episode)

    async with Fetcher(timeout=settings.timeout, verify_ssl=settings.verify_ssl) as fetcher:
        pipeline = ResolutionPipeline.from_settings(fetcher, settings)
        if args.manifest_only:
            print(await pipeline.resolve_manifest(request))
            return 0
        variants = await pipeline.resolve(request)

    for v in variants:
        print(f"Resolution: {v.resolution} | Bandwidth: {v.bandwidth} | URL: {v.url}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"invalid configuration: {e}", file=sys.stderr)
        return 1
    if args.decode:
        settings = replace(settings, primary_decode=DecodeRule.parse(args.decode))
    if args.key:
        settings = replace(settings, decode_key=args.key)
    if args.save_scripts:
        settings = replace(settings, script_dir=args.save_scripts)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_run(args, settings))
    except ShapeChangedError as e:
        print(f"upstream page layout changed: {e}", file=sys.stderr)
        return 2
    except ResolverError as e:
        print(f"failed to resolve: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nStopped.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
