#!/usr/bin/env python3
"""
Crash Query Script for CrashMap

Runs a single crash query against the configured upstream and writes the
resulting GeoJSON FeatureCollection. Reads the same environment variables
(or .env) as the API.

Usage:
    python scripts/query_crashes.py --bbox -118.7,33.7,-118.1,34.3
    python scripts/query_crashes.py --bbox -124.5,32.5,-114.1,42.0 --mode bin --bin 0.1
    python scripts/query_crashes.py --county "Los Angeles" --start 2024-01-01 -o crashes.geojson
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from crashmap.config import get_settings
from crashmap.errors import CrashMapError, FilterValidationError
from crashmap.services import CrashService


def build_params(args: argparse.Namespace) -> dict:
    """Map CLI arguments onto the API's query parameters."""
    params = {
        "bbox": args.bbox,
        "start": args.start,
        "end": args.end,
        "limit": args.limit,
        "mode": args.mode,
        "bin": args.bin,
        "zoom": args.zoom,
        "severity": args.severity or None,
        "county": args.county or None,
    }
    return {k: v for k, v in params.items() if v is not None}


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.request_timeout) as http:
        service = CrashService(settings.data_source(), http)
        try:
            result = await service.query(build_params(args))
        except FilterValidationError as e:
            for issue in e.issues:
                print(f"{issue.field}: {issue.message}", file=sys.stderr)
            return 2
        except CrashMapError as e:
            print(f"Query failed: {e}", file=sys.stderr)
            return 1

    body = json.dumps(result.geojson, indent=2 if args.pretty else None)
    if args.output:
        Path(args.output).write_text(body)
        print(
            f"Wrote {len(result.geojson['features'])} features to {args.output}"
            f" (truncated: {result.truncated})",
            file=sys.stderr,
        )
    else:
        print(body)
        if result.truncated:
            print("Result truncated; narrow the filters for more", file=sys.stderr)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Query crashes as GeoJSON")
    parser.add_argument("--bbox", help="minLon,minLat,maxLon,maxLat")
    parser.add_argument("--start", help="First day, YYYY-MM-DD")
    parser.add_argument("--end", help="Last day, YYYY-MM-DD")
    parser.add_argument("--severity", action="append", help="Repeatable")
    parser.add_argument("--county", action="append", help="Repeatable")
    parser.add_argument("--limit", help="Row or bin cap, 1-10000")
    parser.add_argument("--mode", help="points or bin")
    parser.add_argument("--bin", help="Bin size in degrees (mode=bin)")
    parser.add_argument("--zoom", help="Map zoom; picks mode and bin size")
    parser.add_argument("-o", "--output", help="Write GeoJSON to this file")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
