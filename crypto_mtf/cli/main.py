"""
Top-level CLI: crypto-mtf <command> [args...].
Every command prints JSON to stdout; errors go to stderr with exit code 1.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from crypto_mtf.core.errors import CryptoMtfError
from crypto_mtf.service import MarketAnalysisService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crypto-mtf",
        description="Multi-timeframe market data and technical levels",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING)")
    subparsers = parser.add_subparsers(dest="command", help="command")

    p = subparsers.add_parser("snapshot", help="Multi-timeframe candle snapshot")
    p.add_argument("symbol")
    p.add_argument("--limit", type=int, default=None)
    p.add_argument("--timeout", type=float, default=None, help="Seconds before pending intervals are dropped")

    p = subparsers.add_parser("klines", help="Normalized candles for one interval")
    p.add_argument("symbol")
    p.add_argument("-i", "--interval", default="1h")
    p.add_argument("--limit", type=int, default=None)

    p = subparsers.add_parser("levels", help="Support/resistance for one interval")
    p.add_argument("symbol")
    p.add_argument("-i", "--interval", default="1d")

    p = subparsers.add_parser("zones", help="Cross-timeframe confluence zones")
    p.add_argument("symbol")
    p.add_argument("--min-intervals", type=int, default=1)
    p.add_argument("--timeout", type=float, default=None)

    p = subparsers.add_parser("ema", help="EMA series for one interval")
    p.add_argument("symbol")
    p.add_argument("-i", "--interval", default="1h")
    p.add_argument("-p", "--periods", default=None, help="Comma separated periods, e.g. 9,21,50")

    subparsers.add_parser("status", help="Provider health")
    return parser


async def _run(args: argparse.Namespace, svc: MarketAnalysisService) -> Any:
    cmd = args.command
    if cmd == "snapshot":
        snap = await svc.snapshot(args.symbol, limit=args.limit, timeout=args.timeout)
        return snap.to_dict()
    if cmd == "klines":
        series = await svc.fetch_klines(args.symbol, args.interval, args.limit)
        return series.to_dict()
    if cmd == "levels":
        return await svc.technical_levels(args.symbol, args.interval)
    if cmd == "zones":
        result = await svc.analyze(args.symbol, timeout=args.timeout)
        return {
            "symbol": result.snapshot.symbol,
            "currentPrice": result.snapshot.current_price,
            "zones": [z.to_dict() for z in result.zones if z.interval_count >= args.min_intervals],
        }
    if cmd == "ema":
        periods = [int(p) for p in args.periods.split(",") if p.strip()] if args.periods else None
        by_period = await svc.emas(args.symbol, args.interval, periods=periods)
        return {str(p): e.to_dict() for p, e in by_period.items()}
    if cmd == "status":
        return svc.provider_status()
    raise ValueError(f"Unknown command {cmd!r}")


def main(argv: Optional[List[str]] = None, service: Optional[MarketAnalysisService] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    svc = service or MarketAnalysisService.from_config()
    try:
        payload = asyncio.run(_run(args, svc))
    except (CryptoMtfError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
