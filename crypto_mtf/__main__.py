"""Allow python -m crypto_mtf to print help."""
from __future__ import annotations

from . import __version__

_HELP = f"""\
crypto-mtf {__version__}

Available CLI commands:
  crypto-mtf snapshot BTC        Multi-timeframe candle snapshot (JSON)
  crypto-mtf klines BTC -i 1h    One interval of normalized candles
  crypto-mtf levels BTC -i 1d    Support/resistance levels for one interval
  crypto-mtf zones BTC           Cross-timeframe confluence zones
  crypto-mtf ema BTC -i 4h       EMA series (default 9/21/50/100/200)
  crypto-mtf status              Provider health and active provider

HTTP API:
  uvicorn crypto_mtf.api:app     Read-only REST API (FastAPI)

Tests:
  python -m pytest -q
"""


def main() -> int:
    print(_HELP)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
