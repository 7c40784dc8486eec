"""
Read-only REST API using FastAPI. No secrets, no auth.
Thin adapter over MarketAnalysisService; all payloads are to_dict() output.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from . import __version__
from .core.errors import (
    AllProvidersUnavailable,
    CryptoMtfError,
    InvalidInterval,
    NoDataAvailable,
    SnapshotUnavailable,
)
from .service import MarketAnalysisService

app = FastAPI(title="crypto-mtf Analysis API", version=__version__)

_service: Optional[MarketAnalysisService] = None


def get_service() -> MarketAnalysisService:
    """Process-wide service (and therefore one shared provider health registry)."""
    global _service
    if _service is None:
        _service = MarketAnalysisService.from_config()
    return _service


_STATUS_BY_ERROR = (
    (InvalidInterval, 400),
    (NoDataAvailable, 404),
    (SnapshotUnavailable, 404),
    (AllProvidersUnavailable, 503),
)


@app.exception_handler(CryptoMtfError)
async def _crypto_mtf_error(request: Request, exc: CryptoMtfError) -> JSONResponse:
    status = 500
    for err_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, err_type):
            status = code
            break
    return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})


@app.exception_handler(ValueError)
async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.get("/klines")
async def klines(
    symbol: str = "BTC",
    interval: str = "1h",
    limit: int = Query(200, ge=1, le=1000),
    svc: MarketAnalysisService = Depends(get_service),
) -> Dict[str, Any]:
    series = await svc.fetch_klines(symbol, interval, limit)
    return {"success": True, **series.to_dict()}


@app.get("/snapshot")
async def snapshot(
    symbol: str = "BTC",
    limit: int = Query(200, ge=1, le=1000),
    timeout: Optional[float] = Query(None, gt=0),
    svc: MarketAnalysisService = Depends(get_service),
) -> Dict[str, Any]:
    result = await svc.analyze(symbol, limit=limit, timeout=timeout)
    return {"success": True, **result.snapshot.to_dict()}


@app.get("/technical-levels")
async def technical_levels(
    symbol: str = "BTC",
    interval: str = "1d",
    svc: MarketAnalysisService = Depends(get_service),
) -> Dict[str, Any]:
    levels = await svc.technical_levels(symbol, interval)
    return {"success": True, "levels": levels}


@app.get("/confluence")
async def confluence(
    symbol: str = "BTC",
    min_intervals: int = Query(1, ge=1),
    svc: MarketAnalysisService = Depends(get_service),
) -> Dict[str, Any]:
    result = await svc.analyze(symbol)
    zones: List[Dict[str, Any]] = [
        z.to_dict() for z in result.zones if z.interval_count >= min_intervals
    ]
    return {
        "success": True,
        "symbol": result.snapshot.symbol,
        "currentPrice": result.snapshot.current_price,
        "zones": zones,
        "missing": {iv.value: reason for iv, reason in result.snapshot.missing.items()},
    }


@app.get("/ema")
async def ema(
    symbol: str = "BTC",
    interval: str = "1h",
    periods: Optional[str] = Query(None, description="Comma separated, e.g. 9,21,50"),
    svc: MarketAnalysisService = Depends(get_service),
) -> Dict[str, Any]:
    wanted = [int(p) for p in periods.split(",") if p.strip()] if periods else None
    by_period = await svc.emas(symbol, interval, periods=wanted)
    return {
        "success": True,
        "symbol": symbol.strip().upper(),
        "interval": interval,
        "emas": {str(p): e.to_dict() for p, e in by_period.items()},
    }


@app.get("/provider-status")
def provider_status(svc: MarketAnalysisService = Depends(get_service)) -> Dict[str, Any]:
    return {"success": True, **svc.provider_status()}
