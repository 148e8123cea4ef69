"""Provider interfaces used by the router."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from signals_core.models.kline import Kline


@runtime_checkable
class CandleProvider(Protocol):
    """A source of historical/latest klines."""

    @property
    def name(self) -> str: ...

    @property
    def enabled(self) -> bool: ...

    def supports(self, timeframe: str) -> bool: ...

    async def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        *,
        limit: int | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> list[Kline]: ...

    async def close(self) -> None: ...
