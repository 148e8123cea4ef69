"""Backtest-specific configuration.

Independent of marketfeed's settings; override with ``BACKTEST_*``
environment variables.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class BacktestSettings(BaseSettings):
    """Walk-forward parameters loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    window_size: int = 200
    step_sizes: dict[str, int] = {"daily": 10, "scalping": 5}
    default_step: int = 10
    max_lookahead_bars: int = 50
    commission_pct: float = 0.001
    initial_equity: float = 10_000.0

    # Bars of history fetched per timeframe
    history_limits: dict[str, int] = {
        "5m": 288 * 30,
        "15m": 96 * 60,
        "30m": 48 * 90,
        "1h": 24 * 120,
        "4h": 6 * 180,
        "1d": 365,
    }

    daily_timeframes: list[str] = ["4h", "1d"]
    scalping_timeframes: list[str] = ["5m", "15m", "30m", "1h"]

    def step_for(self, strategy_name: str) -> int:
        return self.step_sizes.get(strategy_name, self.default_step)


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
