"""Indicator configuration and snapshot models."""

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class RsiConfig(BaseModel):
    period: int = 14
    overbought: float = 70.0
    oversold: float = 30.0


class MacdConfig(BaseModel):
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9


class BollingerConfig(BaseModel):
    period: int = 20
    std_dev: float = 2.0


class MovingAverageConfig(BaseModel):
    periods: list[int] = Field(default_factory=lambda: [10, 20, 50, 100, 200])


class AtrConfig(BaseModel):
    period: int = 14


class VolumeConfig(BaseModel):
    period: int = 20


class StochasticConfig(BaseModel):
    period: int = 14
    signal_period: int = 3
    overbought: float = 80.0
    oversold: float = 20.0


class IndicatorConfig(BaseModel):
    """Full indicator configuration.

    Every field has a default, so ``IndicatorConfig()`` is the standard set
    and strategies override only the sections they care about. Stochastic is
    off unless configured.
    """

    rsi: RsiConfig = Field(default_factory=RsiConfig)
    macd: MacdConfig = Field(default_factory=MacdConfig)
    bollinger_bands: BollingerConfig = Field(default_factory=BollingerConfig)
    sma: MovingAverageConfig = Field(default_factory=MovingAverageConfig)
    ema: MovingAverageConfig = Field(default_factory=MovingAverageConfig)
    atr: AtrConfig = Field(default_factory=AtrConfig)
    volume: VolumeConfig = Field(default_factory=VolumeConfig)
    stochastic: StochasticConfig | None = None

    def required_length(self) -> int:
        """Minimum number of bars needed to compute every configured indicator."""
        lengths = [
            self.rsi.period + 1,
            self.macd.slow_period + self.macd.signal_period,
            self.bollinger_bands.period,
            self.atr.period + 1,
            self.volume.period,
            *self.sma.periods,
            *self.ema.periods,
        ]
        if self.stochastic is not None:
            lengths.append(self.stochastic.period + self.stochastic.signal_period - 1)
        return max(lengths)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

class RsiSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    period: int
    overbought: bool
    oversold: bool


class MacdSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    macd: float
    signal: float
    histogram: float
    bullish: bool
    bearish: bool


class BollingerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: float
    middle: float
    lower: float
    bandwidth: float
    percent_b: float


class AtrSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    period: int


class VolumeSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: float
    average: float
    ratio: float


class StochasticSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    k: float
    d: float
    overbought: bool
    oversold: bool


class IndicatorSnapshot(BaseModel):
    """All indicator values for the last bar of a series."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    asset: str
    timeframe: str
    price: float
    rsi: RsiSnapshot
    macd: MacdSnapshot
    bollinger_bands: BollingerSnapshot
    sma: dict[int, float]
    ema: dict[int, float]
    atr: AtrSnapshot
    volume: VolumeSnapshot
    stochastic: StochasticSnapshot | None = None
