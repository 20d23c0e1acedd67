"""
Price History Analytics
Volume and performance figures derived from a time series
"""

from datetime import datetime
from typing import Dict, Optional, Sequence

import pandas as pd

from .models import PerformanceMetrics, TimeSeriesPoint, VolumeMetrics


def points_to_dataframe(points: Sequence[TimeSeriesPoint]) -> pd.DataFrame:
    """OHLCV frame indexed by UTC timestamp, oldest first"""
    if not points:
        return pd.DataFrame(columns=['Open', 'High', 'Low', 'Close', 'Volume'])

    df = pd.DataFrame({
        'Open': [p.open for p in points],
        'High': [p.high for p in points],
        'Low': [p.low for p in points],
        'Close': [p.close for p in points],
        'Volume': [p.volume for p in points],
    }, index=pd.to_datetime([p.timestamp for p in points], utc=True))
    df.index.name = 'Date'
    return df.sort_index()


def _to_utc(moment: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(moment)
    if ts.tzinfo is None:
        return ts.tz_localize('UTC')
    return ts.tz_convert('UTC')


def calculate_volume_metrics(points: Sequence[TimeSeriesPoint]) -> VolumeMetrics:
    df = points_to_dataframe(points)
    if df.empty:
        return VolumeMetrics()

    last_30 = df.tail(30)
    typical_price = (last_30['Open'] + last_30['Close']) / 2

    def window_average(bars: int) -> Optional[float]:
        if len(df) < bars:
            return None
        return round(float(df['Volume'].tail(bars).mean()))

    return VolumeMetrics(
        avg_daily_volume=round(float(last_30['Volume'].mean())),
        avg_daily_volume_dollar=round(float((last_30['Volume'] * typical_price).mean())),
        current_volume=float(df['Volume'].iloc[-1]),
        avg_volume_30_day=window_average(30),
        avg_volume_90_day=window_average(90),
        avg_volume_1_year=window_average(252),
    )


def calculate_performance_metrics(
    points: Sequence[TimeSeriesPoint],
    current_price: float,
    as_of: Optional[datetime] = None,
) -> PerformanceMetrics:
    """
    Percent change from the first close on or after each window start

    A window is left as None when the history does not reach back far enough.
    """
    df = points_to_dataframe(points)
    if df.empty or not current_price:
        return PerformanceMetrics()

    now = _to_utc(as_of) if as_of else df.index[-1]
    starts: Dict[str, pd.Timestamp] = {
        'one_week': now - pd.Timedelta(days=7),
        'one_month': now - pd.DateOffset(months=1),
        'three_month': now - pd.DateOffset(months=3),
        'one_year': now - pd.DateOffset(years=1),
        'year_to_date': pd.Timestamp(year=now.year, month=1, day=1, tz='UTC'),
    }

    closes = df['Close']
    changes: Dict[str, Optional[float]] = {}
    for name, start in starts.items():
        if start < closes.index[0]:
            changes[name] = None
            continue
        position = closes.index.searchsorted(start)
        if position >= len(closes):
            changes[name] = None
            continue
        base = float(closes.iloc[position])
        changes[name] = round((current_price - base) / base * 100, 2) if base else None

    return PerformanceMetrics(**changes)
