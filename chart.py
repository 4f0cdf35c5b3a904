"""
Chart Module: Holdings Value Chart
==================================
Builds the plotly figure and the text shown around it:
- log-scale holdings value line, hover with value + BTC price
- money formatting per currency (en-US for USD, es-ES for EUR)
- all-time high headline with relative date
"""

import calendar
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from config import ChartConfig as Config
from metrics import AllTimeHigh, Currency, to_decimal


# ============ FORMATTING ============

def format_money(value: Union[Decimal, float], currency: Union[Currency, str] = Currency.USD) -> str:
    """
    Format an amount the way a browser would for the currency's locale.

    USD: $12,345.60      EUR: 12.345,60 €  (es-ES groups from 5 digits on)
    Halves round away from zero, like Intl.NumberFormat.
    """
    currency = Currency(currency)
    cents = to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if cents < 0 else ""
    text = f"{abs(cents):,.2f}"

    if currency is Currency.USD:
        return f"{sign}${text}"

    whole, frac = text.split(".")
    digits = whole.replace(",", "")
    whole = digits if len(digits) <= 4 else whole.replace(",", ".")
    return f"{sign}{whole},{frac}\u00a0€"


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def _full_months_between(earlier: datetime, later: datetime) -> int:
    months = (later.year - earlier.year) * 12 + (later.month - earlier.month)
    # the last month only counts once its day/time has been reached
    last_day = calendar.monthrange(later.year, later.month)[1]
    anchor = earlier.replace(year=later.year, month=later.month, day=min(earlier.day, last_day))
    if months > 0 and anchor > later:
        months -= 1
    return months


def format_distance(then: datetime, now: datetime) -> str:
    """Human distance between two instants ("about 3 years", "5 days")."""
    earlier, later = sorted((then, now))
    seconds = (later - earlier).total_seconds()
    minutes = round(seconds / 60)

    if minutes < 1:
        return "less than a minute"
    if minutes < 2:
        return "1 minute"
    if minutes < 45:
        return f"{minutes} minutes"
    if minutes < 90:
        return "about 1 hour"
    if minutes < 1440:
        return f"about {_plural(round(minutes / 60), 'hour')}"
    if minutes < 2520:
        return "1 day"
    if minutes < 43200:
        return _plural(round(minutes / 1440), "day")
    if minutes < 86400:
        return f"about {_plural(round(minutes / 43200), 'month')}"

    months = _full_months_between(earlier, later)
    if months < 12:
        return _plural(round(minutes / 43200), "month")

    years, remainder = divmod(months, 12)
    if remainder < 3:
        return f"about {_plural(years, 'year')}"
    if remainder < 9:
        return f"over {_plural(years, 'year')}"
    return f"almost {_plural(years + 1, 'year')}"


def format_distance_to_now(then: datetime, now: Optional[datetime] = None) -> str:
    """Relative time with suffix: "about 3 years ago" / "in 2 days"."""
    now = now or datetime.now(timezone.utc)
    distance = format_distance(then, now)
    return f"{distance} ago" if then <= now else f"in {distance}"


def ath_summary(ath: AllTimeHigh, currency: Union[Currency, str] = Currency.USD,
                now: Optional[datetime] = None) -> Tuple[str, str]:
    """("All-Time High: $69,000.00", "2021-11-10 · almost 5 years ago")"""
    when = ath.date
    return (f"All-Time High: {format_money(ath.value, currency)}",
            f"{when.strftime('%Y-%m-%d')} · {format_distance_to_now(when, now)}")


def ath_headline(ath: AllTimeHigh, currency: Union[Currency, str] = Currency.USD,
                 now: Optional[datetime] = None) -> str:
    title, when = ath_summary(ath, currency, now)
    return f"{title} ({when})"


# ============ FIGURE ============

def build_holdings_figure(series: pd.DataFrame, currency: Union[Currency, str] = Currency.USD,
                          ath: Optional[AllTimeHigh] = None) -> go.Figure:
    """
    Holdings value over time on a logarithmic axis.

    Args:
        series (pd.DataFrame): Output of metrics.compute_series
        currency: Currency the values are expressed in
        ath (AllTimeHigh): Marked on the chart when given

    Returns:
        go.Figure: Ready for st.plotly_chart / write_html
    """
    currency = Currency(currency)
    hover = np.column_stack([
        [format_money(v, currency) for v in series["value"]],
        [format_money(p, currency) for p in series["display_price"]],
    ]) if len(series) else None

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=series["date"],
        y=series["value"],
        mode="lines",
        name=Config.SERIES_LABEL,
        line=dict(color=Config.LINE_COLOR, width=2),
        customdata=hover,
        hovertemplate=(
            "<b>%{x|%m/%d/%Y}</b><br>"
            f"{Config.SERIES_LABEL}: " "%{customdata[0]}<br>"
            "Bitcoin price: %{customdata[1]}"
            "<extra></extra>"
        ),
    ))

    if ath is not None:
        fig.add_trace(go.Scatter(
            x=[pd.Timestamp(ath.date)],
            y=[float(ath.value)],
            mode="markers",
            name="All-Time High",
            marker=dict(color=Config.LINE_COLOR, size=9, line=dict(color="white", width=1)),
            hoverinfo="skip",
        ))

    fig.update_layout(
        template="plotly_dark",
        width=Config.WIDTH,
        height=Config.HEIGHT,
        showlegend=False,
        hovermode="x",
        dragmode="zoom",
        hoverlabel=dict(bgcolor=Config.HOVER_BG),
        margin=dict(l=60, r=20, t=20, b=40),
    )
    fig.update_xaxes(
        type="date",
        dtick="M12",
        tickformat="%Y",
        gridcolor=Config.GRID_COLOR,
    )
    # zoom and pan along time only
    fig.update_yaxes(
        type="log",
        gridcolor=Config.GRID_COLOR,
        tickfont=dict(color=Config.TICK_COLOR),
        fixedrange=True,
    )
    return fig
