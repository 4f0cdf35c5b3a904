"""
Data Fetcher Module: Quotes and Price History
==============================================
Combines data from:
- CoinGecko API: current BTC quotes in USD and EUR (EUR/USD rate),
  last year of daily BTC prices
- Yahoo Finance: full daily BTC/USD history
- Writes the local SQLite price dataset read by the dashboard
"""

import logging
import os
import sqlite3
from typing import Optional

import pandas as pd
import requests
import yfinance as yf

from config import DatasetConfig
from config import ExchangeRateConfig as Config

log = logging.getLogger(__name__)


class ExchangeRateError(ValueError):
    """Quote payload did not contain usable prices."""


class CoinGeckoFetcher:
    """Fetch BTC quotes and prices from the CoinGecko API"""

    BASE_URL = Config.BASE_URL

    @staticmethod
    def fetch_eur_usd_rate(session: Optional[requests.Session] = None) -> float:
        """
        Derive the EUR/USD rate from the current BTC price in both currencies.

        Returns:
            float: EUR per USD

        Raises:
            requests.RequestException: network or HTTP error
            ExchangeRateError: payload without positive bitcoin.usd / bitcoin.eur
        """
        http = session or requests
        url = f"{CoinGeckoFetcher.BASE_URL}/simple/price"
        response = http.get(url, params=Config.SIMPLE_PRICE_PARAMS, timeout=Config.REQUEST_TIMEOUT)
        response.raise_for_status()

        try:
            data = response.json()
            usd_price = float(data["bitcoin"]["usd"])
            eur_price = float(data["bitcoin"]["eur"])
        except (ValueError, KeyError, TypeError) as e:
            raise ExchangeRateError(f"Unexpected quote payload: {e}") from e

        if usd_price <= 0 or eur_price <= 0:
            raise ExchangeRateError(f"Non-positive quote: usd={usd_price}, eur={eur_price}")

        return eur_price / usd_price

    @staticmethod
    def fetch_btc_prices(days: int = 365) -> pd.DataFrame:
        """
        Fetch daily BTC/USD prices (free API serves at most one year).

        Returns:
            pd.DataFrame: columns [date (epoch seconds), price]
        """
        log.info(f"[CoinGecko] Fetching {days} days of BTC prices...")
        url = f"{CoinGeckoFetcher.BASE_URL}/coins/bitcoin/market_chart"
        params = {
            "vs_currency": "usd",
            "days": days,
            "interval": "daily",
        }
        response = requests.get(url, params=params, timeout=Config.REQUEST_TIMEOUT)
        response.raise_for_status()

        df = pd.DataFrame(response.json()["prices"], columns=["timestamp_ms", "price"])
        df["date"] = (df["timestamp_ms"] // 1000).astype("int64")
        return _clean_prices(df[["date", "price"]])


class PriceHistoryFetcher:
    """Fetch the full BTC/USD history used to build the dataset"""

    @staticmethod
    def fetch_yfinance(start: str = DatasetConfig.HISTORY_START) -> pd.DataFrame:
        """
        Fetch daily closes from Yahoo Finance.

        Returns:
            pd.DataFrame: columns [date (epoch seconds), price]
        """
        log.info(f"[Yahoo Finance] Fetching {DatasetConfig.YFINANCE_TICKER} since {start}...")
        hist = yf.Ticker(DatasetConfig.YFINANCE_TICKER).history(start=start, interval="1d")
        if hist.empty:
            raise ValueError("No data returned from Yahoo Finance")

        days = pd.to_datetime(hist.index, utc=True).normalize()
        epoch = (days - pd.Timestamp("1970-01-01", tz="UTC")) // pd.Timedelta(seconds=1)
        df = pd.DataFrame({
            "date": pd.Series(epoch, dtype="int64"),
            "price": hist["Close"].to_numpy(dtype="float64"),
        })
        return _clean_prices(df)

    @staticmethod
    def fetch_price_history() -> pd.DataFrame:
        """Full history from Yahoo Finance, last year from CoinGecko as fallback."""
        try:
            df = PriceHistoryFetcher.fetch_yfinance()
        except Exception as e:
            log.warning(f"[Yahoo Finance] Fetch failed: {e}")
            log.warning("[FALLBACK] Trying CoinGecko (last 365 days only)...")
            df = CoinGeckoFetcher.fetch_btc_prices(365)

        first = pd.to_datetime(df["date"].iloc[0], unit="s").date()
        last = pd.to_datetime(df["date"].iloc[-1], unit="s").date()
        log.info(f"   [OK] {len(df)} days of prices ({first} -> {last})")
        log.info(f"   - Price (first): ${df['price'].iloc[0]:,.2f}")
        log.info(f"   - Price (last): ${df['price'].iloc[-1]:,.2f}")
        return df


def _clean_prices(df: pd.DataFrame) -> pd.DataFrame:
    df = df.dropna()
    df = df[df["price"] > 0]
    df = df.drop_duplicates(subset="date", keep="last")
    return df.sort_values("date").reset_index(drop=True)


def write_price_dataset(df: pd.DataFrame, path: str = DatasetConfig.DB_PATH) -> str:
    """
    Write prices into a SQLite file with a `prices(date, price)` table.

    The file is built next to the target and moved into place, readers never
    see a half-written dataset.
    """
    prices = _clean_prices(df[["date", "price"]])
    if prices.empty:
        raise ValueError("Refusing to write an empty price dataset")

    tmp_path = f"{path}.tmp"
    if os.path.exists(tmp_path):
        os.remove(tmp_path)

    conn = sqlite3.connect(tmp_path)
    try:
        prices.to_sql(
            DatasetConfig.TABLE_NAME,
            conn,
            index=False,
            if_exists="replace",
            dtype={"date": "INTEGER", "price": "REAL"},
        )
        conn.commit()
    finally:
        conn.close()

    os.replace(tmp_path, path)
    log.info(f"[DATASET] Saved {len(prices)} rows to {path}")
    return path
