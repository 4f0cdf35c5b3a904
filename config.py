"""
Configuration for the Bitcoin Holdings Visualizer
==================================================
Defines the tunables for data loading, exchange rates and the chart.
Edit the class attributes to change behaviour.
"""

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


# ============ SQL ENGINE PARAMETERS ============
class EngineConfig:
    """Embedded SQL engine start-up"""

    # How long a waiting caller sleeps between readiness checks (seconds).
    # The dashboard waits in slices of this size so Streamlit can keep
    # rendering a spinner.
    READY_POLL_INTERVAL = 0.5

    # Header every SQLite database file starts with
    SQLITE_HEADER = b"SQLite format 3\x00"


# ============ DATASET PARAMETERS ============
class DatasetConfig:
    """Local price dataset (written by build-dataset) and the query run against it"""

    DB_PATH = os.path.join(BASE_DIR, "data.sqlite3")
    TABLE_NAME = "prices"

    # The only query the application issues
    PRICES_QUERY = "SELECT date, price FROM prices;"

    # Dataset builder: first day of the exported history
    HISTORY_START = "2010-07-17"
    YFINANCE_TICKER = "BTC-USD"


# ============ EXCHANGE RATE PARAMETERS ============
class ExchangeRateConfig:
    """EUR/USD rate derived from CoinGecko BTC quotes"""

    BASE_URL = "https://api.coingecko.com/api/v3"
    SIMPLE_PRICE_PARAMS = {
        "ids": "bitcoin",
        "vs_currencies": "usd,eur",
    }

    POLL_INTERVAL = 60  # seconds, first poll happens immediately
    REQUEST_TIMEOUT = 10  # seconds


# ============ HOLDINGS PARAMETERS ============
class HoldingsConfig:
    """Validation limits for the holdings amount"""

    MAX_SUPPLY = 21_000_000  # BTC
    MAX_DECIMALS = 8  # 1 sat = 0.00000001 BTC
    DEFAULT_AMOUNT = "1"

    MSG_INVALID = "Invalid input. Falling back to default value of 1 BTC."
    MSG_MAX_SUPPLY = "Mate, Bitcoin is scarce! There cannot be more than 21MM bitcoins."
    MSG_DECIMALS = "Error: One Bitcoin is divisible only to eight decimal places."
    MSG_NON_POSITIVE = "Error: Holdings amount must be greater than zero."


# ============ CHART PARAMETERS ============
class ChartConfig:
    """Look of the holdings chart"""

    LINE_COLOR = "#f2a900"
    GRID_COLOR = "#222531"
    TICK_COLOR = "#858ca2"
    HOVER_BG = "#222531"

    WIDTH = 1280
    HEIGHT = 640

    SERIES_LABEL = "Holdings value"
    PAGE_TITLE = "Bitcoin holdings value visualizer"
    HEADING = "Visualize your Bitcoin holdings value over time"
    SOURCE_URL = "https://github.com/alfonmga/hodlbitcoin.vercel.app"
    DONATION_ADDRESS = "bc1qmz0fmcj72fk02lke0002yvh852ctsy38w5mn82"
