"""
Command-line entry point.

  python main.py report --holdings 0.5 --currency EUR --html chart.html --png chart.png
  python main.py build-dataset
"""

import argparse
import logging
import os
from datetime import datetime

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from chart import ath_headline, build_holdings_figure, format_money
from config import ChartConfig, DatasetConfig
from data_fetcher import PriceHistoryFetcher, write_price_dataset
from dataset import DatasetBinder, DatasetError, read_dataset_bytes, run_query
from exchange_rate import ExchangeRatePoller
from holdings import HoldingsValidationError, format_amount, parse_holdings_amount
from metrics import Currency, compute_series
from sql_engine import EngineLoader, start_background_load

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("main")


def gen_report(series, ath, holdings, currency, rate):
    if series.empty:
        return "No price data."

    first = series["date"].iloc[0].strftime("%Y-%m-%d")
    last = series["date"].iloc[-1].strftime("%Y-%m-%d")
    rate_line = f"EUR/USD: {rate:.6f}" if currency is Currency.EUR and rate else "EUR/USD: n/a"

    r = f"""
BITCOIN HOLDINGS REPORT
{'-'*70}

Holdings: {format_amount(holdings)} BTC
Currency: {currency.value} ({rate_line})
Period: {first} to {last} ({len(series)} days)

Value (first): {format_money(series['value'].iloc[0], currency)}
Value (last):  {format_money(series['value'].iloc[-1], currency)}
{ath_headline(ath, currency) if ath else 'All-Time High: n/a'}

Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
{'-'*70}
"""
    return r


def plot_holdings(series, currency, path):
    """Static log-scale chart of the holdings value."""
    fig, ax = plt.subplots(figsize=(16, 8))
    ax.plot(series["date"].dt.tz_localize(None), series["value"],color=ChartConfig.LINE_COLOR, linewidth=1.5)
    ax.set_yscale("log")
    ax.set_ylabel(f"{ChartConfig.SERIES_LABEL} ({currency.value})")
    ax.set_title(ChartConfig.HEADING, fontweight="bold")
    ax.grid(True, alpha=0.3)

    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def cmd_report(args):
    try:
        holdings = parse_holdings_amount(args.holdings)
    except HoldingsValidationError as e:
        raise SystemExit(f"error: {e}")
    currency = Currency(args.currency)

    print("\n[1] Loading SQL engine...")
    loader = EngineLoader()
    start_background_load(loader)
    engine = loader.acquire_engine(timeout=args.engine_timeout)

    print("[2] Querying prices...")
    binder = DatasetBinder()
    try:
        db = binder.bind(engine, read_dataset_bytes(args.db))
        rows = run_query(db, DatasetConfig.PRICES_QUERY)
    except DatasetError as e:
        raise SystemExit(f"error: {e}\nBuild the dataset with: python main.py build-dataset")
    finally:
        binder.close()
    print(f"    {len(rows)} rows loaded")

    rate = None
    if currency is Currency.EUR:
        print("[3] Fetching EUR/USD rate...")
        rate = ExchangeRatePoller().poll_once()
        if rate is None:
            log.warning("[RATE] Rate unavailable, values stay in USD")

    series, ath = compute_series(rows, holdings, currency, rate)
    print(gen_report(series, ath, holdings, currency, rate))

    if args.html:
        build_holdings_figure(series, currency, ath).write_html(args.html)
        print(f"Chart written to {args.html}")
    if args.png:
        plot_holdings(series, currency, args.png)
        print(f"Chart written to {args.png}")


def cmd_build_dataset(args):
    df = PriceHistoryFetcher.fetch_price_history()
    write_price_dataset(df, args.db)
    print(f"Dataset written to {args.db}")


def _parse_args(argv=None):
    p = argparse.ArgumentParser(description="Bitcoin holdings value over time")
    sub = p.add_subparsers(dest="command", required=True)

    rp = sub.add_parser("report", help="Print holdings report and optionally write charts")
    rp.add_argument("--holdings", default="1", help="BTC amount (max 8 decimals)")
    rp.add_argument("--currency", choices=[c.value for c in Currency], default="USD")
    rp.add_argument("--db", default=DatasetConfig.DB_PATH, help="SQLite price dataset")
    rp.add_argument("--html", default=None, help="Write interactive plotly chart")
    rp.add_argument("--png", default=None, help="Write static matplotlib chart")
    rp.add_argument("--engine-timeout", type=float, default=30.0,
                    help="Seconds to wait for the SQL engine")
    rp.set_defaults(func=cmd_report)

    bp = sub.add_parser("build-dataset", help="Download BTC price history into the dataset")
    bp.add_argument("--db", default=DatasetConfig.DB_PATH)
    bp.set_defaults(func=cmd_build_dataset)

    return p.parse_args(argv)


def main(argv=None):
    args = _parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
