"""
Bitcoin Holdings Visualizer - Dashboard
========================================
Shows what a BTC holding would have been worth over the whole price history,
in USD or EUR. Prices come from the SQLite dataset written by
`python main.py build-dataset`, the EUR/USD rate is refreshed every minute.

Run with: streamlit run dashboard.py
"""

import hashlib
import logging
import os
import sys
from decimal import Decimal

import streamlit as st

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from chart import ath_summary, build_holdings_figure
from config import ChartConfig, DatasetConfig, EngineConfig, ExchangeRateConfig
from dataset import DatasetBinder, DatasetError, QueryRunner, read_dataset_bytes
from exchange_rate import ExchangeRatePoller
from holdings import HoldingsForm, format_amount
from metrics import Currency, compute_series
from sql_engine import EngineError, EngineLoader, EngineUnavailableError, start_background_load

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("dashboard")

# Page config
st.set_page_config(
    page_title=ChartConfig.PAGE_TITLE,
    page_icon="₿",
    layout="wide",
    initial_sidebar_state="collapsed",
)

st.markdown(
    """
<style>
h1 {
    color: white;
    text-align: center;
    font-size: 2em;
}
.ath {
    color: #f2a900;
    font-size: 1.2em;
    font-weight: bold;
    text-align: center;
    margin-bottom: 20px;
}
.ath span {
    color: #858ca2;
    font-weight: normal;
    font-size: 0.85em;
    opacity: 0.8;
}
.stFormSubmitButton > button {
    background-color: #f2a900;
    color: #1a1a1a;
    border-radius: 6px;
}
</style>
""",
    unsafe_allow_html=True,
)


# ============ PROCESS-WIDE RESOURCES ============

@st.cache_resource
def get_engine_loader() -> EngineLoader:
    loader = EngineLoader()
    start_background_load(loader)
    return loader


@st.cache_resource
def get_dataset_binder() -> DatasetBinder:
    return DatasetBinder()


@st.cache_resource
def get_query_runner() -> QueryRunner:
    return QueryRunner()


@st.cache_resource
def get_rate_poller() -> ExchangeRatePoller:
    return ExchangeRatePoller(interval=ExchangeRateConfig.POLL_INTERVAL).start()


@st.cache_data(show_spinner=False)
def load_dataset(path):
    """Raw dataset bytes and their digest (used as cache key downstream)."""
    raw = read_dataset_bytes(path)
    return raw, hashlib.sha256(raw).hexdigest()


def load_prices():
    """Wait for the engine, bind the dataset and run the price query."""
    loader = get_engine_loader()
    with st.spinner("Loading SQL engine..."):
        while True:
            try:
                engine = loader.acquire_engine(timeout=EngineConfig.READY_POLL_INTERVAL)
                break
            except EngineUnavailableError:
                log.info("[ENGINE] Polling...")

    raw, digest = load_dataset(DatasetConfig.DB_PATH)
    db = get_dataset_binder().bind(engine, raw)
    return get_query_runner().run(db, DatasetConfig.PRICES_QUERY), digest


@st.cache_data(max_entries=32, show_spinner=False)
def holdings_series(_rows, rows_key, amount, currency, rate):
    return compute_series(_rows, Decimal(amount), currency, rate)


# ============ HOLDINGS INPUT ============

if "holdings_form" not in st.session_state:
    st.session_state["holdings_form"] = HoldingsForm()
    st.session_state["pending_input"] = st.session_state["holdings_form"].pending_input

form = st.session_state["holdings_form"]


def _on_generate():
    outcome = form.submit(st.session_state["pending_input"])
    st.session_state["pending_input"] = form.pending_input
    if outcome is not None and not outcome.accepted:
        st.session_state["holdings_error"] = outcome.message


# ============ PAGE ============

st.title(ChartConfig.HEADING)

col1, col2 = st.columns([4, 1])

# Enter in the text field submits the form like the button does
with col1, st.form("holdings", border=False):
    st.text_input(
        "Holdings (BTC)",
        key="pending_input",
        placeholder="0.00000000 BTC",
    )
    st.form_submit_button("Generate chart", on_click=_on_generate)

with col2:
    currency = st.selectbox("Currency", [c.value for c in Currency], key="currency")

if "holdings_error" in st.session_state:
    st.error(st.session_state.pop("holdings_error"))

try:
    price_rows, rows_key = load_prices()
except (EngineError, DatasetError) as e:
    log.exception("[DASHBOARD] Could not load price data")
    st.error(f"Problem with price data: {e}")
    st.info("Build the dataset with: python main.py build-dataset")
    st.stop()

poller = get_rate_poller()


@st.fragment(run_every=ExchangeRateConfig.POLL_INTERVAL)
def render_chart(rows, key, amount, currency_code):
    rate = poller.rate
    series, ath = holdings_series(rows, key, amount, currency_code, rate)

    if ath is not None:
        title, when = ath_summary(ath, currency_code)
        st.markdown(
            f"<div class='ath'>{title} <span>({when})</span></div>",
            unsafe_allow_html=True,
        )

    st.plotly_chart(build_holdings_figure(series, currency_code, ath), use_container_width=False)

    if currency_code == Currency.EUR.value and rate is None:
        st.caption("EUR/USD rate not available yet, values shown in USD.")
    elif currency_code == Currency.EUR.value:
        st.caption(f"EUR/USD {rate:.4f}, updated {poller.last_updated:%H:%M:%S} UTC")


render_chart(price_rows, rows_key, format_amount(form.amount), currency)

# Footer
st.markdown("---")
st.markdown(
    f"""
    <div style='text-align: center; color: #c2c2c2; font-size: 11px;'>
        <p><a href="{ChartConfig.SOURCE_URL}" target="_blank" rel="noreferrer">View source code</a></p>
        <p>Did you like it? send me some digital energy <b>{ChartConfig.DONATION_ADDRESS}</b></p>
    </div>
    """,
    unsafe_allow_html=True,
)
