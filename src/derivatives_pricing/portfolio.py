"""
Shared-nothing parallel pricing of independent trades.

Each worker thread owns one MonteCarloPricer (workspace, stream, checkpoints)
for the whole run and reuses its buffers across the trades it picks up.
Before every trade the pricer is reseeded from the trade, never from the
worker, so results do not depend on the worker count or on completion order.
The optional MemoryMonitor is the only object workers share; it is passed in
explicitly and sees one workspace per worker.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd

from derivatives_pricing.checkpoint.monitor import MemoryMonitor
from derivatives_pricing.greeks.dispatch import price_with_greeks_mode
from derivatives_pricing.greeks.modes import GreeksMode
from derivatives_pricing.greeks.result import GreeksResult
from derivatives_pricing.options.payoffs.base import PayoffParams
from derivatives_pricing.options.simulation.gbm import GBMParams
from derivatives_pricing.options.simulation.monte_carlo import (
    MCResult,
    MonteCarloConfig,
    MonteCarloPricer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Trade:
    """
    One independently priced trade.

    Attributes
    ----------
    trade_id : str
        Identifier, unique within a portfolio
    params : GBMParams
        Model parameters
    payoff : PayoffParams
        Payoff definition
    discount_factor : float
        Discount factor to expiry
    seed : int, optional
        Seed of the trade's run; None uses the run configuration's seed
    """

    trade_id: str
    params: GBMParams
    payoff: PayoffParams
    discount_factor: float
    seed: Optional[int] = None


@dataclass(frozen=True)
class TradeResult:
    """Price (and optional Greeks) of one trade."""

    trade_id: str
    result: MCResult
    greeks: Optional[GreeksResult] = None


class PricerPool:
    """
    One lazily built pricer per worker thread for the duration of a run.

    Parameters
    ----------
    config : MonteCarloConfig
        Path/step counts shared by every pricer
    monitor : MemoryMonitor, optional
        Receives one allocation per pricer built and the matching
        deallocation on ``release``
    """

    def __init__(self, config: MonteCarloConfig, monitor: Optional[MemoryMonitor] = None):
        self.config = config
        self.monitor = monitor
        self._local = threading.local()
        self._lock = threading.Lock()
        self._pricers: list[MonteCarloPricer] = []
        self._footprints: list[int] = []

    @property
    def pricer_count(self) -> int:
        """Number of pricers (one per worker that ran) built so far."""
        with self._lock:
            return len(self._pricers)

    def pricer(self) -> MonteCarloPricer:
        """The calling thread's pricer, built on first use."""
        pricer = getattr(self._local, "pricer", None)
        if pricer is None:
            pricer = MonteCarloPricer(self.config)
            footprint = pricer.workspace.memory_usage()
            if self.monitor is not None:
                self.monitor.record_allocation(footprint)
            with self._lock:
                self._pricers.append(pricer)
                self._footprints.append(footprint)
            self._local.pricer = pricer
        return pricer

    def release(self) -> None:
        """Return every pricer's footprint to the monitor and drop the pricers."""
        with self._lock:
            if self.monitor is not None:
                for footprint in self._footprints:
                    self.monitor.record_deallocation(footprint)
            self._pricers.clear()
            self._footprints.clear()
        self._local = threading.local()


def _price_trade(
    trade: Trade,
    pool: PricerPool,
    greeks_mode: Optional[GreeksMode],
) -> TradeResult:
    """Price one trade on the calling worker's pricer."""
    pricer = pool.pricer()
    seed = pool.config.resolved_seed if trade.seed is None else trade.seed
    pricer.reset_with_seed(seed)

    if greeks_mode is None:
        result = pricer.price_european(trade.params, trade.payoff, trade.discount_factor)
        return TradeResult(trade_id=trade.trade_id, result=result)

    greeks = price_with_greeks_mode(
        pricer, trade.params, trade.payoff, trade.discount_factor, greeks_mode
    )
    result = MCResult(
        price=greeks.price,
        standard_error=greeks.standard_error,
        confidence_interval=(
            greeks.price - 1.96 * greeks.standard_error,
            greeks.price + 1.96 * greeks.standard_error,
        ),
        n_paths=pool.config.n_paths,
        discount_factor=trade.discount_factor,
        delta=greeks.delta,
    )
    return TradeResult(trade_id=trade.trade_id, result=result, greeks=greeks)


def price_portfolio(
    trades: Sequence[Trade],
    config: MonteCarloConfig,
    n_workers: int = 1,
    monitor: Optional[MemoryMonitor] = None,
    greeks_mode: Optional[GreeksMode] = None,
) -> list[TradeResult]:
    """
    Price independent trades, optionally in parallel.

    Parameters
    ----------
    trades : Sequence[Trade]
        Trades to price
    config : MonteCarloConfig
        Path/step counts (and default seed) for every trade
    n_workers : int, default 1
        Worker threads; 1 prices sequentially on a single pricer
    monitor : MemoryMonitor, optional
        Shared memory tracker; sees one workspace per worker
    greeks_mode : GreeksMode, optional
        Also compute Greeks with this mode

    Returns
    -------
    list[TradeResult]
        Results in the order of ``trades``

    Raises
    ------
    ValueError
        If n_workers < 1 or trade ids repeat
    """
    if n_workers < 1:
        raise ValueError(f"CRITICAL: n_workers must be >= 1, got {n_workers}")
    ids = [t.trade_id for t in trades]
    if len(set(ids)) != len(ids):
        raise ValueError("CRITICAL: trade_id values must be unique")

    start_time = time.time()
    if monitor is not None and monitor.should_enable_checkpoint(len(trades)):
        logger.warning(
            f"{len(trades)} trades exceed the monitor threshold: checkpointing advised"
        )

    pool = PricerPool(config, monitor)
    results: dict[str, TradeResult] = {}
    try:
        if n_workers == 1 or len(trades) <= 1:
            for trade in trades:
                results[trade.trade_id] = _price_trade(trade, pool, greeks_mode)
        else:
            with ThreadPoolExecutor(max_workers=n_workers) as executor:
                future_to_trade = {
                    executor.submit(_price_trade, trade, pool, greeks_mode): trade
                    for trade in trades
                }
                for future in as_completed(future_to_trade):
                    trade = future_to_trade[future]
                    results[trade.trade_id] = future.result()
        logger.info(
            f"Priced {len(trades)} trades with {n_workers} worker(s) on "
            f"{pool.pricer_count} pricer(s) in {time.time() - start_time:.2f}s"
        )
    finally:
        pool.release()

    return [results[trade_id] for trade_id in ids]


def portfolio_frame(results: Sequence[TradeResult]) -> pd.DataFrame:
    """Tabulate trade results (one row per trade)."""
    rows = []
    for item in results:
        row = {
            "trade_id": item.trade_id,
            "price": item.result.price,
            "standard_error": item.result.standard_error,
        }
        if item.greeks is not None:
            row.update({k: v for k, v in item.greeks.to_dict().items() if k != "price"})
            row["mode"] = item.greeks.mode.value
        rows.append(row)
    return pd.DataFrame(rows).set_index("trade_id") if rows else pd.DataFrame()
