"""Portfolio backtest CLI.

Provides commands for:
- backtest: Simulate a portfolio month by month and report metrics
- validate: Check historical price coverage without simulating
"""
from __future__ import annotations

import argparse
import logging

from backtest.data_validator import DataValidation, InsufficientDataError, validate_backtest_data
from backtest.runner import BacktestResult, prefetch_series, run_backtest
from common.config_loader import load_all
from engine.explanation_engine import explain_transactions
from policy.dividend_policy import DividendPolicy, validate_seasonality
from portfolio.portfolio import BacktestConfig, ConfigError
from pricing.price_feed import CsvPriceFeed, PriceFeedError
from reporting.explainability import ledger_frame


def load_inputs(args):
    """Load policy, portfolio configuration and price feed from CLI args."""
    cfg = load_all(args.policy, args.portfolio)
    config = BacktestConfig.from_dict(cfg.portfolio)
    feed = CsvPriceFeed(args.prices)
    return cfg, config, feed


def print_validation(validation: DataValidation) -> None:
    print("Data Coverage")
    print("=" * 60)
    print(f"  Usable period: {validation.adjusted_start_date} - {validation.adjusted_end_date}"
          f" ({validation.months_available} months)")
    print(f"  Valid:         {'yes' if validation.is_valid else 'no'}")

    print("\nAssets:")
    for a in validation.assets_availability:
        span = f"{a.available_from} - {a.available_to}" if a.total_months else "no data"
        print(f"  {a.ticker:8} {a.data_quality:9} {a.total_months:>4} months  ({span})")
        for w in a.warnings:
            print(f"           - {w}")

    if validation.global_warnings:
        print("\nWarnings:")
        for w in validation.global_warnings:
            print(f"  - {w}")
    if validation.recommendations:
        print("\nRecommendations:")
        for r in validation.recommendations:
            print(f"  - {r}")


def print_result(result: BacktestResult) -> None:
    m = result.metrics
    print("Backtest Results")
    print("=" * 60)
    print(f"  Period:             {result.effective_start_date} - {result.effective_end_date} ({m.months} months)")
    print(f"  Total Invested:     ${m.total_invested:>12,.2f}")
    print(f"  Final Value:        ${m.final_value:>12,.2f}")
    print(f"  Cash Reserve:       ${m.final_cash_reserve:>12,.2f}")
    print(f"  Dividends Received: ${m.total_dividends:>12,.2f}")
    print(f"  Total Return:       {m.total_return:>8.2%}")
    print(f"  Annualized Return:  {m.annualized_return:>8.2%}")
    print(f"  Annualized Vol:     {m.volatility:>8.2%}")
    sharpe = f"{m.sharpe_ratio:>8.2f}" if m.sharpe_ratio is not None else "     n/a"
    print(f"  Sharpe Ratio:       {sharpe}")
    print(f"  Max Drawdown:       {m.max_drawdown:>8.2%}")
    print(f"  Positive Months:    {m.positive_months:>5}")
    print(f"  Negative Months:    {m.negative_months:>5}")

    print("\nAsset Performance:")
    print("-" * 60)
    for a in m.asset_performance:
        avg = f"${a.average_price:,.2f}" if a.average_price is not None else "-"
        print(f"  {a.ticker:8} {a.allocation:6.2%}  shares {a.final_shares:>6}  "
              f"value ${a.final_value:>12,.2f}  avg {avg:>10}  return {a.total_return:>8.2%}")

    if result.data_quality_issues:
        print("\nData Quality:")
        for issue in result.data_quality_issues:
            print(f"  - {issue}")


def cmd_backtest(args) -> int:
    """Handle backtest command: full simulation."""
    try:
        cfg, config, feed = load_inputs(args)
    except (ConfigError, PriceFeedError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    issues = validate_seasonality(DividendPolicy(cfg.policy))
    for issue in issues:
        print(f"Warning: {issue}")

    try:
        result = run_backtest(config, feed, cfg.policy)
    except InsufficientDataError as e:
        print("Error: insufficient historical data")
        for p in e.problems:
            print(f"  - {p}")
        return 1

    print_result(result)

    if args.transactions or args.explain:
        print("\nTransactions:")
        lines = explain_transactions(result.ledger) if args.explain else [str(t) for t in result.ledger]
        for line in lines:
            print("  " + line)

    if args.export_ledger:
        ledger_frame(result.ledger).to_csv(args.export_ledger, index=False)
        print(f"\nLedger written to {args.export_ledger}")

    return 0


def cmd_validate(args) -> int:
    """Handle validate command: coverage report only."""
    try:
        cfg, config, feed = load_inputs(args)
    except (ConfigError, PriceFeedError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    series = prefetch_series(config, feed, cfg.policy)
    validation = validate_backtest_data(
        series, config.tickers, config.start_date, config.end_date, cfg.policy
    )
    print_validation(validation)
    return 0 if validation.is_valid else 1


def main():
    """Main entry point."""
    p = argparse.ArgumentParser(
        prog="cli.main",
        description="Portfolio backtest CLI: monthly contributions, rebalancing and dividends",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Common arguments for all commands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--policy", default="config/backtest_policy.yaml", help="Backtest policy file")
    common.add_argument("--portfolio", default="config/portfolio.yaml", help="Portfolio configuration file")
    common.add_argument("--prices", required=True, help="Path to CSV with historical prices")
    common.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )

    # Backtest command
    bt = sub.add_parser(
        "backtest",
        parents=[common],
        help="Run portfolio backtest",
    )
    bt.add_argument("--transactions", action="store_true", help="Print the transaction ledger")
    bt.add_argument("--explain", action="store_true", help="Include explanations for each transaction")
    bt.add_argument("--export-ledger", default=None, help="Write the ledger to this CSV path")
    bt.set_defaults(func=cmd_backtest)

    # Validate command
    val = sub.add_parser(
        "validate",
        parents=[common],
        help="Check historical data coverage",
    )
    val.set_defaults(func=cmd_validate)

    args = p.parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
