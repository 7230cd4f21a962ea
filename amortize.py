"""Command line tool that prints an amortization schedule table."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence, Tuple
import argparse
import calendar
import logging

from amortization import (
    AmortizationError,
    ExtraPaymentRules,
    LoanTerms,
    PeriodResult,
    RunningTotals,
    ScheduleEngine,
)
from schedule_table import ScheduleTable

PERIOD = "period"
DATE = "date"
PAYMENT = "payment"
PRINCIPAL = "principal"
INTEREST = "interest"
BALANCE = "balance"

HEADER_SPACING = 4
DATE_SPACING = 8

EXAMPLES = """\
examples:
  $100,000 at 5.0%% for 30 years:
    %(prog)s --principal 100000 --interest 0.05 --periods 360
  starting June 2015:
    %(prog)s --principal 100000 --interest 5%% --periods 360 --month 6 --year 2015
  extra $500 every 3rd and 9th period of each year:
    %(prog)s --principal 100000 --interest 0.05 --periods 360 --extraevery 3=500 --extraevery 9=500
  extra $500 only at periods 5 and 8:
    %(prog)s --principal 100000 --interest 0.05 --periods 360 --extraat 5=500 --extraat 8=500

Recurring periods are counted from the first payment, not from January.
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartDate:
    month: int
    year: int


def period_date(index: int, start: StartDate) -> Tuple[int, int]:
    """Return (month, year) of the payment at 0-based ``index``."""
    year = start.year + (index + start.month - 1) // 12
    month = (index + start.month) % 12 or 12
    return month, year


def format_period_date(index: int, start: StartDate) -> str:
    month, year = period_date(index, start)
    return f"{calendar.month_abbr[month]} {year}"


def format_money(value: Decimal) -> str:
    return f"{value:.2f}"


def parse_rate(text: str) -> Decimal:
    """Parse ``0.05`` or ``5%`` into an annual rate fraction."""
    value = text.strip()
    try:
        if value.endswith("%"):
            rate = Decimal(value[:-1]) / 100
        else:
            rate = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(
            f"Interest rate must be a fraction (0.05) or a percentage (5%), got {text!r}."
        ) from exc
    if not rate.is_finite() or rate < 0:
        raise argparse.ArgumentTypeError("Interest rate cannot be negative.")
    return rate


def parse_amount(text: str) -> Decimal:
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"Invalid amount {text!r}.") from exc
    if not amount.is_finite() or amount <= 0:
        raise argparse.ArgumentTypeError("Amounts must be positive.")
    return amount


def parse_positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected a whole number, got {text!r}.") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError("Value must be greater than zero.")
    return value


def parse_month(text: str) -> int:
    month = parse_positive_int(text)
    if month > 12:
        raise argparse.ArgumentTypeError("Month must be between 1 and 12.")
    return month


def parse_extra_payment(text: str) -> Tuple[int, Decimal]:
    try:
        period, amount = text.split("=")
        return parse_positive_int(period), parse_amount(amount)
    except (ValueError, argparse.ArgumentTypeError) as exc:
        raise argparse.ArgumentTypeError(
            "Extra payments must be provided as '<period>=<amount>' (e.g. 6=500)."
        ) from exc


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Calculate and display amortization payments and schedules.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--principal",
        type=parse_amount,
        required=True,
        help="Principal amount of the loan.",
    )
    parser.add_argument(
        "--interest",
        type=parse_rate,
        required=True,
        help="Annual interest rate as a fraction (0.05) or percentage (5%%).",
    )
    parser.add_argument(
        "--periods",
        type=parse_positive_int,
        required=True,
        help="Number of monthly payment periods.",
    )
    parser.add_argument(
        "--extraat",
        type=parse_extra_payment,
        action="append",
        default=[],
        metavar="PERIOD=AMOUNT",
        help="Extra principal payment at a specific period. Can be repeated.",
    )
    parser.add_argument(
        "--extraevery",
        type=parse_extra_payment,
        action="append",
        default=[],
        metavar="PERIOD=AMOUNT",
        help="Extra principal payment at this period of every year. Can be repeated.",
    )
    parser.add_argument(
        "--month",
        type=parse_month,
        default=None,
        help="Starting month of the first payment (1 is January). Requires --year.",
    )
    parser.add_argument(
        "--year",
        type=parse_positive_int,
        default=None,
        help="Starting year of the first payment. Requires --month.",
    )
    parser.add_argument(
        "--limit",
        type=parse_positive_int,
        default=None,
        help="Only print the first N payments (totals still cover the full schedule).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log calculation details to stderr.",
    )
    return parser


def build_table(with_dates: bool) -> ScheduleTable:
    table = ScheduleTable()
    table.register(PERIOD, HEADER_SPACING)
    if with_dates:
        table.register(DATE, DATE_SPACING)
    table.register(PAYMENT, HEADER_SPACING)
    table.register(PRINCIPAL, HEADER_SPACING)
    table.register(INTEREST, HEADER_SPACING)
    table.register(BALANCE, HEADER_SPACING)
    return table


def schedule_row(result: PeriodResult, start: Optional[StartDate]) -> Dict[str, str]:
    row = {
        PERIOD: str(result.period),
        PAYMENT: format_money(result.payment),
        PRINCIPAL: format_money(result.principal),
        INTEREST: format_money(result.interest),
        BALANCE: format_money(result.balance),
    }
    if start is not None:
        row[DATE] = format_period_date(result.period - 1, start)
    return row


def totals_row(totals: RunningTotals) -> Dict[str, str]:
    return {
        PERIOD: "--",
        DATE: "--",
        PAYMENT: format_money(totals.payment),
        PRINCIPAL: format_money(totals.principal),
        INTEREST: format_money(totals.interest),
        BALANCE: "--",
    }


def describe_terms(
    terms: LoanTerms, rules: ExtraPaymentRules, start: Optional[StartDate]
) -> List[str]:
    lines = [
        f"Principal                 : ${format_money(terms.principal)}",
        f"Interest rate             : {terms.annual_rate * 100:.3f}% (or {terms.annual_rate:.5f})",
        f"Number of payment periods : {terms.periods}",
    ]
    if start is not None:
        lines.append(f"Start date                : {format_period_date(0, start)}")
    if rules.every:
        lines.append("Extra payment             :")
        for period, amount in sorted(rules.every.items()):
            if start is not None:
                month, _ = period_date(period - 1, start)
                when = calendar.month_abbr[month]
            else:
                when = f"annual period on {period}"
            lines.append(f"         ${format_money(amount)} every {when}")
    if rules.at:
        lines.append("Extra payment             :")
        for period, amount in sorted(rules.at.items()):
            when = f"at period {period}"
            if start is not None:
                when += f" ({format_period_date(period - 1, start)})"
            lines.append(f"         ${format_money(amount)} {when}")
    return lines


def print_schedule(
    engine: ScheduleEngine, start: Optional[StartDate], limit: Optional[int] = None
) -> None:
    table = build_table(with_dates=start is not None)
    print(table.header(), end="")
    for result in engine:
        if limit is None or result.period <= limit:
            print(table.row(schedule_row(result, start)), end="")
    print(table.border(), end="")
    print(table.row(totals_row(engine.totals)), end="")
    print(table.border(), end="")


def main(args: Sequence[str] | None = None) -> None:
    parser = build_arg_parser()
    parsed = parser.parse_args(args=args)

    if parsed.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )
    if (parsed.month is None) != (parsed.year is None):
        parser.error("--month and --year must be used together.")
    start = StartDate(parsed.month, parsed.year) if parsed.month is not None else None

    try:
        terms = LoanTerms(
            principal=parsed.principal,
            annual_rate=parsed.interest,
            periods=parsed.periods,
        )
        rules = ExtraPaymentRules(
            at=dict(parsed.extraat),
            every=dict(parsed.extraevery),
        )
    except AmortizationError as exc:
        parser.error(str(exc))

    logger.debug("Schedule terms: %s, extra payments: %s", terms, rules)
    for line in describe_terms(terms, rules, start):
        print(line)
    print_schedule(ScheduleEngine(terms, rules), start, parsed.limit)


if __name__ == "__main__":
    main()
