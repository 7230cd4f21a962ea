"""Amortization schedule engine with support for extra principal payments."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

Number = Union[int, float, str, Decimal]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
PERIODS_PER_YEAR = 12

OPTION_KEYS = ("principal", "rate", "periods", "extra_at", "extra_every")
REQUIRED_OPTION_KEYS = ("principal", "rate", "periods")


class AmortizationError(ValueError):
    """Base class for invalid schedule input."""


class InvalidTermsError(AmortizationError):
    pass


class InvalidExtraPaymentError(AmortizationError):
    def __init__(self, message: str, period: Any, amount: Any = None) -> None:
        super().__init__(message)
        self.period = period
        self.amount = amount


class ScheduleConfigError(AmortizationError):
    pass


def to_decimal(value: Number) -> Decimal:
    """Convert a user supplied number to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean values are not amounts")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class ExtraSource(Enum):
    """Which extra-payment rule contributed to a period."""

    NONE = "none"
    ONE_TIME = "one_time"
    RECURRING = "recurring"


@dataclass(frozen=True)
class LoanTerms:
    """Principal, annual rate (as a fraction) and number of monthly periods."""

    principal: Decimal
    annual_rate: Decimal
    periods: int

    def __post_init__(self) -> None:
        try:
            principal = to_decimal(self.principal)
            annual_rate = to_decimal(self.annual_rate)
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise InvalidTermsError(f"Invalid loan amount or rate: {exc}") from exc
        if not principal.is_finite() or principal <= 0:
            raise InvalidTermsError("Principal must be a positive amount")
        if not annual_rate.is_finite() or annual_rate < 0:
            raise InvalidTermsError("Annual rate must be zero or a positive fraction")
        if isinstance(self.periods, bool) or not isinstance(self.periods, int):
            raise InvalidTermsError("Number of periods must be an integer")
        if self.periods <= 0:
            raise InvalidTermsError("Number of periods must be positive")
        object.__setattr__(self, "principal", principal)
        object.__setattr__(self, "annual_rate", annual_rate)

    @property
    def periodic_rate(self) -> Decimal:
        return self.annual_rate / PERIODS_PER_YEAR


def _normalize_rule_map(rules: Optional[Mapping[int, Number]], kind: str) -> Dict[int, Decimal]:
    normalized: Dict[int, Decimal] = {}
    for period, amount in (rules or {}).items():
        if isinstance(period, bool) or not isinstance(period, int) or period < 1:
            raise InvalidExtraPaymentError(
                f"Extra payment {kind} period must be a positive integer", period, amount
            )
        try:
            value = to_decimal(amount)
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise InvalidExtraPaymentError(
                f"Extra payment {kind} period {period} has an invalid amount", period, amount
            ) from exc
        if not value.is_finite() or value <= 0:
            raise InvalidExtraPaymentError(
                f"Extra payment {kind} period {period} must be a positive amount", period, amount
            )
        normalized[period] = value
    return normalized


@dataclass(frozen=True)
class ExtraPaymentRules:
    """One-time (``at``) and annually recurring (``every``) extra principal payments.

    ``every[k]`` is paid at period ``k`` and every 12 periods after it. When a
    period is matched by a recurring rule, a one-time rule for the same period
    is not applied.
    """

    at: Dict[int, Decimal] = field(default_factory=dict)
    every: Dict[int, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "at", _normalize_rule_map(self.at, "at"))
        object.__setattr__(self, "every", _normalize_rule_map(self.every, "every"))

    def __bool__(self) -> bool:
        return bool(self.at or self.every)

    def recurring_amount(self, period: int) -> Decimal:
        return sum(
            (
                amount
                for start, amount in self.every.items()
                if period >= start and (period - start) % PERIODS_PER_YEAR == 0
            ),
            ZERO,
        )

    def one_time_amount(self, period: int) -> Decimal:
        return self.at.get(period, ZERO)

    def extra_for(self, period: int) -> Tuple[Decimal, ExtraSource]:
        recurring = self.recurring_amount(period)
        if recurring > 0:
            return recurring, ExtraSource.RECURRING
        one_time = self.one_time_amount(period)
        if one_time > 0:
            return one_time, ExtraSource.ONE_TIME
        return ZERO, ExtraSource.NONE


NO_EXTRA_PAYMENTS = ExtraPaymentRules()


@dataclass(frozen=True)
class PeriodResult:
    period: int
    base_payment: Decimal
    interest: Decimal
    principal: Decimal
    extra: Decimal
    payment: Decimal
    balance: Decimal
    extra_source: ExtraSource = ExtraSource.NONE


@dataclass(frozen=True)
class RunningTotals:
    payment: Decimal = ZERO
    principal: Decimal = ZERO
    interest: Decimal = ZERO

    def add(self, result: PeriodResult) -> "RunningTotals":
        return RunningTotals(
            payment=self.payment + result.payment,
            principal=self.principal + result.principal,
            interest=self.interest + result.interest,
        )


@dataclass(frozen=True)
class ScheduleState:
    """Position of a schedule after ``period`` completed periods."""

    period: int
    balance: Decimal
    base_payment: Decimal
    totals: RunningTotals = field(default_factory=RunningTotals)


def calculate_base_payment(terms: LoanTerms) -> Decimal:
    """Return the level payment that amortizes the loan, rounded to cents."""
    rate = terms.periodic_rate
    if rate == 0:
        return round_money(terms.principal / terms.periods)
    growth = (1 + rate) ** terms.periods
    return round_money(terms.principal * rate * growth / (growth - 1))


def initial_state(terms: LoanTerms) -> ScheduleState:
    base_payment = calculate_base_payment(terms)
    logger.debug(
        "Base payment %s for %s at %s over %d periods",
        base_payment,
        terms.principal,
        terms.annual_rate,
        terms.periods,
    )
    return ScheduleState(period=0, balance=terms.principal, base_payment=base_payment)


def advance(
    state: ScheduleState, terms: LoanTerms, rules: ExtraPaymentRules = NO_EXTRA_PAYMENTS
) -> Optional[Tuple[ScheduleState, PeriodResult]]:
    """Compute the next period of the schedule.

    Returns the new state together with the period's result, or ``None`` when
    the term is over or the balance has been paid off.
    """
    period = state.period + 1
    if period > terms.periods or state.balance <= 0:
        return None

    balance = state.balance
    interest = round_money(balance * terms.periodic_rate)
    base_principal = state.base_payment - interest
    extra, source = rules.extra_for(period)
    principal = round_money(base_principal + extra)

    payment = state.base_payment + extra

    if period == terms.periods:
        # Final payment is the remaining balance; rounding residue is absorbed here.
        payment = balance
        principal = payment - interest
        extra, source = ZERO, ExtraSource.NONE
        balance = ZERO
    elif principal >= balance:
        extra = max(balance - base_principal, ZERO)
        if extra == 0:
            source = ExtraSource.NONE
        principal = balance
        payment = principal + interest
        balance = ZERO
        logger.debug("Loan paid off at period %d of %d", period, terms.periods)
    else:
        balance = round_money(balance - principal)

    result = PeriodResult(
        period=period,
        base_payment=state.base_payment,
        interest=interest,
        principal=principal,
        extra=extra,
        payment=payment,
        balance=balance,
        extra_source=source,
    )
    next_state = replace(
        state, period=period, balance=balance, totals=state.totals.add(result)
    )
    return next_state, result


class ScheduleEngine:
    """Steps through an amortization schedule one period at a time.

    The engine is a finite, non-restartable iterator of ``PeriodResult``
    values; call ``reset`` to start over. Instances are not thread safe.

        engine = ScheduleEngine(LoanTerms(100_000, "0.05", 360))
        for row in engine:
            print(row.period, row.payment, row.balance)
        print(engine.totals.interest)
    """

    def __init__(self, terms: LoanTerms, rules: Optional[ExtraPaymentRules] = None) -> None:
        self._terms = terms
        self._rules = rules or NO_EXTRA_PAYMENTS
        beyond_term = [
            period
            for period in list(self._rules.at) + list(self._rules.every)
            if period > terms.periods
        ]
        if beyond_term:
            logger.debug("Extra payment periods beyond the term are ignored: %s", sorted(beyond_term))
        self.reset()

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "ScheduleEngine":
        """Build an engine from ``principal``, ``rate``, ``periods``, ``extra_at`` and ``extra_every``."""
        unknown = sorted(set(options) - set(OPTION_KEYS))
        if unknown:
            raise ScheduleConfigError(f"Unrecognized schedule options: {', '.join(unknown)}")
        missing = [key for key in REQUIRED_OPTION_KEYS if options.get(key) is None]
        if missing:
            raise ScheduleConfigError(f"Missing required schedule options: {', '.join(missing)}")
        terms = LoanTerms(
            principal=options["principal"],
            annual_rate=options["rate"],
            periods=options["periods"],
        )
        rules = ExtraPaymentRules(
            at=options.get("extra_at") or {},
            every=options.get("extra_every") or {},
        )
        return cls(terms, rules)

    @property
    def terms(self) -> LoanTerms:
        return self._terms

    @property
    def rules(self) -> ExtraPaymentRules:
        return self._rules

    @property
    def base_payment(self) -> Decimal:
        return self._state.base_payment

    @property
    def balance(self) -> Decimal:
        return self._state.balance

    @property
    def totals(self) -> RunningTotals:
        return self._state.totals

    @property
    def current(self) -> Optional[PeriodResult]:
        """The most recently produced period, if any."""
        return self._current

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def reset(self) -> None:
        self._state = initial_state(self._terms)
        self._current: Optional[PeriodResult] = None
        self._exhausted = False

    def step(self) -> Optional[PeriodResult]:
        """Advance one period; returns ``None`` once the schedule is exhausted."""
        if self._exhausted:
            return None
        advanced = advance(self._state, self._terms, self._rules)
        if advanced is None:
            self._exhausted = True
            return None
        self._state, self._current = advanced
        return self._current

    def __iter__(self) -> Iterator[PeriodResult]:
        while True:
            result = self.step()
            if result is None:
                return
            yield result


@dataclass(frozen=True)
class ScheduleSummary:
    base_payment: Decimal
    periods_paid: int
    totals: RunningTotals


@dataclass(frozen=True)
class BaselineComparison:
    """Effect of extra payments relative to the same loan without them."""

    baseline: ScheduleSummary
    with_extras: ScheduleSummary

    @property
    def interest_saved(self) -> Decimal:
        return self.baseline.totals.interest - self.with_extras.totals.interest

    @property
    def periods_saved(self) -> int:
        return self.baseline.periods_paid - self.with_extras.periods_paid


def generate_schedule(
    terms: LoanTerms, rules: Optional[ExtraPaymentRules] = None
) -> List[PeriodResult]:
    """Generate the full amortization schedule."""
    return list(ScheduleEngine(terms, rules))


def summarize_schedule(
    terms: LoanTerms, rules: Optional[ExtraPaymentRules] = None
) -> ScheduleSummary:
    engine = ScheduleEngine(terms, rules)
    periods_paid = sum(1 for _ in engine)
    return ScheduleSummary(
        base_payment=engine.base_payment,
        periods_paid=periods_paid,
        totals=engine.totals,
    )


def compare_with_baseline(
    terms: LoanTerms, rules: Optional[ExtraPaymentRules] = None
) -> BaselineComparison:
    return BaselineComparison(
        baseline=summarize_schedule(terms),
        with_extras=summarize_schedule(terms, rules),
    )


def total_interest(schedule: List[PeriodResult]) -> Decimal:
    return sum((p.interest for p in schedule), ZERO)
