"""FastAPI web application exposing amortization schedules and a static UI."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Sequence

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, validator

from amortization import (
    AmortizationError,
    ExtraPaymentRules,
    LoanTerms,
    PeriodResult,
    RunningTotals,
    ScheduleEngine,
    summarize_schedule,
)
from amortize import StartDate, format_period_date

MAX_PERIODS = 1200


class ScheduleRequest(BaseModel):
    principal: float = Field(..., gt=0, description="Loan principal amount.")
    annual_interest_rate: float = Field(
        ..., ge=0, lt=1, description="Annual interest rate as a fraction (0.05 is 5%)."
    )
    periods: int = Field(
        ..., gt=0, le=MAX_PERIODS, description="Number of monthly payment periods."
    )
    extra_at: Dict[int, float] = Field(
        default_factory=dict,
        description="One-time extra principal payments keyed by period number.",
    )
    extra_every: Dict[int, float] = Field(
        default_factory=dict,
        description="Extra principal payments repeated every 12 periods, keyed by first period.",
    )
    start_month: int | None = Field(
        default=None, ge=1, le=12, description="Month (1-12) of the first payment."
    )
    start_year: int | None = Field(
        default=None, ge=1900, le=3000, description="Year of the first payment."
    )
    schedule_limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of schedule rows returned.",
    )

    @validator("start_year", always=True)
    def _validate_start_date(cls, value: int | None, values) -> int | None:
        if (value is None) != (values.get("start_month") is None):
            raise ValueError("start_month and start_year must be provided together")
        return value

    def start_date(self) -> StartDate | None:
        if self.start_month is None or self.start_year is None:
            return None
        return StartDate(month=self.start_month, year=self.start_year)


class PaymentResponse(BaseModel):
    period: int
    date: str | None = None
    payment: float
    principal: float
    interest: float
    extra: float
    balance: float
    extra_source: str

    @classmethod
    def from_result(
        cls, result: PeriodResult, start: StartDate | None = None
    ) -> "PaymentResponse":
        return cls(
            period=result.period,
            date=format_period_date(result.period - 1, start) if start else None,
            payment=float(result.payment),
            principal=float(result.principal),
            interest=float(result.interest),
            extra=float(result.extra),
            balance=float(result.balance),
            extra_source=result.extra_source.value,
        )


class TotalsResponse(BaseModel):
    payment: float
    principal: float
    interest: float

    @classmethod
    def from_totals(cls, totals: RunningTotals) -> "TotalsResponse":
        return cls(
            payment=float(totals.payment),
            principal=float(totals.principal),
            interest=float(totals.interest),
        )


class ScheduleResponse(BaseModel):
    base_payment: float
    periods_paid: int
    totals: TotalsResponse
    baseline_totals: TotalsResponse
    interest_saved: float
    periods_saved: int
    schedule: Sequence[PaymentResponse]


app = FastAPI(title="Amortization Schedule", version="1.0.0")

_static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=_static_dir), name="static")


@app.get("/", response_class=HTMLResponse)
def read_index() -> str:
    """Serve the interactive schedule page."""
    index_path = _static_dir / "index.html"
    if not index_path.exists():  # pragma: no cover - safety check
        raise HTTPException(status_code=404, detail="UI not found")
    return index_path.read_text(encoding="utf-8")


@app.post("/api/schedule", response_model=ScheduleResponse)
def calculate_schedule(request: ScheduleRequest) -> ScheduleResponse:
    """Calculate the amortization schedule and the effect of extra payments."""
    try:
        terms = LoanTerms(
            principal=request.principal,
            annual_rate=request.annual_interest_rate,
            periods=request.periods,
        )
        rules = ExtraPaymentRules(at=request.extra_at, every=request.extra_every)
    except AmortizationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    start = request.start_date()
    engine = ScheduleEngine(terms, rules)
    rows: list[PaymentResponse] = []
    periods_paid = 0
    for result in engine:
        periods_paid += 1
        if request.schedule_limit is None or len(rows) < request.schedule_limit:
            rows.append(PaymentResponse.from_result(result, start))

    baseline = summarize_schedule(terms)
    return ScheduleResponse(
        base_payment=float(engine.base_payment),
        periods_paid=periods_paid,
        totals=TotalsResponse.from_totals(engine.totals),
        baseline_totals=TotalsResponse.from_totals(baseline.totals),
        interest_saved=float(baseline.totals.interest - engine.totals.interest),
        periods_saved=baseline.periods_paid - periods_paid,
        schedule=rows,
    )
