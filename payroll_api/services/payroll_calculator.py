# payroll_api/services/payroll_calculator.py
"""
Payslip computation for one employee and one period.

Pure and stateless: the only inputs are the base salary, the transport
subsidy override and an immutable ``PayrollRates`` value. Amounts are
``Decimal`` throughout and are not rounded here, so

    total_deducted == base_salary * (health_rate + pension_rate)

holds exactly for every input.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Tuple

from payroll_api.common.errors import InvalidState, ValidationError

ZERO = Decimal("0")

CONCEPT_BASE_SALARY = "Base Salary"
CONCEPT_TRANSPORT_SUBSIDY = "Transport Subsidy"
CONCEPT_HEALTH = "Health Contribution"
CONCEPT_PENSION = "Pension Contribution"


@dataclass(frozen=True)
class PayrollRates:
    minimum_wage: Decimal = Decimal("1300000")
    health_rate: Decimal = Decimal("0.04")
    pension_rate: Decimal = Decimal("0.04")
    transport_subsidy_amount: Decimal = Decimal("162000")
    # subsidy applies by default strictly below this many minimum wages
    transport_subsidy_wage_multiple: int = 2

    @property
    def transport_subsidy_threshold(self) -> Decimal:
        return self.minimum_wage * self.transport_subsidy_wage_multiple


DEFAULT_RATES = PayrollRates()


class SubsidyOverride(enum.Enum):
    """Transport subsidy decision: follow the threshold, or force it on/off."""
    AUTO = "auto"
    APPLY = "apply"
    SKIP = "skip"

    @classmethod
    def coerce(cls, value) -> "SubsidyOverride":
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.AUTO
        if value is True:
            return cls.APPLY
        if value is False:
            return cls.SKIP
        if isinstance(value, str):
            v = value.strip().lower()
            if v == "true":
                return cls.APPLY
            if v == "false":
                return cls.SKIP
            for member in cls:
                if member.value == v:
                    return member
        raise ValidationError(
            "transport_subsidy must be true, false or unset",
            errors=[{"field": "transport_subsidy", "message": "must be a boolean"}],
        )

    def applies(self, base_salary: Decimal, rates: PayrollRates) -> bool:
        if self is SubsidyOverride.APPLY:
            return True
        if self is SubsidyOverride.SKIP:
            return False
        return base_salary < rates.transport_subsidy_threshold


@dataclass(frozen=True)
class PayslipLine:
    concept: str
    quantity: Decimal
    unit_value: Decimal
    accrued: Decimal = ZERO
    deducted: Decimal = ZERO

    def __post_init__(self):
        if self.accrued < 0 or self.deducted < 0:
            raise ValueError(f"{self.concept}: accrued/deducted cannot be negative")
        if (self.accrued != 0) == (self.deducted != 0):
            raise ValueError(f"{self.concept}: a line is either an accrual or a deduction")

    @classmethod
    def accrual(cls, concept: str, amount: Decimal, quantity: Decimal = Decimal("1")) -> "PayslipLine":
        return cls(concept=concept, quantity=quantity, unit_value=amount, accrued=amount * quantity)

    @classmethod
    def deduction(cls, concept: str, amount: Decimal, quantity: Decimal = Decimal("1")) -> "PayslipLine":
        return cls(concept=concept, quantity=quantity, unit_value=amount, deducted=amount * quantity)

    @property
    def is_accrual(self) -> bool:
        return self.accrued != 0

    def to_json(self) -> Dict[str, str]:
        return {
            "concept": self.concept,
            "quantity": str(self.quantity),
            "unit_value": str(self.unit_value),
            "accrued": str(self.accrued),
            "deducted": str(self.deducted),
        }

    @classmethod
    def from_json(cls, row: Dict[str, Any]) -> "PayslipLine":
        return cls(
            concept=row["concept"],
            quantity=Decimal(str(row["quantity"])),
            unit_value=Decimal(str(row["unit_value"])),
            accrued=Decimal(str(row.get("accrued", 0))),
            deducted=Decimal(str(row.get("deducted", 0))),
        )


@dataclass(frozen=True)
class PayslipComputation:
    lines: Tuple[PayslipLine, ...] = field(default_factory=tuple)

    # totals are always derived from the lines
    @property
    def total_accrued(self) -> Decimal:
        return sum((ln.accrued for ln in self.lines), ZERO)

    @property
    def total_deducted(self) -> Decimal:
        return sum((ln.deducted for ln in self.lines), ZERO)

    @property
    def net_pay(self) -> Decimal:
        return self.total_accrued - self.total_deducted

    def with_line(self, line: PayslipLine) -> "PayslipComputation":
        return PayslipComputation(self.lines + (line,))

    def concepts(self) -> List[str]:
        return [ln.concept for ln in self.lines]

    def to_json(self) -> List[Dict[str, str]]:
        return [ln.to_json() for ln in self.lines]

    @classmethod
    def from_json(cls, rows: Iterable[Dict[str, Any]] | None) -> "PayslipComputation":
        return cls(tuple(PayslipLine.from_json(r) for r in (rows or [])))


def _as_salary(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidState("Employee does not have a valid base salary")
    try:
        salary = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidState("Employee does not have a valid base salary")
    if not salary.is_finite() or salary <= 0:
        raise InvalidState("Employee does not have a valid base salary")
    return salary


class PayrollCalculator:
    def __init__(self, rates: PayrollRates = DEFAULT_RATES):
        self.rates = rates

    def compute(self, base_salary, transport_subsidy_override=SubsidyOverride.AUTO) -> PayslipComputation:
        """
        Lines, in order: base salary, transport subsidy (when it applies),
        health contribution, pension contribution.
        """
        salary = _as_salary(base_salary)
        override = SubsidyOverride.coerce(transport_subsidy_override)
        r = self.rates

        comp = PayslipComputation().with_line(PayslipLine.accrual(CONCEPT_BASE_SALARY, salary))
        if override.applies(salary, r):
            comp = comp.with_line(PayslipLine.accrual(CONCEPT_TRANSPORT_SUBSIDY, r.transport_subsidy_amount))
        comp = comp.with_line(PayslipLine.deduction(CONCEPT_HEALTH, salary * r.health_rate))
        comp = comp.with_line(PayslipLine.deduction(CONCEPT_PENSION, salary * r.pension_rate))
        return comp


def compute(base_salary, transport_subsidy_override=None, rates: PayrollRates = DEFAULT_RATES) -> PayslipComputation:
    """Module-level shortcut around ``PayrollCalculator(rates).compute``."""
    return PayrollCalculator(rates).compute(base_salary, transport_subsidy_override)
