# payroll_api/services/payroll_generation.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from functools import reduce
from typing import Optional, Tuple

from payroll_api.common import validation
from payroll_api.common.errors import APIError, Conflict, InvalidState, NotFound
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll_record import PayrollRecord
from payroll_api.services.payroll_calculator import PayrollCalculator, SubsidyOverride
from payroll_api.services.repositories import (
    DUPLICATE_PERIOD_REASON, EmployeeRepository, PayrollRecordRepository,
)

log = logging.getLogger(__name__)

OBSERVATIONS_MAX_LEN = 1000

INACTIVE_REASON = "Cannot generate payroll for an inactive employee"
EMPLOYEE_NOT_FOUND_REASON = "Employee not found"
RECORD_NOT_FOUND_REASON = "Payroll record not found"


@dataclass(frozen=True)
class BatchSuccess:
    employee_id: int
    employee_name: str
    record_id: int

    def to_dict(self):
        return {"employee_id": self.employee_id, "employee_name": self.employee_name,
                "record_id": self.record_id}


@dataclass(frozen=True)
class BatchFailure:
    employee_id: int
    employee_name: str
    code: str
    reason: str

    def to_dict(self):
        return {"employee_id": self.employee_id, "employee_name": self.employee_name,
                "code": self.code, "reason": self.reason}


@dataclass(frozen=True)
class BatchReport:
    period_date: date
    total: int
    successes: Tuple[BatchSuccess, ...] = field(default_factory=tuple)
    failures: Tuple[BatchFailure, ...] = field(default_factory=tuple)

    def to_dict(self):
        return {
            "period_date": self.period_date.isoformat(),
            "total": self.total,
            "succeeded": len(self.successes),
            "failed": len(self.failures),
            "successes": [s.to_dict() for s in self.successes],
            "failures": [f.to_dict() for f in self.failures],
        }


class PayrollGenerationService:
    """
    Creates payroll records: one per employee per period, for a single
    employee or every active one. Reads employees and records through the
    injected repositories and never mutates employees.
    """

    def __init__(self,
                 employees: Optional[EmployeeRepository] = None,
                 records: Optional[PayrollRecordRepository] = None,
                 calculator: Optional[PayrollCalculator] = None):
        self.employees = employees or EmployeeRepository()
        self.records = records or PayrollRecordRepository()
        self.calculator = calculator or PayrollCalculator()

    # ---------- single ----------
    def generate_for_employee(self, employee_id, period_date, transport_subsidy_override=None,
                              observations: Optional[str] = None) -> PayrollRecord:
        employee_id = validation.positive_int(employee_id, "employee_id")
        period = validation.iso_date(period_date, "period_date")
        override = SubsidyOverride.coerce(transport_subsidy_override)
        observations = self._clean_observations(observations)

        employee = self.employees.get_by_id(employee_id)
        if employee is None:
            raise NotFound(EMPLOYEE_NOT_FOUND_REASON)
        if not employee.is_active:
            raise InvalidState(INACTIVE_REASON)

        record = self._generate(employee, period, override, observations)
        log.info("payroll generated employee=%s period=%s record=%s net=%s",
                 employee.id, period, record.id, record.net_pay)
        return record

    # ---------- batch ----------
    def generate_for_all_active(self, period_date, transport_subsidy_override=None,
                                observations: Optional[str] = None) -> BatchReport:
        """
        Best effort over all active employees: each employee is its own unit,
        and a failure is recorded against that employee without stopping the
        run. Only a failure to read the active set aborts (and propagates).
        """
        period = validation.iso_date(period_date, "period_date")
        override = SubsidyOverride.coerce(transport_subsidy_override)
        observations = self._clean_observations(observations)

        active = self.employees.list_active()

        def step(report: BatchReport, employee: Employee) -> BatchReport:
            try:
                record = self._generate(employee, period, override, observations)
            except APIError as e:
                return replace(report, failures=report.failures + (
                    BatchFailure(employee.id, employee.full_name, e.code, e.reason),))
            except Exception as e:
                db.session.rollback()
                log.exception("payroll generation failed employee=%s period=%s", employee.id, period)
                return replace(report, failures=report.failures + (
                    BatchFailure(employee.id, employee.full_name, "unexpected", str(e) or type(e).__name__),))
            return replace(report, successes=report.successes + (
                BatchSuccess(employee.id, employee.full_name, record.id),))

        report = reduce(step, active, BatchReport(period_date=period, total=len(active)))
        log.info("payroll batch period=%s total=%d ok=%d failed=%d",
                 period, report.total, len(report.successes), len(report.failures))
        return report

    # ---------- records ----------
    def get_record(self, record_id) -> PayrollRecord:
        record_id = validation.positive_int(record_id, "id")
        record = self.records.find_by_id(record_id)
        if record is None:
            raise NotFound(RECORD_NOT_FOUND_REASON)
        return record

    def list_records(self, employee_id=None):
        if employee_id is None:
            return self.records.list_all()
        return self.records.list_by_employee(validation.positive_int(employee_id, "employee_id"))

    def delete_record(self, record_id) -> None:
        record_id = validation.positive_int(record_id, "id")
        if not self.records.delete(record_id):
            raise NotFound(RECORD_NOT_FOUND_REASON)
        log.info("payroll record deleted id=%s", record_id)

    # ---------- internals ----------
    def _generate(self, employee: Employee, period: date, override: SubsidyOverride,
                  observations: Optional[str]) -> PayrollRecord:
        if self.records.find_by_employee_and_period(employee.id, period) is not None:
            raise Conflict(DUPLICATE_PERIOD_REASON)
        # raises InvalidState for a missing / non-positive / non-finite salary
        computation = self.calculator.compute(employee.base_salary, override)
        record = PayrollRecord.from_computation(employee.id, period, computation, observations)
        return self.records.insert(record)

    @staticmethod
    def _clean_observations(observations):
        return validation.bounded_text(observations, "observations", max_len=OBSERVATIONS_MAX_LEN)
