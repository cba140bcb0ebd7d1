# payroll_api/services/repositories.py
"""
SQLAlchemy-backed collaborators for the payroll generation service:
``EmployeeRepository`` (read-only employee lookups) and
``PayrollRecordRepository`` (the payroll store).
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError

from payroll_api.common.errors import Conflict
from payroll_api.extensions import db
from payroll_api.models.employee import Employee, STATUS_ACTIVE
from payroll_api.models.payroll_record import PayrollRecord

log = logging.getLogger(__name__)

UNIQUE_PERIOD_CONSTRAINT = "uq_payroll_employee_period"
DUPLICATE_PERIOD_REASON = "A payroll record already exists for this employee in this period"


class EmployeeRepository:
    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return db.session.get(Employee, employee_id)

    def get_by_user_id(self, user_id: int) -> Optional[Employee]:
        return Employee.query.filter_by(user_id=user_id).first()

    def list_active(self) -> List[Employee]:
        return (Employee.query
                .filter(Employee.status == STATUS_ACTIVE)
                .order_by(Employee.id.asc())
                .all())


class PayrollRecordRepository:
    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self.clock = clock

    def _ordered(self, q):
        return q.order_by(PayrollRecord.generated_at.desc(),
                          PayrollRecord.period_date.desc(),
                          PayrollRecord.id.desc())

    def find_by_employee_and_period(self, employee_id: int, period_date: date) -> Optional[PayrollRecord]:
        return (PayrollRecord.query
                .filter_by(employee_id=employee_id, period_date=period_date)
                .order_by(PayrollRecord.generated_at.desc())
                .first())

    def find_by_id(self, record_id: int) -> Optional[PayrollRecord]:
        return db.session.get(PayrollRecord, record_id)

    def list_all(self) -> List[PayrollRecord]:
        return self._ordered(PayrollRecord.query).all()

    def list_by_employee(self, employee_id: int) -> List[PayrollRecord]:
        return self._ordered(PayrollRecord.query.filter_by(employee_id=employee_id)).all()

    def insert(self, record: PayrollRecord) -> PayrollRecord:
        """
        Persist and commit one record, stamping ``generated_at`` server-side.
        The (employee_id, period_date) unique constraint turns a concurrent
        duplicate into ``Conflict``; the failed insert is rolled back.
        """
        record.generated_at = self.clock()
        db.session.add(record)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if UNIQUE_PERIOD_CONSTRAINT in str(e.orig) or "UNIQUE" in str(e.orig).upper():
                log.warning("duplicate payroll insert rejected employee=%s period=%s",
                            record.employee_id, record.period_date)
                raise Conflict(DUPLICATE_PERIOD_REASON)
            raise
        except Exception:
            db.session.rollback()
            raise
        return record

    def delete(self, record_id: int) -> bool:
        deleted = PayrollRecord.query.filter_by(id=record_id).delete()
        db.session.commit()
        return deleted > 0
