from __future__ import annotations

from flask import Blueprint, request, current_app

from payroll_api.common import validation
from payroll_api.common.auth import ROLE_ADMIN, ROLE_EMPLOYEE, requires_roles, current_user_id, is_admin
from payroll_api.common.http import ok, fail
from payroll_api.common.paging import page_limit, paginate_list
from payroll_api.models.payroll_record import PayrollRecord
from payroll_api.services.payroll_generation import PayrollGenerationService
from payroll_api.services.repositories import EmployeeRepository

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")


def _service() -> PayrollGenerationService:
    return PayrollGenerationService()


def _row(r: PayrollRecord):
    emp = r.employee
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "employee_name": emp.full_name if emp else None,
        "doc_number": emp.doc_number if emp else None,
        "period_date": r.period_date.isoformat() if r.period_date else None,
        "details": r.details or [],
        "total_accrued": str(r.total_accrued),
        "total_deducted": str(r.total_deducted),
        "net_pay": str(r.net_pay),
        "observations": r.observations,
        "generated_at": r.generated_at.isoformat() if r.generated_at else None,
    }


def _json_body():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


def _own_employee_id():
    """Employee id linked to the caller, or None."""
    uid = current_user_id()
    emp = EmployeeRepository().get_by_user_id(uid) if uid else None
    return emp.id if emp else None


@bp.get("")
@requires_roles(ROLE_EMPLOYEE)
def list_payroll():
    if is_admin():
        employee_id = validation.positive_int(request.args.get("employee_id"), "employee_id", required=False)
    else:
        # employees only ever see their own payslips
        employee_id = _own_employee_id()
        if employee_id is None:
            return fail("No employee record is linked to this user", status=404, code="not_found")

    records = _service().list_records(employee_id)
    page, limit = page_limit()
    rows, meta = paginate_list(records, page, limit)
    return ok([_row(r) for r in rows], **meta)


@bp.get("/<int:record_id>")
@requires_roles(ROLE_EMPLOYEE)
def get_payroll(record_id: int):
    r = _service().get_record(record_id)
    if not is_admin() and r.employee_id != _own_employee_id():
        return fail("Access denied: not your payroll record", status=403, code="forbidden")
    return ok(_row(r))


@bp.post("")
@requires_roles(ROLE_ADMIN)
def generate_payroll():
    data = _json_body()
    r = _service().generate_for_employee(
        data.get("employee_id"),
        data.get("period_date"),
        transport_subsidy_override=validation.tri_state(data.get("transport_subsidy"), "transport_subsidy"),
        observations=data.get("observations"),
    )
    return ok(_row(r), status=201)


@bp.post("/generate-all")
@requires_roles(ROLE_ADMIN)
def generate_all():
    data = _json_body()
    report = _service().generate_for_all_active(
        data.get("period_date"),
        transport_subsidy_override=validation.tri_state(data.get("transport_subsidy"), "transport_subsidy"),
        observations=data.get("observations"),
    )
    if report.failures:
        current_app.logger.warning("generate-all %s: %d of %d failed",
                                   report.period_date, len(report.failures), report.total)
    return ok(report.to_dict(), status=201)


@bp.delete("/<int:record_id>")
@requires_roles(ROLE_ADMIN)
def delete_payroll(record_id: int):
    _service().delete_record(record_id)
    current_app.logger.info("payroll record %s deleted by user %s", record_id, current_user_id())
    return ok({"id": record_id, "deleted": True})
