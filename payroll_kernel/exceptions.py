"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll operators need to see *why* an employee was not paid, and batch
tooling needs to group failures without parsing message strings.  Every
error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, stable)
  3. Carries structured DATA (employee id, pay period id, dates)

Example - WRONG way to handle errors:
    try:
        orchestrator.process_one(employee_id, period_id)
    except Exception as e:
        if "not found" in str(e):   # FRAGILE
            ...

Example - RIGHT way:
    except EmployeeNotFoundError as e:
        report(code=e.code, employee=e.employee_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- InputNotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- PayPeriodNotFoundError
    |
    +-- PayPeriodError
    |   +-- InvalidPayPeriodError
    |
    +-- AttendanceError
    |   +-- DuplicateAttendanceDayError
    |
    +-- EligibilityError
    |   +-- IneligibleEmployeeError
    |
    +-- CalculationError
    |   +-- ProfileMismatchError
    |   +-- InvalidCompensationError
    |
    +-- RateTableError
        +-- RateTableNotFoundError
        +-- InvalidRateTableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|--------------------------------------
Input        | EMPLOYEE_NOT_FOUND        | Employee provider has no record
             | PAY_PERIOD_NOT_FOUND      | Pay period provider has no record
-------------|---------------------------|--------------------------------------
Period       | INVALID_PAY_PERIOD        | end_date earlier than start_date
-------------|---------------------------|--------------------------------------
Attendance   | DUPLICATE_ATTENDANCE_DAY  | Two rows for one employee/date
-------------|---------------------------|--------------------------------------
Eligibility  | INELIGIBLE_EMPLOYEE       | Inactive / not employed in period
-------------|---------------------------|--------------------------------------
Calculation  | PROFILE_MISMATCH          | Profile for a different employee
             | INVALID_COMPENSATION      | Negative salary or hourly rate
-------------|---------------------------|--------------------------------------
Rate table   | RATE_TABLE_NOT_FOUND      | No table for jurisdiction and date
             | INVALID_RATE_TABLE        | Table failed structural validation

===============================================================================
NOT ERRORS
===============================================================================

* Already-processed (employee, pay period) pairs are an idempotent success
  reported as ``OutcomeStatus.ALREADY_PROCESSED``.
* Malformed punches, malformed overtime intervals and negative net salary
  are ``CalculationAnomaly`` records attached to the result and logged at
  WARNING; they never abort a calculation.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Missing inputs


class InputNotFoundError(PayrollKernelError):
    """Base exception for missing collaborator data."""

    code: str = "INPUT_NOT_FOUND"


class EmployeeNotFoundError(InputNotFoundError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class PayPeriodNotFoundError(InputNotFoundError):
    """Pay period with given ID was not found."""

    code: str = "PAY_PERIOD_NOT_FOUND"

    def __init__(self, pay_period_id: str):
        self.pay_period_id = pay_period_id
        super().__init__(f"Pay period not found: {pay_period_id}")


# Pay period


class PayPeriodError(PayrollKernelError):
    """Base exception for pay-period errors."""

    code: str = "PAY_PERIOD_ERROR"


class InvalidPayPeriodError(PayPeriodError):
    """Pay period ends before it starts."""

    code: str = "INVALID_PAY_PERIOD"

    def __init__(self, pay_period_id: str, start_date: str, end_date: str):
        self.pay_period_id = pay_period_id
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Pay period {pay_period_id} is invalid: "
            f"end date {end_date} is before start date {start_date}"
        )


# Attendance


class AttendanceError(PayrollKernelError):
    """Base exception for attendance data errors."""

    code: str = "ATTENDANCE_ERROR"


class DuplicateAttendanceDayError(AttendanceError):
    """More than one attendance row for the same calendar day."""

    code: str = "DUPLICATE_ATTENDANCE_DAY"

    def __init__(self, work_date: str, employee_id: str | None = None):
        self.work_date = work_date
        self.employee_id = employee_id
        who = f" for employee {employee_id}" if employee_id else ""
        super().__init__(f"Duplicate attendance rows on {work_date}{who}")


# Eligibility


class EligibilityError(PayrollKernelError):
    """Base exception for payroll eligibility failures."""

    code: str = "ELIGIBILITY_ERROR"


class IneligibleEmployeeError(EligibilityError):
    """Employee is not eligible for payroll in the requested period."""

    code: str = "INELIGIBLE_EMPLOYEE"

    def __init__(self, employee_id: str, pay_period_id: str, reason: str):
        self.employee_id = employee_id
        self.pay_period_id = pay_period_id
        self.reason = reason
        super().__init__(
            f"Employee {employee_id} is not eligible for pay period "
            f"{pay_period_id}: {reason}"
        )


# Calculation


class CalculationError(PayrollKernelError):
    """Base exception for calculation input errors."""

    code: str = "CALCULATION_ERROR"


class ProfileMismatchError(CalculationError):
    """Compensation profile does not belong to the employee being calculated."""

    code: str = "PROFILE_MISMATCH"

    def __init__(self, expected_employee_id: str, profile_employee_id: str):
        self.expected_employee_id = expected_employee_id
        self.profile_employee_id = profile_employee_id
        super().__init__(
            f"Compensation profile belongs to {profile_employee_id}, "
            f"expected {expected_employee_id}"
        )


class InvalidCompensationError(CalculationError):
    """Employee record carries a compensation amount that cannot be paid."""

    code: str = "INVALID_COMPENSATION"

    def __init__(self, employee_id: str, field_name: str, value: str):
        self.employee_id = employee_id
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Employee {employee_id} has invalid {field_name}: {value}"
        )


# Rate tables


class RateTableError(PayrollKernelError):
    """Base exception for rate-table configuration errors."""

    code: str = "RATE_TABLE_ERROR"


class RateTableNotFoundError(RateTableError):
    """No rate table covers the requested jurisdiction and date."""

    code: str = "RATE_TABLE_NOT_FOUND"

    def __init__(self, jurisdiction: str, as_of_date: str):
        self.jurisdiction = jurisdiction
        self.as_of_date = as_of_date
        super().__init__(
            f"No rate table for jurisdiction '{jurisdiction}' "
            f"effective on {as_of_date}"
        )


class InvalidRateTableError(RateTableError):
    """Rate table failed structural validation."""

    code: str = "INVALID_RATE_TABLE"

    def __init__(self, table_id: str, errors: list[str]):
        self.table_id = table_id
        self.errors = errors
        super().__init__(
            f"Rate table '{table_id}' is invalid:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
