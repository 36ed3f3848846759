import warnings

from flask import current_app

from ..errors import DataIntegrityWarning, ValidationError
from ..models.candidate import BG_COMPLETED, BG_FAILED, BG_IN_PROGRESS, BG_PENDING, BG_REVIEW
from .ibr import Applicant, IBRClient
from .store import CandidateStore

# vendor code (any case) -> stored status
VENDOR_STATUS_MAP = {
    "pending": BG_IN_PROGRESS,
    "processing": BG_IN_PROGRESS,
    "in progress": BG_IN_PROGRESS,
    "complete": BG_COMPLETED,
    "completed": BG_COMPLETED,
    "pass": BG_COMPLETED,
    "passed": BG_COMPLETED,
    "fail": BG_FAILED,
    "failed": BG_FAILED,
    "cancelled": BG_FAILED,
    "review": BG_REVIEW,
    "review required": BG_REVIEW,
}

# stored statuses the reconciliation loop keeps polling
OPEN_STATUSES = (BG_PENDING, BG_IN_PROGRESS)


def map_vendor_status(code):
    """Map a vendor status code to a stored status.

    Unknown codes map to In Progress: never report a check as finished
    on a code we do not understand.
    """
    mapped = VENDOR_STATUS_MAP.get((code or "").strip().lower())
    if mapped is None:
        warnings.warn(f"unmapped background check status {code!r}, treating as {BG_IN_PROGRESS}",
                      DataIntegrityWarning, stacklevel=2)
        return BG_IN_PROGRESS
    return mapped


def vendor_passed(vendor_status):
    """Only an explicit Pass with no section that came back Fail counts as passed.

    A plain Complete finishes the check without clearing the candidate.
    """
    if (vendor_status.status or "").strip().lower() not in ("pass", "passed"):
        return False
    return "Fail" not in (vendor_status.extended or {}).values()


def has_open_case(candidate):
    check = candidate.background_check or {}
    return bool(check.get("ibr_id")) and check.get("status") not in (BG_COMPLETED, BG_FAILED)


def initiate_background_check(candidate_id, applicant_fields, client=None, store=None):
    """Submit the candidate to the vendor and record the open case."""
    store = store or CandidateStore()
    candidate = store.get(candidate_id)
    if has_open_case(candidate):
        raise ValidationError(
            f"candidate already has an open background check ({candidate.background_check['ibr_id']})",
            field="ibr_id")

    info = candidate.personal_info or {}
    first = applicant_fields.get("first") or ""
    last = applicant_fields.get("last") or ""
    if not first or not last:
        # fall back to splitting the stored display name
        parts = (info.get("name") or "").split()
        first = first or (parts[0] if parts else "")
        last = last or (parts[-1] if parts else "")
    applicant = Applicant(
        client_id=candidate.id,
        first=first,
        last=last,
        middle=applicant_fields.get("middle"),
        ssn=applicant_fields.get("ssn") or "",
        dob=applicant_fields.get("dob"),
        email=info.get("email"),
        phone=info.get("phone"),
        address1=applicant_fields.get("address1") or "",
        address2=applicant_fields.get("address2"),
        city=applicant_fields.get("city") or "",
        state=applicant_fields.get("state") or "",
        zipcode=applicant_fields.get("zipcode") or "",
        gender=applicant_fields.get("gender"),
    )

    client = client or IBRClient.from_config()
    case_id = client.submit(applicant)
    current_app.logger.info('Background check submitted for %s, case %s', candidate_id, case_id)
    return store.update(candidate_id, {
        "background_check": {
            "initiated": True,
            "status": BG_PENDING,
            "ibr_id": case_id,
            "passed": None,
            "passed_at": None,
            "failed_at": None,
        }
    })
