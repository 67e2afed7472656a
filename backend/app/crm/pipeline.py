"""Forward-only pipeline status transitions."""
from __future__ import annotations

from typing import Optional, Union

from backend.app.contracts import PIPELINE_ORDER, TERMINAL_STATUSES, CompanyStatus

StatusLike = Union[CompanyStatus, str, None]


def _coerce(value: StatusLike) -> Optional[CompanyStatus]:
    if value is None or value == "":
        return None
    try:
        return CompanyStatus(value)
    except ValueError:
        return None


def advance_status(current: StatusLike, requested: StatusLike) -> CompanyStatus:
    """Return the status a company should hold after ``requested`` is applied.

    Closed and declined companies never move. ``declined`` is accepted from
    any other stage; otherwise only moves further along the pipeline take
    effect and backward or unknown requests leave the status unchanged.
    """

    current_status = _coerce(current) or CompanyStatus.RESEARCH
    requested_status = _coerce(requested)
    if requested_status is None or current_status in TERMINAL_STATUSES:
        return current_status
    if requested_status == CompanyStatus.DECLINED:
        return requested_status
    if PIPELINE_ORDER.index(requested_status) > PIPELINE_ORDER.index(current_status):
        return requested_status
    return current_status


__all__ = ["advance_status"]
