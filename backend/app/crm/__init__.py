"""Company records, outreach logging and pipeline status rules."""
from backend.app.crm.pipeline import advance_status
from backend.app.crm.service import CompanyService

__all__ = ["CompanyService", "advance_status"]
