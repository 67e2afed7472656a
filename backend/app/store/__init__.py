"""Generic document store used for companies, outreach and knowledge documents."""
from backend.app.store.models import EntityBase, EntityRow
from backend.app.store.repository import EntityStore, Record

COMPANY = "Company"
OUTREACH = "Outreach"
KNOWLEDGE_DOCUMENT = "KnowledgeDocument"

__all__ = [
    "COMPANY",
    "OUTREACH",
    "KNOWLEDGE_DOCUMENT",
    "EntityBase",
    "EntityRow",
    "EntityStore",
    "Record",
]
