"""Decision-maker and alumni-connection list merging."""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

Contact = Dict[str, Any]

EMAIL_DOMAIN_CONNECTION_TYPE = "Email domain match"
EMAIL_DOMAIN_CONNECTION_NOTES = "Potential connection based on email domain"
DEFAULT_CONNECTION_TYPE = "LinkedIn Connection"


def _contact_key(contact: Mapping[str, Any]) -> str:
    name = contact.get("name")
    if not name:
        return ""
    return str(name).strip().lower()


def dedupe_by_name(contacts: Iterable[Mapping[str, Any]]) -> List[Contact]:
    """Drop contacts whose lower-cased name was already seen; first one wins.

    Contacts without a name are kept as they are.
    """

    seen = set()
    unique: List[Contact] = []
    for contact in contacts:
        key = _contact_key(contact)
        if key and key in seen:
            continue
        if key:
            seen.add(key)
        unique.append(dict(contact))
    return unique


def merge_decision_makers(
    existing: Optional[Sequence[Mapping[str, Any]]],
    incoming: Optional[Sequence[Mapping[str, Any]]],
) -> List[Contact]:
    """Append incoming decision makers whose name is not already present.

    Existing entries are kept in order and untouched; names compare
    case-insensitively.
    """

    merged = [dict(contact) for contact in existing or []]
    known = {_contact_key(contact) for contact in merged}
    for contact in incoming or []:
        key = _contact_key(contact)
        if not key or key in known:
            continue
        known.add(key)
        merged.append(dict(contact))
    return merged


def format_connection_notes(candidate: Mapping[str, Any]) -> str:
    """Render the notes line stored for a discovered connection."""

    name = candidate.get("contact_name") or ""
    title = candidate.get("contact_title") or "Unknown role"
    strength = candidate.get("connection_strength") or "connection"
    extra = candidate.get("notes") or ""
    return f"{name} - {title} ({strength}). {extra}"


def merge_alumni_connections(
    existing: Optional[Sequence[Mapping[str, Any]]],
    candidates: Iterable[Mapping[str, Any]],
    team_member: Mapping[str, Any],
) -> List[Contact]:
    """Append one connection per candidate not yet mentioned in existing notes.

    A candidate counts as known when its ``contact_name`` appears inside the
    ``notes`` of any connection already on the list, including connections
    appended earlier in the same call. Candidates without a name are skipped.
    """

    merged = [dict(connection) for connection in existing or []]
    for candidate in candidates:
        contact_name = candidate.get("contact_name")
        if not contact_name:
            continue
        if any(contact_name in (connection.get("notes") or "") for connection in merged):
            continue
        merged.append(
            {
                "team_member_name": team_member.get("full_name"),
                "team_member_email": team_member.get("email"),
                "connection_type": candidate.get("connection_type") or DEFAULT_CONNECTION_TYPE,
                "notes": format_connection_notes(candidate),
            }
        )
    return merged


def _website_host(website: str) -> str:
    host = re.sub(r"^https?://", "", website.strip(), flags=re.IGNORECASE)
    host = re.sub(r"^www\.", "", host, flags=re.IGNORECASE)
    return host.split("/")[0].lower()


def email_domain_connection(
    user_email: Optional[str], website: Optional[str]
) -> Optional[Dict[str, str]]:
    """Return a heuristic connection when the email domain matches the website.

    The first label of the user's email domain (``acme`` for
    ``jo@acme.co.il``) must appear in the company's website host.
    """

    if not user_email or not website or "@" not in user_email:
        return None
    domain = user_email.split("@", 1)[1].strip().lower()
    label = domain.split(".")[0]
    host = _website_host(website)
    if not label or not host or label not in host:
        return None
    return {
        "connection_type": EMAIL_DOMAIN_CONNECTION_TYPE,
        "notes": EMAIL_DOMAIN_CONNECTION_NOTES,
    }


__all__ = [
    "DEFAULT_CONNECTION_TYPE",
    "EMAIL_DOMAIN_CONNECTION_NOTES",
    "EMAIL_DOMAIN_CONNECTION_TYPE",
    "dedupe_by_name",
    "email_domain_connection",
    "format_connection_notes",
    "merge_alumni_connections",
    "merge_decision_makers",
]
