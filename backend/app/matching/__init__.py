"""Company deduplication, record merging and roster matching."""
from backend.app.matching.contacts import (
    dedupe_by_name,
    email_domain_connection,
    merge_alumni_connections,
    merge_decision_makers,
)
from backend.app.matching.grouping import duplicate_clusters, group_duplicates
from backend.app.matching.merge import MergePlan, merge_cluster
from backend.app.matching.names import names_match, normalize_name
from backend.app.matching.public import match_public_symbol
from backend.app.matching.sponsors import (
    SponsorTag,
    find_missing_sponsors,
    load_roster,
    tag_sponsor_years,
)

__all__ = [
    "MergePlan",
    "SponsorTag",
    "dedupe_by_name",
    "duplicate_clusters",
    "email_domain_connection",
    "find_missing_sponsors",
    "group_duplicates",
    "load_roster",
    "match_public_symbol",
    "merge_alumni_connections",
    "merge_cluster",
    "merge_decision_makers",
    "names_match",
    "normalize_name",
    "tag_sponsor_years",
]
