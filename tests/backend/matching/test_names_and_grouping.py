"""Tests for company name normalization and duplicate grouping."""
from __future__ import annotations

from backend.app.matching import duplicate_clusters, group_duplicates, names_match, normalize_name


def test_normalize_name_trims_and_lowercases() -> None:
    assert normalize_name("  Palo Alto Networks ") == "palo alto networks"
    assert normalize_name(None) == ""
    assert normalize_name("   ") == ""


def test_normalize_name_is_idempotent() -> None:
    for raw in ["  Check Point ", "WIX", "", "AppsFlyer\t"]:
        once = normalize_name(raw)
        assert normalize_name(once) == once


def test_names_match_by_containment_in_either_direction() -> None:
    assert names_match("Check Point", "check point software technologies")
    assert names_match("Intel Israel", " intel ")
    assert not names_match("Wix", "Fortinet")


def test_names_match_is_symmetric() -> None:
    names = ["Check Point", "check point software technologies", "Intel Israel", " intel ", "Wix", "", None]
    for left in names:
        for right in names:
            assert names_match(left, right) == names_match(right, left)


def test_group_duplicates_partitions_every_record_in_input_order() -> None:
    companies = [
        {"id": "1", "name": "Sygnia"},
        {"id": "2", "name": "Wix"},
        {"id": "3", "name": " sygnia "},
        {"id": "4", "name": None},
        {"id": "5", "name": ""},
        {"id": "6", "name": "SYGNIA"},
    ]

    groups = group_duplicates(companies)

    assert list(groups) == ["sygnia", "wix", ""]
    assert [record["id"] for record in groups["sygnia"]] == ["1", "3", "6"]
    assert [record["id"] for record in groups[""]] == ["4", "5"]
    assert sum(len(members) for members in groups.values()) == len(companies)
    for key, members in groups.items():
        assert all(normalize_name(member.get("name")) == key for member in members)


def test_duplicate_clusters_skip_singletons_and_unnamed_records() -> None:
    groups = group_duplicates(
        [
            {"id": "1", "name": "Mitiga"},
            {"id": "2", "name": "mitiga"},
            {"id": "3", "name": "Descope"},
            {"id": "4", "name": ""},
            {"id": "5"},
        ]
    )

    clusters = duplicate_clusters(groups)

    assert [[record["id"] for record in cluster] for cluster in clusters] == [["1", "2"]]


def test_group_duplicates_does_not_mutate_input() -> None:
    original = {"id": "1", "name": "Rescana"}
    groups = group_duplicates([original])
    groups["rescana"][0]["name"] = "changed"
    assert original["name"] == "Rescana"
