"""Destination table classification for exported items.

Items share one key space; the key prefixes identify what an item is.
This module maps a (pk, sk) pair to its destination table, or to None
when the item is not migrated.
"""

from __future__ import annotations

from typing import Callable, Iterable

from core.constants import KEY_SEPARATOR

SortKeyRule = Callable[[list[str]], str | None]


def _fixed(table_name: str) -> SortKeyRule:
    return lambda _sk_parts: table_name


def _assessment_table(sk_parts: list[str]) -> str | None:
    # patient#<id> / assessment#<kind>#...#result
    if sk_parts[-1] != "result":
        return None
    return f"assessment_{sk_parts[1]}_results"


def _rule_collection_table(sk_parts: list[str]) -> str | None:
    return "rulecollection_state" if sk_parts[-1] == "state" else None


_TABLE_RULES: dict[tuple[str, str], SortKeyRule] = {
    ("patient", "appointment"): _fixed("appointments"),
    ("patient", "assessment"): _assessment_table,
    ("patient", "journey"): _fixed("journeys"),
    ("userProfile", "patientGoalsDef"): _fixed("patientgoalsdefs"),
    ("userProfile", "patient"): _fixed("patients"),
    ("userProfile", "userProfile"): _fixed("userprofiles"),
    ("ruleCollection", "ruleCollection"): _rule_collection_table,
}


def classify_table(pk: str, sk: str) -> str | None:
    """Return the destination table for an item key.

    Args:
        pk: Partition key, ``<type>#<id>``.
        sk: Sort key, ``<type>#<sub-type>#...#<suffix>``.

    Returns:
        Table name, or None when the item should be omitted.
    """
    pk_prefix = pk.split(KEY_SEPARATOR)[0]
    sk_parts = sk.split(KEY_SEPARATOR)
    rule = _TABLE_RULES.get((pk_prefix, sk_parts[0]))
    if rule is None:
        return None
    return rule(sk_parts)


def is_table_selected(
    table_name: str,
    include_tables: Iterable[str],
    exclude_tables: Iterable[str],
) -> bool:
    """Return whether a classified table passes the run's table filter.

    Args:
        table_name: Classified table name.
        include_tables: Allow-list; empty means every table.
        exclude_tables: Deny-list, applied after the allow-list.

    Returns:
        True when records for the table should be loaded.
    """
    include_set = set(include_tables)
    if include_set and table_name not in include_set:
        return False
    return table_name not in set(exclude_tables)
