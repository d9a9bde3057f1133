"""
Sheet module: the character sheet built on the synchronization engine.

- SheetSchema: field names, domains and default rows
- Translator: localized labels with placeholder on miss
- Roll query builders: epithet and domain queries, static labels
- Sheet workers: event handlers registered through a TriggerCoordinator
"""

from sheetsync.sheet.schema import DOMAINS, SHEET_VERSION, DefaultRowSet, SheetSchema
from sheetsync.sheet.translation import Translator, missing_translation
from sheetsync.sheet.rolls import (
    BRACE,
    DOUBLE_BRACE,
    all_labels,
    bool_to_flag,
    domain_queries,
    epithet_query,
    roll_query,
    static_labels,
)
from sheetsync.sheet.workers import (
    SheetWorkers,
    parse_drop_payload,
    register_sheet_workers,
    seed_default_rows,
)

__all__ = [
    "DOMAINS",
    "SHEET_VERSION",
    "DefaultRowSet",
    "SheetSchema",
    "Translator",
    "missing_translation",
    "BRACE",
    "DOUBLE_BRACE",
    "all_labels",
    "bool_to_flag",
    "domain_queries",
    "epithet_query",
    "roll_query",
    "static_labels",
    "SheetWorkers",
    "parse_drop_payload",
    "register_sheet_workers",
    "seed_default_rows",
]
