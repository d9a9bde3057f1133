"""
Sheet Schema: field names and default rows of one character sheet

Everything sheet-specific lives in one frozen SheetSchema passed into
the workers, so the engine itself carries no module-level tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sheetsync.core.types import SectionSpec


SHEET_VERSION = "1.0"

DOMAINS: tuple[str, ...] = (
    "arts_oration",
    "blood_valor",
    "craft_reason",
    "resolve_spirit",
)


@dataclass(frozen=True)
class DefaultRowSet:
    """Fixed-size list of identical rows seeded on first open."""
    section: str
    count: int
    values: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"Row count cannot be negative: {self.count}")

    @property
    def members(self) -> tuple[str, ...]:
        return tuple(member for member, _ in self.values)

    def records(self) -> list[dict[str, str]]:
        return [dict(self.values) for _ in range(self.count)]


@dataclass(frozen=True)
class SheetSchema:
    """
    Field layout of the sheet.

    Label fields map a target field to the translation key it shows;
    query fields map a target field to the translation key of the roll
    query question.
    """

    version: str = SHEET_VERSION
    version_field: str = "version"
    extra_epithet_field: str = "boons_4_check_1"
    pathos_two_dice_field: str = "boons_6_check_1"
    epithet_query_field: str = "epithet_and_name_query"
    domains: tuple[str, ...] = DOMAINS
    label_fields: tuple[tuple[str, str], ...] = (
        ("advantage_bond_support_translated", "advantage_bond_support"),
        ("divine_favor_translated", "divine_favor"),
        ("name_translated", "name"),
    )
    query_fields: tuple[tuple[str, str], ...] = (
        ("bonusdice_query", "bonusdice_query"),
        ("divine_favor_query", "spend_divine_favor"),
        ("target_query", "target_number"),
    )
    default_rows: tuple[DefaultRowSet, ...] = field(default_factory=lambda: (
        DefaultRowSet("bonds", 8, (("autogen", "1"),)),
    ))
    drop_section: str = "bonds"
    refresh_button: str = "refresh_labels"

    def default_sections(self) -> list[SectionSpec]:
        """Sections touched by first-time setup."""
        return [SectionSpec(rows.section, rows.members) for rows in self.default_rows]

    @property
    def toggle_fields(self) -> tuple[str, str]:
        return (self.extra_epithet_field, self.pathos_two_dice_field)
