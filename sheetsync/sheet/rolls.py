"""
Roll Queries: dice-roll formulas and query prompts shown by the sheet

Pure functions over field values and a translator. Output uses the
host's roll template syntax: ``@{field}`` references, ``?{question|a|b}``
queries and ``[[...]]`` inline rolls. Closing braces inside a query
option are written as the HTML entity so they do not end the query.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Protocol

from sheetsync.sheet.schema import SheetSchema

Translate = Callable[[str], str]

BRACE = "&" + "#125" + ";"
DOUBLE_BRACE = BRACE + BRACE
OPEN_TEMPLATE = "{{"
NAME_DICE = "roll=[[{@{name_die}[@{name_translated}]"


class FieldValues(Protocol):
    def get(self, name: str, default: Any = None) -> Any: ...


def bool_to_flag(value: Any) -> str:
    """Checkbox value of a truthy/falsy Python value."""
    return "1" if value else "0"


def is_checked(values: FieldValues, field: str) -> bool:
    return values.get(field) == "1"


def roll_query(t: Translate, question: str, options: Iterable[Any]) -> str:
    """``?{<translated question>|opt|opt}``"""
    joined = "|".join(str(option) for option in options)
    return f"?{{{t(question)}|{joined}}}"


def _epithet_option(t: Translate, label: str, dice: str = "") -> str:
    return (
        f"{label},epithet={label}{DOUBLE_BRACE} {OPEN_TEMPLATE}"
        f"{NAME_DICE} + {dice}@{{epithet_die}}[{t('epithet')}]"
    )


def epithet_query(values: FieldValues, schema: SheetSchema, t: Translate) -> str:
    """
    Query choosing which epithets add dice to a name roll.

    A second epithet (and both together, for two epithet dice) is
    offered only when the extra epithet boon is checked.
    """
    options = [
        f"{t('none')},{NAME_DICE}",
        _epithet_option(t, "@{epithet}"),
    ]
    if is_checked(values, schema.extra_epithet_field):
        both = f"@{{epithet}} {t('and')} @{{epithet_2}}"
        options += [
            _epithet_option(t, "@{epithet_2}"),
            _epithet_option(t, both, dice="2"),
        ]
    return roll_query(t, "epithet_dice_query", options)


def domain_queries(
    values: FieldValues,
    schema: SheetSchema,
    t: Translate,
) -> dict[str, str]:
    """
    Per-domain query for spending pathos on one extra domain, plus the
    domain's translated label.

    Each query offers every other domain; the pathos boon doubles the
    extra domain's dice.
    """
    multiplier = "2" if is_checked(values, schema.pathos_two_dice_field) else ""
    fields: dict[str, str] = {}
    for domain in schema.domains:
        entries = [f"{t('no')}, "] + [
            f"{t(other)}, + {multiplier}@{{{other}_die}}[{t(other)}]"
            for other in schema.domains
            if other != domain
        ]
        fields[f"{domain}_extra_domain_query"] = roll_query(
            t, "add_domain_spend_pathos", entries,
        )
        fields[f"{domain}_translated"] = t(domain)
    return fields


def static_labels(schema: SheetSchema, t: Translate) -> dict[str, str]:
    """Labels and single-option queries that depend only on translations."""
    fields = {target: t(key) for target, key in schema.label_fields}
    fields.update(
        (target, roll_query(t, question, [0]))
        for target, question in schema.query_fields
    )
    return dict(sorted(fields.items()))


def all_labels(values: FieldValues, schema: SheetSchema, t: Translate) -> Mapping[str, str]:
    """Every computed label and query of the sheet."""
    fields = static_labels(schema, t)
    fields[schema.epithet_query_field] = epithet_query(values, schema, t)
    fields.update(domain_queries(values, schema, t))
    return fields
