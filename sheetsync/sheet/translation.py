"""
Translation: localized labels with a visible placeholder on miss

A missing key never raises. The label shows
``TRANSLATION_KEY_UNDEFINED: <key>`` and a warning is logged once per
key, so the rest of the sheet keeps working.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from sheetsync.core import constants as C
from sheetsync.storage.protocols import TranslationLookup

logger = logging.getLogger(__name__)


def missing_translation(key: str) -> str:
    return f"{C.MISSING_TRANSLATION_PREFIX}: {key}"


class Translator:
    """
    Callable wrapper around a host translation lookup.

    Usage:
        t = Translator(host.translate)
        t("name")   # "Name", or "TRANSLATION_KEY_UNDEFINED: name"
    """

    __slots__ = ("_lookup", "_missing")

    def __init__(self, lookup: TranslationLookup) -> None:
        self._lookup = lookup
        self._missing: set[str] = set()

    @classmethod
    def from_table(cls, table: Mapping[str, str]) -> Translator:
        return cls(table.get)

    def __call__(self, key: str) -> str:
        value: Optional[str] = self._lookup(key)
        if value:
            return value
        if key not in self._missing:
            self._missing.add(key)
            logger.warning(f"No translation for key '{key}'")
        return missing_translation(key)

    @property
    def missing_keys(self) -> frozenset[str]:
        return frozenset(self._missing)
