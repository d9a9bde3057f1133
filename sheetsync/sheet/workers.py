"""
Sheet Workers: the character sheet's event handlers

Handlers registered by register_sheet_workers:
- extra epithet boon changed   -> rebuild the epithet/name roll query
- pathos boon changed          -> rebuild per-domain extra-dice queries
- sheet opened                 -> first-time setup, then every label
- refresh button (throttled)   -> every label
- structured drop              -> import rows into the drop section

Every handler is one sync_attrs session: one read, one diffed write.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from sheetsync.core.config import SessionConfig
from sheetsync.core.errors import DropImportError, SyncError
from sheetsync.core.types import Result, SectionSpec, coerce_value
from sheetsync.session.finalizer import WriteReport
from sheetsync.session.session import AttributeView, SyncSession, sync_attrs
from sheetsync.sheet.rolls import all_labels, domain_queries, epithet_query
from sheetsync.sheet.schema import SheetSchema
from sheetsync.sheet.translation import Translator
from sheetsync.storage.protocols import HostStore, TriggerEvent
from sheetsync.triggers.coordinator import Registration, TriggerCoordinator

logger = logging.getLogger(__name__)


# =============================================================================
# DROP PAYLOADS
# =============================================================================
def parse_drop_payload(payload: Optional[str]) -> list[dict[str, str]]:
    """
    Parse dropped JSON into row records.

    Accepts a list of objects or ``{"rows": [...]}``. Values are coerced
    to strings.

    Raises:
        DropImportError: payload is not JSON of either shape
    """
    if not payload:
        raise DropImportError.malformed("empty payload", payload or "")

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise DropImportError.malformed("invalid JSON", payload, cause=e) from e

    if isinstance(data, dict):
        data = data.get("rows")
    if not isinstance(data, list):
        raise DropImportError.malformed("expected a list of rows", payload)

    records = []
    for index, record in enumerate(data):
        if not isinstance(record, dict):
            raise DropImportError.malformed(f"row {index} is not an object", payload)
        records.append({str(member): coerce_value(value) for member, value in record.items()})
    return records


# =============================================================================
# SETUP
# =============================================================================
def seed_default_rows(view: AttributeView, schema: SheetSchema) -> int:
    """Append every default row set. Returns the number of rows created."""
    created = 0
    for rows in schema.default_rows:
        created += len(view.section(rows.section).extend_records(rows.records()))
    return created


class SheetWorkers:
    """
    Handlers of one sheet bound to a host, schema and translator.

    Usage:
        workers = SheetWorkers(host, SheetSchema(), Translator(host.translate))
        await workers.on_opened(TriggerEvent.opened())
    """

    __slots__ = ("_host", "_schema", "_t", "_config")

    def __init__(
        self,
        host: HostStore,
        schema: SheetSchema,
        translator: Translator,
        config: Optional[SessionConfig] = None,
    ) -> None:
        self._host = host
        self._schema = schema
        self._t = translator
        self._config = config

    async def on_extra_epithet(self, event: TriggerEvent) -> Result[WriteReport, SyncError]:
        def update(view: AttributeView, session: SyncSession) -> None:
            view[self._schema.epithet_query_field] = epithet_query(view, self._schema, self._t)

        return await sync_attrs(
            self._host, [self._schema.extra_epithet_field], update, config=self._config,
        )

    async def on_pathos_two_dice(self, event: TriggerEvent) -> Result[WriteReport, SyncError]:
        def update(view: AttributeView, session: SyncSession) -> None:
            view.update(domain_queries(view, self._schema, self._t))

        return await sync_attrs(
            self._host, [self._schema.pathos_two_dice_field], update, config=self._config,
        )

    async def on_opened(self, event: TriggerEvent) -> Result[WriteReport, SyncError]:
        schema = self._schema

        def update(view: AttributeView, session: SyncSession) -> None:
            if not view.get(schema.version_field):
                created = seed_default_rows(view, schema)
                logger.info(f"First-time setup created {created} default row(s)")
            view[schema.version_field] = schema.version
            view.update(all_labels(view, schema, self._t))

        return await sync_attrs(
            self._host,
            [*schema.toggle_fields, schema.version_field],
            update,
            sections=schema.default_sections(),
            config=self._config,
        )

    async def on_refresh(self, event: TriggerEvent) -> Result[WriteReport, SyncError]:
        def update(view: AttributeView, session: SyncSession) -> None:
            view.update(all_labels(view, self._schema, self._t))

        return await sync_attrs(
            self._host, list(self._schema.toggle_fields), update, config=self._config,
        )

    async def on_drop(self, event: TriggerEvent) -> Result[WriteReport, SyncError]:
        try:
            records = parse_drop_payload(event.payload)
        except DropImportError as e:
            logger.warning(f"Ignoring dropped data: {e}")
            records = []

        def update(view: AttributeView, session: SyncSession) -> None:
            view.section(self._schema.drop_section).extend_records(records)

        return await sync_attrs(
            self._host,
            [],
            update,
            sections=[SectionSpec(self._schema.drop_section)],
            config=self._config,
        )


def register_sheet_workers(
    coordinator: TriggerCoordinator,
    schema: Optional[SheetSchema] = None,
    translator: Optional[Translator] = None,
    config: Optional[SessionConfig] = None,
) -> list[Registration]:
    """Attach every sheet handler to the coordinator's host."""
    schema = schema or SheetSchema()
    translator = translator or Translator(coordinator.host.translate)
    workers = SheetWorkers(coordinator.host, schema, translator, config)

    return [
        coordinator.on_field_change(
            schema.pathos_two_dice_field,
            workers.on_pathos_two_dice,
            "Handle giving two dice for extra domain",
        ),
        coordinator.on_field_change(
            schema.extra_epithet_field,
            workers.on_extra_epithet,
            "Handle adding or removing an extra epithet",
        ),
        coordinator.on_open(workers.on_opened, "Set up labels and queries"),
        coordinator.on_button(
            schema.refresh_button, workers.on_refresh, "Refresh labels and queries",
        ),
        coordinator.on_drop(workers.on_drop, "Import dropped rows"),
    ]
