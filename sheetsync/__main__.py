#!/usr/bin/env python3
"""
sheetsync demo entry point

Registers the sheet workers against a host, opens the sheet, toggles a
boon, double-clicks the refresh button and drops a few rows, then
prints what reached the host.

Usage:
    python -m sheetsync

    # Against Redis instead of the in-memory host
    python -m sheetsync --redis
    SHEETSYNC_REDIS_HOST=redis.local SHEETSYNC_SHEET_ID=hero-1 python -m sheetsync --redis
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional

from sheetsync.core.config import SheetSyncConfig
from sheetsync.observability.logging import LogLevel, setup_logging
from sheetsync.sheet.workers import register_sheet_workers
from sheetsync.storage import InMemoryHostStore, TriggerEvent
from sheetsync.triggers.coordinator import TriggerCoordinator

DEMO_TRANSLATIONS = {
    "advantage_bond_support": "Advantage from bond support",
    "add_domain_spend_pathos": "Spend pathos for an extra domain?",
    "and": "and",
    "arts_oration": "Arts & Oration",
    "blood_valor": "Blood & Valor",
    "bonusdice_query": "Bonus dice",
    "craft_reason": "Craft & Reason",
    "divine_favor": "Divine favor",
    "epithet": "Epithet",
    "epithet_dice_query": "Use an epithet?",
    "name": "Name",
    "no": "No",
    "none": "None",
    "resolve_spirit": "Resolve & Spirit",
    "spend_divine_favor": "Spend divine favor",
    "target_number": "Target number",
}

DEMO_DROP = json.dumps({"rows": [
    {"bond": "Aster, who saved me at sea", "autogen": "0"},
    {"bond": "The oracle of the shrine", "autogen": "0"},
]})


async def demo(use_redis: bool) -> None:
    print("\n" + "=" * 60)
    print("sheetsync - Sheet Worker Demo")
    print("=" * 60 + "\n")

    config_result = SheetSyncConfig.from_env()
    if config_result.is_err():
        print(f"Configuration error: {config_result.error}")
        sys.exit(1)

    config = config_result.unwrap()

    validation = config.validate()
    if validation.is_err():
        print(f"Validation error: {validation.error}")
        sys.exit(1)

    setup_logging(
        LogLevel.from_name(config.observability.log_level),
        json_output=config.observability.log_json,
    )

    if use_redis:
        from sheetsync.storage.redis_store import RedisHostStore

        host = RedisHostStore(config.redis, translations=DEMO_TRANSLATIONS)
        connected = await host.connect()
        if connected.is_err():
            print(f"Redis error: {connected.error}")
            sys.exit(1)
        print(f"✓ Connected to Redis hash {config.redis.hash_key}")
    else:
        host = InMemoryHostStore(translations=DEMO_TRANSLATIONS, config=config.host)
        print("✓ In-memory host created")

    coordinator = TriggerCoordinator(host, config.triggers)
    registrations = register_sheet_workers(coordinator, config=config.session)
    print(f"✓ Registered {len(registrations)} handler(s)\n")

    await host.emit(TriggerEvent.opened())
    print("1. Sheet opened (first-time setup)")

    await host.emit(TriggerEvent.opened())
    print("2. Sheet opened again (setup skipped)")

    await _change(host, "boons_4_check_1", "1")
    print("3. Extra epithet boon checked")

    await host.emit(TriggerEvent.clicked("refresh_labels"))
    await host.emit(TriggerEvent.clicked("refresh_labels"))
    throttle = coordinator.throttle_for("refresh_labels")
    print(f"4. Refresh double-clicked: {throttle.stats.fired} run, "
          f"{throttle.stats.suppressed} suppressed")

    await host.emit(TriggerEvent.dropped(DEMO_DROP))
    print("5. Two bonds dropped onto the sheet")

    if isinstance(host, InMemoryHostStore):
        bonds = await host.list_group_member_ids("bonds")
        print(f"\n   bonds rows: {len(bonds.unwrap())}")
        print(f"   host writes: {host.stats.write_calls}")
        print(f"   epithet query: {host.value('epithet_and_name_query')}")
    else:
        await host.close()

    print("\n✓ Demo complete")
    print("=" * 60 + "\n")


async def _change(host, key: str, value: str) -> None:
    if isinstance(host, InMemoryHostStore):
        await host.apply_user_change(key, value)
        return

    # non-silent writes dispatch change events in-process
    written = await host.write({key: value})
    if written.is_err():
        print(f"   Error: {written.error}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="sheetsync", description=__doc__.splitlines()[1])
    parser.add_argument("--redis", action="store_true", help="use the Redis host")
    args = parser.parse_args(argv)

    try:
        asyncio.run(demo(args.redis))
    except KeyboardInterrupt:
        print("\nInterrupted")


if __name__ == "__main__":
    main()
