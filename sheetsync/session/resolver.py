"""
Group Resolution: expand declared fields into the concrete key set to read

Repeatable sections hold a host-controlled number of rows, so the keys
of their members are unknown until each section's row ids are listed.
The resolver lists every declared section concurrently, joins the
listings on a CompletionBarrier, then expands members x rows.

Ordering:
    flat keys first (declaration order, duplicates dropped), then for
    each section in declaration order, each row in host order, each
    declared member.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from sheetsync.core.errors import StorageError, SyncError
from sheetsync.core.types import Result, Ok, Err, RowKey, SectionSpec
from sheetsync.session.barrier import CompletionBarrier
from sheetsync.storage.protocols import HostStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedKeys:
    """Keys to read plus the row ids each section currently holds."""
    keys: tuple[str, ...]
    row_ids: dict[str, list[str]] = field(default_factory=dict)

    def section_key_count(self, section: str) -> int:
        return sum(
            1 for key in self.keys
            if RowKey.parse(key, section) is not None
        )


def merge_sections(sections: Iterable[SectionSpec]) -> list[SectionSpec]:
    """
    Collapse repeated declarations of one section into a single spec
    whose members are the ordered union of every declaration.
    """
    merged: dict[str, dict[str, None]] = {}
    for spec in sections:
        members = merged.setdefault(spec.name, {})
        for member in spec.members:
            members.setdefault(member, None)
    return [SectionSpec(name, tuple(members)) for name, members in merged.items()]


class GroupResolver:
    """
    Resolves declared flat fields and sections against a host.

    Usage:
        resolver = GroupResolver(host)
        result = await resolver.resolve(["name"], [SectionSpec.of("bonds", "bond")])
    """

    __slots__ = ("_host",)

    def __init__(self, host: HostStore) -> None:
        self._host = host

    async def resolve(
        self,
        fields: Sequence[str],
        sections: Sequence[SectionSpec] = (),
    ) -> Result[ResolvedKeys, SyncError]:
        sections = merge_sections(sections)
        barrier = CompletionBarrier(parties=len(sections) + 1)

        async def list_section(spec: SectionSpec) -> Result[list[str], StorageError]:
            try:
                return await self._host.list_group_member_ids(spec.name)
            finally:
                barrier.arrive()

        tasks = [
            asyncio.create_task(list_section(spec), name=f"list:{spec.name}")
            for spec in sections
        ]
        # the resolver's own readiness is the final party
        barrier.arrive()
        await barrier.wait()

        # every task is retrieved before any failure is reported
        listings = await asyncio.gather(*tasks, return_exceptions=True)
        for spec, listing in zip(sections, listings):
            if isinstance(listing, BaseException):
                logger.error(f"Listing rows of '{spec.name}' raised: {listing!r}")
                raise listing

        row_ids: dict[str, list[str]] = {}
        for spec, listing in zip(sections, listings):
            if listing.is_err():
                logger.error(f"Listing rows of '{spec.name}' failed: {listing.error}")
                return Err(SyncError.host_failure("resolution", listing.error))
            row_ids[spec.name] = list(listing.value)

        keys: dict[str, None] = dict.fromkeys(fields)
        for spec in sections:
            for row_id in row_ids[spec.name]:
                for member in spec.members:
                    keys.setdefault(RowKey(spec.name, row_id, member).render(), None)

        logger.debug(
            f"Resolved {len(keys)} key(s) across {len(sections)} section(s)"
        )
        return Ok(ResolvedKeys(keys=tuple(keys), row_ids=row_ids))
