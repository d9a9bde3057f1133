"""
Unit Tests: Group Resolution, Sessions, Rows and Diff Finalize

Tests:
    - Completion barrier
    - Section resolution completeness for 0, 1 and many rows
    - Write-through reads and name forms
    - Reserved section-name writes
    - Row id uniqueness under a colliding generator
    - Minimal write-back at finalize
    - Host failures abort without a partial write
"""

import asyncio
import gc

import pytest

from sheetsync.core.config import SessionConfig
from sheetsync.core.errors import (
    DuplicateRowError,
    ErrorCode,
    SectionWriteError,
    SessionClosedError,
    StorageError,
    SyncError,
)
from sheetsync.core.types import Err, SectionSpec
from sheetsync.session import (
    CompletionBarrier,
    GroupResolver,
    SyncSession,
    compute_write_set,
    merge_sections,
    open_session,
    sync_attrs,
)
from sheetsync.storage import InMemoryHostStore


def run(coro):
    return asyncio.run(coro)


def seeded_host(scripted_ids, **values) -> InMemoryHostStore:
    return InMemoryHostStore(initial=values, id_factory=scripted_ids())


def bond_rows(*row_ids: str) -> dict:
    values = {}
    for index, row_id in enumerate(row_ids):
        values[f"repeating_bonds_{row_id}_autogen"] = "1"
        values[f"repeating_bonds_{row_id}_bond"] = f"bond {index}"
    return values


class TestCompletionBarrier:
    """Tests for CompletionBarrier."""

    def test_releases_after_all_parties(self):
        """wait() returns only after every party arrived."""

        async def scenario():
            barrier = CompletionBarrier(parties=3)
            order = []

            async def party(name):
                await asyncio.sleep(0)
                order.append(name)
                barrier.arrive()

            tasks = [asyncio.create_task(party(n)) for n in ("a", "b")]
            barrier.arrive()
            await barrier.wait()
            await asyncio.gather(*tasks)
            return order, barrier

        order, barrier = run(scenario())
        assert sorted(order) == ["a", "b"]
        assert barrier.remaining == 0
        assert barrier.is_released

    def test_over_arrival_is_an_error(self):
        async def scenario():
            barrier = CompletionBarrier(parties=1)
            barrier.arrive()
            with pytest.raises(RuntimeError):
                barrier.arrive()

        run(scenario())

    def test_needs_a_party(self):
        with pytest.raises(ValueError):
            CompletionBarrier(parties=0)


class TestGroupResolver:
    """Tests for GroupResolver."""

    def test_no_sections(self, scripted_ids):
        """Flat fields only: keys are the fields, deduplicated in order."""
        host = seeded_host(scripted_ids)
        resolved = run(GroupResolver(host).resolve(["x", "y", "x"])).unwrap()
        assert resolved.keys == ("x", "y")
        assert resolved.row_ids == {}

    @pytest.mark.parametrize("row_count", [0, 1, 5])
    def test_members_times_rows(self, scripted_ids, row_count):
        """Each section contributes members x rows keys, none when empty."""
        row_ids = [f"-r{i}" for i in range(row_count)]
        host = seeded_host(scripted_ids, **bond_rows(*row_ids))
        spec = SectionSpec.of("bonds", "autogen", "bond")

        resolved = run(GroupResolver(host).resolve(["name"], [spec])).unwrap()

        assert resolved.row_ids == {"bonds": row_ids}
        assert resolved.section_key_count("bonds") == 2 * row_count
        assert resolved.keys[0] == "name"
        assert len(resolved.keys) == 1 + 2 * row_count

    def test_many_sections(self, scripted_ids):
        """Several sections resolve independently."""
        values = bond_rows("-a", "-b")
        values["repeating_gear_-g_item"] = "rope"
        host = seeded_host(scripted_ids, **values)

        resolved = run(GroupResolver(host).resolve([], [
            SectionSpec.of("bonds", "bond"),
            SectionSpec.of("gear", "item"),
            SectionSpec.of("empty", "thing"),
        ])).unwrap()

        assert resolved.row_ids == {"bonds": ["-a", "-b"], "gear": ["-g"], "empty": []}
        assert resolved.keys == (
            "repeating_bonds_-a_bond",
            "repeating_bonds_-b_bond",
            "repeating_gear_-g_item",
        )
        assert host.stats.list_calls == 3

    def test_listing_failure_aborts_before_read(self, scripted_ids):
        """A failed listing returns Err and no read is issued."""
        host = seeded_host(scripted_ids, **bond_rows("-a"))
        host.fail_next("list")

        result = run(SyncSession.open(host, ["x"], [SectionSpec.of("bonds", "bond")]))

        assert result.is_err()
        assert result.error.code == ErrorCode.SESSION_HOST_FAILURE
        assert host.stats.read_calls == 0

    def test_every_listing_is_retrieved(self):
        """A raising listing propagates even when an earlier section failed."""

        class BrokenListing(InMemoryHostStore):
            async def list_group_member_ids(self, section):
                await asyncio.sleep(0)
                if section == "gear":
                    raise RuntimeError("host crashed")
                return Err(StorageError.list_failed(section))

        async def scenario():
            reported = []
            asyncio.get_running_loop().set_exception_handler(
                lambda loop, context: reported.append(context["message"])
            )
            with pytest.raises(RuntimeError):
                await GroupResolver(BrokenListing()).resolve([], [
                    SectionSpec.of("bonds", "bond"),
                    SectionSpec.of("gear", "item"),
                ])
            gc.collect()
            return reported

        assert run(scenario()) == []

    def test_merge_sections(self):
        merged = merge_sections([
            SectionSpec.of("bonds", "a", "b"),
            SectionSpec.of("repeating_bonds", "b", "c"),
        ])
        assert merged == [SectionSpec.of("bonds", "a", "b", "c")]


class TestSyncSession:
    """Tests for session get/set."""

    def _open(self, host, fields=(), sections=(), config=None):
        return run(SyncSession.open(host, fields, sections, config)).unwrap()

    def test_single_read(self, scripted_ids):
        """Opening performs exactly one batched read."""
        host = seeded_host(scripted_ids, x="5", **bond_rows("-a"))
        session = self._open(host, ["x"], [SectionSpec.of("bonds", "bond")])

        assert host.stats.read_calls == 1
        assert session.get("x") == "5"
        assert session.get("bonds.0.bond") == "bond 0"

    def test_undeclared_reads_are_none(self, scripted_ids):
        """Keys not declared at open are not visible."""
        host = seeded_host(scripted_ids, x="5", y="2")
        session = self._open(host, ["x"])
        assert session.get("y") is None
        assert session.get("y", "default") == "default"

    def test_write_through(self, scripted_ids):
        """A value set earlier in the session is what later reads return."""
        host = seeded_host(scripted_ids, x="5")
        session = self._open(host, ["x"])

        session.set("x", 7)
        assert session.get("x") == "7"
        assert session.view["x"] == "7"
        assert host.stats.read_calls == 1

    def test_section_name_write_rejected(self, scripted_ids):
        """Assigning to a section name fails immediately."""
        host = seeded_host(scripted_ids)
        session = self._open(host, [], [SectionSpec.of("bonds", "bond")])

        with pytest.raises(SectionWriteError):
            session.set("bonds", "x")
        with pytest.raises(SectionWriteError):
            session.view["repeating_bonds"] = "x"
        assert session.buffer == {}

    def test_undeclared_section_name_write_rejected(self, scripted_ids):
        """A bare repeating_ name is never a scalar field."""
        host = seeded_host(scripted_ids)
        session = self._open(host, [])
        with pytest.raises(SectionWriteError):
            session.set("repeating_gear", "x")

    def test_name_forms(self, scripted_ids):
        """Path and rendered-key forms address the same row member."""
        host = seeded_host(scripted_ids, **bond_rows("-a"))
        session = self._open(host, [], [SectionSpec.of("bonds", "bond")])

        session.set("bonds.0.bond", "first")
        assert session.get("repeating_bonds_-a_bond") == "first"

        session.set("repeating_bonds_-a_bond", "second")
        assert session.view["bonds"][0]["bond"] == "second"
        assert session.buffer == {"repeating_bonds_-a_bond": "second"}

    def test_path_out_of_range(self, scripted_ids):
        host = seeded_host(scripted_ids)
        session = self._open(host, [], [SectionSpec.of("bonds", "bond")])
        assert session.get("bonds.3.bond") is None
        with pytest.raises(IndexError):
            session.set("bonds.3.bond", "x")

    def test_view_helpers(self, scripted_ids):
        host = seeded_host(scripted_ids, x="5")
        view, session = run(open_session(host, ["x", "y"])).unwrap()

        assert "x" in view
        assert "y" not in view
        view.update({"y": 9, "z": None})
        assert session.get("y") == "9"
        assert session.get("z") == ""

    def test_section_lookup(self, scripted_ids):
        host = seeded_host(scripted_ids)
        session = self._open(host, [], [SectionSpec.of("bonds")])
        assert session.section("repeating_bonds") is session.view.section("bonds")
        with pytest.raises(KeyError):
            session.section("gear")


class TestRowCollection:
    """Tests for row views and id minting."""

    def _open(self, host, *sections, config=None):
        return run(SyncSession.open(host, [], list(sections), config)).unwrap()

    def test_host_order_and_handles(self, scripted_ids):
        """Existing rows appear in host order with read-only ids."""
        host = seeded_host(scripted_ids, **bond_rows("-b", "-a"))
        bonds = self._open(host, SectionSpec.of("bonds", "bond")).section("bonds")

        assert bonds.ids == ("-b", "-a")
        assert [row["bond"] for row in bonds] == ["bond 0", "bond 1"]
        with pytest.raises(AttributeError):
            bonds[0].id = "-x"

    def test_append_is_visible_and_writable(self, scripted_ids):
        """Appended rows are immediately visible and writable."""
        host = seeded_host(scripted_ids)
        session = self._open(host, SectionSpec.of("bonds", "autogen"))
        bonds = session.section("bonds")

        row = bonds.append()
        row["autogen"] = 1

        assert len(bonds) == 1
        assert bonds[0] == row
        assert row["autogen"] == "1"
        assert session.buffer == {row.key("autogen"): "1"}

    def test_ids_unique_under_colliding_generator(self, scripted_ids):
        """A generator repeating itself never yields a duplicate row id."""
        ids = scripted_ids(["-dup", "-dup", "-dup", "-two", "-dup", "-two", "-three"])
        host = InMemoryHostStore(id_factory=ids)
        bonds = self._open(host, SectionSpec.of("bonds")).section("bonds")

        minted = [bonds.append().id for _ in range(3)]

        assert minted == ["-dup", "-two", "-three"]
        assert ids.calls == 7

    def test_existing_ids_are_never_minted(self, scripted_ids):
        """Ids already present in the host count as used."""
        ids = scripted_ids(["-a", "-new"])
        host = InMemoryHostStore(initial=bond_rows("-a"), id_factory=ids)
        bonds = self._open(host, SectionSpec.of("bonds", "bond")).section("bonds")

        assert bonds.append().id == "-new"

    def test_generator_ids_with_separator_are_skipped(self, scripted_ids):
        host = InMemoryHostStore(id_factory=scripted_ids(["bad_id", "-ok"]))
        bonds = self._open(host, SectionSpec.of("bonds")).section("bonds")
        assert bonds.append().id == "-ok"

    def test_id_exhaustion(self, scripted_ids):
        """A generator that never yields a new id gives up after the cap."""
        host = InMemoryHostStore(id_factory=lambda: "-same")
        session = self._open(
            host, SectionSpec.of("bonds"), config=SessionConfig(max_id_attempts=5),
        )
        bonds = session.section("bonds")
        bonds.append()

        with pytest.raises(SyncError) as info:
            bonds.append()
        assert info.value.code == ErrorCode.SESSION_ID_EXHAUSTED

    def test_explicit_duplicate_id(self, scripted_ids):
        """An explicit id already in the section is rejected."""
        host = seeded_host(scripted_ids, **bond_rows("-a"))
        bonds = self._open(host, SectionSpec.of("bonds", "bond")).section("bonds")

        with pytest.raises(DuplicateRowError):
            bonds.append("-a")
        assert bonds.append("-b").id == "-b"

    def test_extend_records(self, scripted_ids):
        """Bulk seeding writes every member of every record, in order."""
        host = seeded_host(scripted_ids)
        session = self._open(host, SectionSpec.of("bonds"))

        rows = session.section("bonds").extend_records([
            {"bond": "first", "autogen": 0},
            {"bond": "second"},
        ])

        assert [row["bond"] for row in rows] == ["first", "second"]
        assert rows[0]["autogen"] == "0"
        assert len(session.buffer) == 3


class TestDiffFinalize:
    """Tests for finalize."""

    def test_compute_write_set(self):
        """Only differing or absent keys are written."""
        buffer = {"x": "5", "y": "9", "z": "1"}
        assert compute_write_set(buffer, {"x": "5", "y": "2"}) == {"y": "9", "z": "1"}

    def test_minimal_write_back(self, scripted_ids):
        """x stays 5 and y goes 2 -> 9: only y is written."""
        host = seeded_host(scripted_ids, x="5", y="2")

        def handler(view, session):
            view["x"] = "5"
            view["y"] = 9

        report = run(sync_attrs(host, ["x", "y"], handler)).unwrap()

        assert report.written == {"y": "9"}
        assert report.unchanged == ("x",)
        assert host.write_log == [{"y": "9"}]

    def test_diff_against_fresh_read(self, scripted_ids):
        """Finalize compares with the host value at finalize, not at open."""
        host = seeded_host(scripted_ids, x="1")

        async def handler(view, session):
            await host.write({"x": "2"}, silent=True)
            view["x"] = "2"

        report = run(sync_attrs(host, ["x"], handler)).unwrap()
        assert report.written == {}

    def test_single_silent_write(self, scripted_ids):
        """Finalize writes once and fires no change events."""
        host = seeded_host(scripted_ids)
        seen = []
        host.subscribe("change:x change:y", seen.append)

        run(sync_attrs(host, [], lambda view, s: view.update({"x": 1, "y": 2})))

        assert host.stats.write_calls == 1
        assert seen == []

    def test_non_silent_config(self, scripted_ids):
        host = seeded_host(scripted_ids)
        seen = []
        host.subscribe("change:x", seen.append)
        config = SessionConfig(silent_writes=False)

        run(sync_attrs(host, [], lambda view, s: view.update({"x": 1}), config=config))
        assert len(seen) == 1

    def test_empty_write_skipped_when_configured(self, scripted_ids):
        host = seeded_host(scripted_ids, x="5")
        config = SessionConfig(skip_empty_writes=True)
        run(sync_attrs(host, ["x"], lambda view, s: view.update({"x": 5}), config=config))
        assert host.stats.write_calls == 0

    def test_on_complete_receives_report(self, scripted_ids):
        host = seeded_host(scripted_ids)
        reports = []

        async def on_complete(report):
            reports.append(report)

        run(sync_attrs(host, [], lambda view, s: view.update({"x": 1}), on_complete=on_complete))
        assert reports[0].written == {"x": "1"}

    def test_closed_session(self, scripted_ids):
        """Sets and a second finalize after finalize are programming errors."""
        host = seeded_host(scripted_ids)

        async def scenario():
            session = (await SyncSession.open(host, ["x"])).unwrap()
            await session.finalize()
            with pytest.raises(SessionClosedError):
                session.set("x", 1)
            with pytest.raises(SessionClosedError):
                await session.finalize()

        run(scenario())

    def test_finalize_read_failure_writes_nothing(self, scripted_ids):
        """A failed re-read aborts the session without a write."""
        host = seeded_host(scripted_ids)

        def handler(view, session):
            view["x"] = 1
            host.fail_next("read")

        result = run(sync_attrs(host, [], handler))

        assert result.is_err()
        assert result.error.context["stage"] == "finalize read"
        assert host.stats.write_calls == 0

    def test_finalize_write_failure(self, scripted_ids):
        host = seeded_host(scripted_ids)

        def handler(view, session):
            view["x"] = 1
            host.fail_next("write")

        result = run(sync_attrs(host, [], handler))
        assert result.is_err()
        assert host.value("x") is None

    def test_handler_exception_writes_nothing(self, scripted_ids):
        """If the handler raises, nothing is written and the error propagates."""
        host = seeded_host(scripted_ids)

        def handler(view, session):
            view["x"] = 1
            raise ValueError("bad formula")

        with pytest.raises(ValueError):
            run(sync_attrs(host, [], handler))
        assert host.stats.write_calls == 0

    def test_new_rows_are_persisted(self, scripted_ids):
        """Rows appended in a session are listed by the host afterwards."""
        host = seeded_host(scripted_ids)

        def handler(view, session):
            view.section("bonds").extend_records([{"autogen": "1"}] * 3)

        run(sync_attrs(host, [], handler, sections=[SectionSpec.of("bonds", "autogen")]))

        row_ids = run(host.list_group_member_ids("bonds")).unwrap()
        assert len(set(row_ids)) == 3
