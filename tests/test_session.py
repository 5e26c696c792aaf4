"""Tests for the reconciliation session state machine."""
import asyncio
from datetime import date
import uuid

import pytest

from pantry.error_handlers import (
    InvalidTransitionError,
    NoItemsFoundError,
    NotAReceiptError,
    ResourceNotFoundError,
)
from pantry.schemas.product import ProductCreate
from pantry.schemas.resolution import ResolutionKind, ResolutionState
from pantry.schemas.scan import SessionStatus
from pantry.session import ReconciliationSession
from tests.conftest import FlakyInventory, make_candidate

PURCHASED = date(2024, 3, 1)


async def _started(rows, services) -> ReconciliationSession:
    session = ReconciliationSession.start(rows, services)
    await session.resolve_all()
    return session


class TestStart:
    """Tests for starting a session from OCR rows."""

    def test_lines_start_pending(self, receipt_rows, services):
        session = ReconciliationSession.start(receipt_rows, services)
        assert [line.text for line in session.lines] == ["AH Halfvolle Melk", "Bread"]
        assert all(s.kind == ResolutionKind.PENDING for s in session.states.values())
        assert session.status == SessionStatus.NEEDS_REVIEW

    def test_payment_slip_rejected(self, services):
        with pytest.raises(NotAReceiptError):
            ReconciliationSession.start(["=", "Bread", "KLANT KOPIE"], services)

    def test_no_items_rejected(self, services):
        with pytest.raises(NoItemsFoundError):
            ReconciliationSession.start(["Omschrijving", "Totaal 0,00"], services)

    def test_empty_session_status(self, services):
        assert ReconciliationSession([], services).status == SessionStatus.EMPTY


class TestResolve:
    """Tests for alias-based resolution."""

    @pytest.mark.asyncio
    async def test_unknown_without_alias(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        assert session.state(0) == ResolutionState.unknown()
        assert session.state(1) == ResolutionState.unknown()

    @pytest.mark.asyncio
    async def test_known_with_alias(self, receipt_rows, services, products, aliases):
        melk = await products.create(ProductCreate(name="Albert Heijn Halfvolle Melk"))
        await aliases.put_if_absent("AH Halfvolle Melk", melk.id)

        session = await _started(receipt_rows, services)

        assert session.state(0) == ResolutionState.known(melk.id)
        assert session.state(1).kind == ResolutionKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_resolve_is_idempotent(self, receipt_rows, services, products, aliases):
        melk = await products.create(ProductCreate(name="Albert Heijn Halfvolle Melk"))
        await aliases.put_if_absent("AH Halfvolle Melk", melk.id)
        session = await _started(receipt_rows, services)

        first = await session.resolve(0)
        second = await session.resolve(0)

        assert first == second == ResolutionState.known(melk.id)

    @pytest.mark.asyncio
    async def test_resolve_all_keeps_selection(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        cand = make_candidate("Jumbo Volkoren Brood")
        session.select(1, cand)

        await session.resolve_all()

        assert session.state(1) == ResolutionState.selected(cand)

    @pytest.mark.asyncio
    async def test_unknown_line(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        with pytest.raises(ResourceNotFoundError):
            session.state(42)


class TestSelect:
    """Tests for user selections."""

    @pytest.mark.asyncio
    async def test_search_ranks_candidates(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        candidates = await session.search(0)
        assert {c.title for c in candidates[:2]} == {"Albert Heijn Halfvolle Melk", "Jumbo Verse Halfvolle Melk 1L"}
        assert candidates[-1].title == "Campina Karnemelk 1L"

    @pytest.mark.asyncio
    async def test_free_text_search(self, receipt_rows, services, catalog):
        session = await _started(receipt_rows, services)
        await session.search("Bread")
        assert catalog.queries[-1] == "Bread"

    @pytest.mark.asyncio
    async def test_select_and_clear(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        cand = make_candidate("Albert Heijn Halfvolle Melk")

        assert session.select(0, cand) == ResolutionState.selected(cand)
        assert session.status == SessionStatus.NEEDS_REVIEW
        assert session.select(0, None) == ResolutionState.unknown()

    @pytest.mark.asyncio
    async def test_reselect_replaces_candidate(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Jumbo Verse Halfvolle Melk 1L"))
        other = make_candidate("Albert Heijn Halfvolle Melk")

        assert session.select(0, other).candidate == other

    @pytest.mark.asyncio
    async def test_known_line_cannot_be_selected(self, receipt_rows, services, products, aliases):
        melk = await products.create(ProductCreate(name="Albert Heijn Halfvolle Melk"))
        await aliases.put_if_absent("AH Halfvolle Melk", melk.id)
        session = await _started(receipt_rows, services)

        with pytest.raises(InvalidTransitionError):
            session.select(0, make_candidate("Something Else"))

    def test_pending_line_cannot_be_selected(self, receipt_rows, services):
        session = ReconciliationSession.start(receipt_rows, services)
        with pytest.raises(InvalidTransitionError):
            session.select(0, make_candidate("Brood"))

    @pytest.mark.asyncio
    async def test_manual_name(self, receipt_rows, services):
        session = await _started(receipt_rows, services)

        state = session.select_manual(1, "  Zelfgebakken Brood ")

        assert state.kind == ResolutionKind.SELECTED
        assert state.candidate.title == "Zelfgebakken Brood"
        assert state.candidate.external_id is None
        with pytest.raises(ValueError):
            session.select_manual(1, "   ")
        with pytest.raises(ValueError):
            session.select_manual(1, "X" * 501)

    @pytest.mark.asyncio
    async def test_all_lines_selected_is_ready(self, receipt_rows, services):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))
        session.select(1, make_candidate("Jumbo Volkoren Brood"))
        assert session.status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_auto_select_above_cutoff(self, services):
        session = await _started(["=", "Bread", "TOTAAL"], services)
        services.catalog.results["Bread"] = [make_candidate("Bread"), make_candidate("Pindakaas")]

        await session.auto_select(min_score=90)

        assert session.state(0).candidate.title == "Bread"

    @pytest.mark.asyncio
    async def test_auto_select_leaves_poor_matches(self, receipt_rows, services):
        session = await _started(receipt_rows, services)

        states = await session.auto_select(min_score=99.5)

        assert states[1].kind == ResolutionKind.UNKNOWN


class TestCommit:
    """Tests for committing a session."""

    @pytest.mark.asyncio
    async def test_selected_line_becomes_alias(self, receipt_rows, services, aliases, house_id):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))

        result = await session.commit(house_id, PURCHASED)

        product_id = result.succeeded[0].product_id
        assert await aliases.get("AH Halfvolle Melk") == product_id
        assert session.state(0) == ResolutionState.known(product_id)
        assert session.is_committed(0)

        fresh = await _started(receipt_rows, services)
        assert fresh.state(0) == ResolutionState.known(product_id)

    @pytest.mark.asyncio
    async def test_unknown_lines_are_skipped(self, receipt_rows, services, house_id, inventory_store):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))

        result = await session.commit(house_id, PURCHASED)

        assert [r.line.index for r in result.succeeded] == [0]
        assert not session.is_committed(1)
        assert session.status == SessionStatus.COMMITTED
        assert len(await inventory_store.list_for_house(house_id)) == 1

    @pytest.mark.asyncio
    async def test_second_commit_does_not_duplicate(self, receipt_rows, services, house_id, inventory_store):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))
        session.select(1, make_candidate("Jumbo Volkoren Brood"))

        await session.commit(house_id, PURCHASED)
        again = await session.commit(house_id, PURCHASED)

        assert again.succeeded == [] and again.failed == []
        assert len(await inventory_store.list_for_house(house_id)) == 2

    @pytest.mark.asyncio
    async def test_retry_after_partial_failure(self, receipt_rows, services, products, inventory_store, house_id):
        melk = await products.create(ProductCreate(name="Albert Heijn Halfvolle Melk"))
        flaky = FlakyInventory(inventory_store, failing=[melk.id])
        services.inventory = flaky
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))
        session.select(1, make_candidate("Jumbo Volkoren Brood"))

        first = await session.commit(house_id, PURCHASED)
        assert [r.line.index for r in first.failed] == [0]
        assert session.status == SessionStatus.READY

        flaky.failing.clear()
        second = await session.commit(house_id, PURCHASED)

        assert [r.line.index for r in second.succeeded] == [0]
        assert session.status == SessionStatus.COMMITTED
        assert len(await inventory_store.list_for_house(house_id)) == 2

    @pytest.mark.asyncio
    async def test_two_sessions_share_one_new_product(self, services, products, house_id):
        rows_a = ["=", "AH KARNEMELK", "TOTAAL"]
        rows_b = ["=", "JUMBO KARNEMELK 1L", "TOTAAL"]
        first = await _started(rows_a, services)
        second = await _started(rows_b, services)
        first.select(0, make_candidate("Campina Karnemelk"))
        second.select(0, make_candidate("campina  karnemelk"))

        a, b = await asyncio.gather(
            first.commit(house_id, PURCHASED),
            second.commit(uuid.uuid4(), PURCHASED),
        )

        assert a.succeeded[0].product_id == b.succeeded[0].product_id
        assert await products.find_by_name("Campina Karnemelk") is not None

    @pytest.mark.asyncio
    async def test_estimate_once_per_new_name(self, services, shelf_life, house_id):
        session = await _started(["=", "YOGHURT A", "YOGHURT B", "TOTAAL"], services)
        session.select(0, make_candidate("Griekse Yoghurt"))
        session.select(1, make_candidate("Griekse Yoghurt"))

        await session.commit(house_id, PURCHASED)

        assert shelf_life.calls["Griekse Yoghurt"] == 1

    @pytest.mark.asyncio
    async def test_selection_is_locked_while_committing(self, receipt_rows, services, house_id):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))
        session.select(1, make_candidate("Jumbo Volkoren Brood"))

        task = asyncio.ensure_future(session.commit(house_id, PURCHASED))
        while not session.committing and not task.done():
            await asyncio.sleep(0)
        with pytest.raises(InvalidTransitionError):
            session.select(1, None)
        with pytest.raises(InvalidTransitionError):
            session.select_manual(0, "Iets Anders")
        result = await task

        assert [r.line.index for r in result.succeeded] == [0, 1]
        assert result.failed == []
        assert not session.committing

    @pytest.mark.asyncio
    async def test_oversized_name_fails_only_its_line(self, receipt_rows, services, house_id):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))
        session.select(1, make_candidate("Volkoren Brood").model_copy(update={"title": "X" * 501}))

        result = await session.commit(house_id, PURCHASED)

        assert [r.line.index for r in result.succeeded] == [0]
        assert [r.line.index for r in result.failed] == [1]
        assert session.is_committed(0) and not session.is_committed(1)

    @pytest.mark.asyncio
    async def test_committed_line_cannot_be_reselected(self, receipt_rows, services, house_id):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))
        await session.commit(house_id, PURCHASED)

        with pytest.raises(InvalidTransitionError):
            session.select(0, make_candidate("Something Else"))


class TestCancel:
    """Tests for abandoning a session."""

    @pytest.mark.asyncio
    async def test_cancel_writes_nothing(self, receipt_rows, services, aliases, products, house_id):
        session = await _started(receipt_rows, services)
        session.select(0, make_candidate("Albert Heijn Halfvolle Melk"))

        session.cancel()

        assert session.cancelled
        assert await aliases.get("AH Halfvolle Melk") is None
        assert await products.find_by_name("Albert Heijn Halfvolle Melk") is None
        with pytest.raises(InvalidTransitionError):
            await session.commit(house_id, PURCHASED)
        with pytest.raises(InvalidTransitionError):
            session.select(1, make_candidate("Brood"))
