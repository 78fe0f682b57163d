from __future__ import annotations

import asyncio

import pytest

from hquant.domain.catalog import Catalog
from hquant.domain.errors import (
    AdapterError,
    ImportAbortedError,
    InvalidInputError,
    InvalidTransitionError,
    MalformedResponseError,
)
from hquant.domain.model import Insumo, MatchResult
from hquant.domain.review import NOTHING_TO_IMPORT, ImportSession, InsumoFactory, ReviewState
from tests.helpers.catalog import (
    T1,
    FakeExtractor,
    FakeMatcher,
    FakeReviser,
    candidate,
    make_insumo,
    snapshot_of,
)


def _session(
    records: list[Insumo],
    extractor: FakeExtractor,
    matcher: FakeMatcher | None = None,
    *,
    min_score: int = 0,
) -> ImportSession[Insumo]:
    catalog = Catalog(InsumoFactory(), records)
    return ImportSession(
        catalog,
        extractor=extractor,
        matcher=matcher or FakeMatcher(),
        reviser=FakeReviser(),
        min_score=min_score,
    )


def test_new_insumo_is_committed_with_single_history_entry() -> None:
    session = _session([], FakeExtractor([candidate(0, "Cimento CP II", value=1.30)]))

    state = asyncio.run(session.load("Cimento CP II;kg;1.30"))
    assert state is ReviewState.COMMITTING
    result = session.commit(now=T1)

    assert session.state is ReviewState.DONE
    assert len(session.catalog) == 1
    record = session.catalog.records[0]
    assert (record.name, record.unit, record.value) == ("Cimento CP II", "kg", 1.30)
    assert len(record.history) == 1
    assert result.added == [record]
    assert session.notices == ["1 record(s) added, 0 record(s) updated"]


def test_matcher_is_skipped_for_an_empty_catalog() -> None:
    matcher = FakeMatcher([MatchResult(candidate_id="temp-0", existing_id="db-1", score=99)])
    session = _session([], FakeExtractor([candidate(0)]), matcher)

    asyncio.run(session.load("Cimento CP II;kg;1.30"))

    assert matcher.calls == 0
    assert session.state is ReviewState.COMMITTING


def test_confirmed_merge_appends_one_history_entry() -> None:
    existing = make_insumo("Cimento Portland CP-II 50kg", value=1.10)
    matcher = FakeMatcher([MatchResult(candidate_id="temp-0", existing_id=existing.id, score=92)])
    session = _session([existing], FakeExtractor([candidate(0, value=1.30)]), matcher)

    assert asyncio.run(session.load("Cimento CP II;kg;1.30")) is ReviewState.AWAITING_USER_DECISION
    pending = session.pending
    assert pending is not None
    assert pending.score == 92
    assert pending.existing.id == existing.id

    assert session.confirm_merge() is ReviewState.COMMITTING
    session.commit(now=T1)

    updated = session.catalog.get(existing.id)
    assert [entry.value for entry in updated.history] == [1.10, 1.30]
    assert updated.value == 1.30
    assert len(session.catalog) == 1


def test_add_as_new_keeps_existing_record_untouched() -> None:
    existing = make_insumo(value=1.10)
    matcher = FakeMatcher([MatchResult(candidate_id="temp-0", existing_id=existing.id, score=80)])
    session = _session([existing], FakeExtractor([candidate(0, "Cimento CP IV")]), matcher)

    asyncio.run(session.load("Cimento CP IV;kg;1.30"))
    session.add_as_new()
    session.commit(now=T1)

    assert len(session.catalog) == 2
    assert session.catalog.get(existing.id).history == existing.history


@pytest.mark.parametrize("staged", [False, True])
def test_cancel_leaves_catalog_unchanged(staged: bool) -> None:
    existing = make_insumo(value=1.10)
    before = snapshot_of([existing])
    matcher = FakeMatcher([MatchResult(candidate_id="temp-1", existing_id=existing.id, score=92)])
    drafts = [candidate(0, "Areia"), candidate(1, value=1.30)]
    session = _session([existing], FakeExtractor(drafts), matcher)

    asyncio.run(session.load("Areia;m3;120\nCimento;kg;1.30"))
    if staged:
        session.confirm_merge()
        assert session.state is ReviewState.COMMITTING

    assert session.cancel() is ReviewState.CANCELLED
    assert snapshot_of(session.catalog.records) == before
    assert session.staged == ()
    assert "import cancelled" in session.notices
    with pytest.raises(InvalidTransitionError):
        session.commit()


def test_blank_input_is_rejected_without_calling_the_extractor() -> None:
    extractor = FakeExtractor([candidate(0)])
    session = _session([], extractor)

    with pytest.raises(InvalidInputError):
        asyncio.run(session.load("   \n"))

    assert extractor.calls == []
    assert session.state is ReviewState.IDLE


def test_invalid_input_alert_aborts_and_returns_to_idle() -> None:
    alert = candidate(0, name=None, value=None, annotation="Alerta: texto não reconhecido")
    session = _session([make_insumo()], FakeExtractor([alert]))

    with pytest.raises(InvalidInputError, match="Alerta"):
        asyncio.run(session.load("bom dia"))

    assert session.state is ReviewState.IDLE
    assert session.candidates == ()


@pytest.mark.parametrize(
    "error",
    [
        AdapterError("gemini unavailable", operation="extract_insumos", status_code=503),
        MalformedResponseError("not json", operation="extract_insumos", raw="oops"),
    ],
)
def test_adapter_failures_abort_the_import(error: Exception) -> None:
    session = _session([make_insumo()], FakeExtractor(error=error))

    with pytest.raises(ImportAbortedError) as excinfo:
        asyncio.run(session.load("Cimento CP II;kg;1.30"))

    assert excinfo.value.cause is error
    assert session.state is ReviewState.IDLE
    assert session.staged == ()


def test_matcher_failure_aborts_the_import() -> None:
    error = AdapterError("timeout", operation="match_insumos")
    session = _session([make_insumo()], FakeExtractor([candidate(0)]), FakeMatcher(error=error))

    with pytest.raises(ImportAbortedError):
        asyncio.run(session.load("Cimento CP II;kg;1.30"))

    assert session.state is ReviewState.IDLE


def test_unexpected_failure_leaves_the_session_loadable() -> None:
    extractor = FakeExtractor([candidate(0)])
    matcher = FakeMatcher(error=OverflowError("cannot convert float infinity to integer"))
    session = _session([make_insumo()], extractor, matcher)

    with pytest.raises(OverflowError):
        asyncio.run(session.load("Cimento CP II;kg;1.30"))
    assert session.state is ReviewState.IDLE

    matcher.error = None
    assert asyncio.run(session.load("Cimento CP II;kg;1.30")) is ReviewState.COMMITTING
    assert len(extractor.calls) == 2


def test_empty_batch_reports_nothing_to_import() -> None:
    session = _session([make_insumo()], FakeExtractor([]))

    assert asyncio.run(session.load("Cimento")) is ReviewState.DONE

    assert session.notices == [NOTHING_TO_IMPORT]
    assert len(session.catalog) == 1


def test_weak_and_unknown_matches_are_ignored() -> None:
    existing = make_insumo()
    matcher = FakeMatcher(
        [
            MatchResult(candidate_id="temp-0", existing_id=existing.id, score=40),
            MatchResult(candidate_id="temp-7", existing_id=existing.id, score=99),
        ]
    )
    session = _session([existing], FakeExtractor([candidate(0)]), matcher, min_score=60)

    assert asyncio.run(session.load("Cimento CP II;kg;1.30")) is ReviewState.COMMITTING
    assert [item.decision.is_update for item in session.staged] == [False]


def test_missing_candidate_ids_are_assigned_in_input_order() -> None:
    drafts = [candidate(0, "Areia"), candidate(0, "Brita")]
    session = _session([], FakeExtractor(drafts))

    asyncio.run(session.load("Areia\nBrita"))

    assert [c.id for c in session.candidates] == ["temp-0", "temp-1"]


def test_staged_drafts_can_be_edited_and_revised_before_commit() -> None:
    session = _session([], FakeExtractor([candidate(0, "Cimento"), candidate(1, "Areia")]))
    asyncio.run(session.load("Cimento;kg;1.30\nAreia;m3;120"))

    session.staging.edit("temp-0", name="Cimento CP II")
    asyncio.run(session.revise("temp-1", "value=130"))
    session.staging.discard("temp-0")
    result = session.commit(now=T1)

    assert [(r.name, r.value) for r in result.added] == [("Areia", 130.0)]


def test_actions_outside_their_state_raise() -> None:
    session = _session([], FakeExtractor([candidate(0)]))

    with pytest.raises(InvalidTransitionError):
        session.confirm_merge()
    with pytest.raises(InvalidTransitionError):
        session.cancel()
    with pytest.raises(InvalidTransitionError):
        _ = session.staging

    asyncio.run(session.load("Cimento CP II;kg;1.30"))
    with pytest.raises(InvalidTransitionError):
        asyncio.run(session.load("outra lista"))


def test_session_can_load_again_after_commit() -> None:
    session = _session([], FakeExtractor([candidate(0)]))
    asyncio.run(session.load("Cimento CP II;kg;1.30"))
    session.commit(now=T1)

    assert asyncio.run(session.load("Cimento CP II;kg;1.30")) is ReviewState.COMMITTING
    assert session.notices == []
