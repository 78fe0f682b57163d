from __future__ import annotations

import pytest

from hquant.domain.model import CandidateRecord, Composicao, Insumo, PriceEntry, ReviewDecision
from hquant.domain.review import (
    ComposicaoFactory,
    InsumoFactory,
    StagingCollection,
    commit_staged,
    next_composition_code,
)
from tests.helpers.catalog import T1, candidate, make_composicao, make_insumo, snapshot_of


def _staged(*pairs: tuple[ReviewDecision, CandidateRecord]) -> StagingCollection:
    drafts = [draft for _, draft in pairs]
    decisions = [decision for decision, _ in pairs]
    return StagingCollection(drafts, decisions)


def test_new_decision_creates_record_with_single_entry() -> None:
    staged = _staged((ReviewDecision.new("temp-0"), candidate(0, "Cimento CP II", value=1.30)))

    merged, result = commit_staged({}, staged, factory=InsumoFactory(), now=T1)

    assert len(result.added) == 1
    record = result.added[0]
    assert isinstance(record, Insumo)
    assert merged == {record.id: record}
    assert record.id != "temp-0"
    assert (record.name, record.unit, record.value) == ("Cimento CP II", "kg", 1.30)
    assert record.history == (PriceEntry(at=T1, value=1.30),)


def test_update_appends_exactly_one_entry() -> None:
    existing = make_insumo(value=1.10, annotation="old note", brand="Votoran")
    before = existing.history
    staged = _staged(
        (
            ReviewDecision.update("temp-0", existing.id),
            candidate(0, "Cimento", value=1.30, unit="sc", annotation="new note"),
        )
    )

    merged, result = commit_staged({existing.id: existing}, staged, factory=InsumoFactory(), now=T1)

    updated = merged[existing.id]
    assert result.updated == [updated]
    assert len(updated.history) == len(before) + 1
    assert updated.history[: len(before)] == before
    assert updated.history[-1] == PriceEntry(at=T1, value=1.30)
    assert updated.value == 1.30
    assert updated.annotation == "new note"
    assert updated.unit == "kg"
    assert updated.name == existing.name


def test_commit_does_not_mutate_input_catalog() -> None:
    existing = make_insumo(value=1.10)
    records = {existing.id: existing}
    before = snapshot_of(records.values())
    staged = _staged(
        (ReviewDecision.update("temp-0", existing.id), candidate(0, value=2.0)),
        (ReviewDecision.new("temp-1"), candidate(1, "Areia")),
    )

    commit_staged(records, staged, factory=InsumoFactory(), now=T1)

    assert snapshot_of(records.values()) == before
    assert len(existing.history) == 1


def test_update_of_missing_target_is_dropped_and_counted() -> None:
    staged = _staged((ReviewDecision.update("temp-0", "db-gone"), candidate(0)))

    merged, result = commit_staged({}, staged, factory=InsumoFactory(), now=T1)

    assert merged == {}
    assert result.dropped == ["temp-0"]
    assert "dropped" in result.summary()


def test_invalid_new_drafts_are_rejected_and_reported() -> None:
    staged = _staged(
        (ReviewDecision.new("temp-0"), candidate(0, name="  ")),
        (ReviewDecision.new("temp-1"), candidate(1, "Sem preco", value=None)),
        (ReviewDecision.new("temp-2"), candidate(2, "Negativo", value=-1.0)),
        (ReviewDecision.new("temp-3"), candidate(3, "Valido", value=3.0)),
    )

    merged, result = commit_staged({}, staged, factory=InsumoFactory(), now=T1)

    assert [(r.candidate_id, r.reason) for r in result.rejected] == [
        ("temp-0", "missing name"),
        ("temp-1", "missing value"),
        ("temp-2", "negative value"),
    ]
    assert [record.name for record in merged.values()] == ["Valido"]
    assert "3 record(s) rejected" in result.summary()


def test_update_without_name_is_accepted() -> None:
    existing = make_insumo(value=1.0)
    staged = _staged((ReviewDecision.update("temp-0", existing.id), candidate(0, name=None)))

    merged, result = commit_staged({existing.id: existing}, staged, factory=InsumoFactory())

    assert result.rejected == []
    assert merged[existing.id].value == 1.30


def test_two_updates_of_same_target_append_two_entries() -> None:
    existing = make_insumo(value=1.0)
    staged = _staged(
        (ReviewDecision.update("temp-0", existing.id), candidate(0, value=2.0)),
        (ReviewDecision.update("temp-1", existing.id), candidate(1, value=3.0)),
    )

    merged, result = commit_staged({existing.id: existing}, staged, factory=InsumoFactory())

    assert [entry.value for entry in merged[existing.id].history] == [1.0, 2.0, 3.0]
    assert len(result.updated) == 1


def test_empty_staging_changes_nothing() -> None:
    existing = make_insumo()
    records = {existing.id: existing}

    merged, result = commit_staged(records, StagingCollection([], []), factory=InsumoFactory())

    assert merged == records
    assert result.is_empty
    assert (len(result.added), len(result.updated)) == (0, 0)


def test_composition_codes_follow_group_sequence() -> None:
    existing = [
        make_composicao(codigo="PISOS-CONTRAPISO-01", grupo="PISOS", subgrupo="CONTRAPISO"),
        make_composicao(codigo="PISOS-CONTRAPISO-07", grupo="PISOS", subgrupo="CONTRAPISO"),
        make_composicao(codigo="ALVENARIA-VEDACAO-12", grupo="ALVENARIA", subgrupo="VEDACAO"),
    ]
    records = {record.id: record for record in existing}
    staged = _staged(
        (
            ReviewDecision.new("temp-0"),
            candidate(0, "Contrapiso 5cm", value=60.0, group="PISOS", subgroup="CONTRAPISO"),
        ),
        (ReviewDecision.new("temp-1"), candidate(1, "Limpeza final", value=5.0)),
        (ReviewDecision.new("temp-2"), candidate(2, "Limpeza grossa", value=4.0)),
    )

    _, result = commit_staged(records, staged, factory=ComposicaoFactory(), now=T1)

    added = result.added
    assert all(isinstance(record, Composicao) for record in added)
    assert [record.codigo for record in added] == [
        "PISOS-CONTRAPISO-08",
        "GERAL-GERAL-01",
        "GERAL-GERAL-02",
    ]
    assert next_composition_code(existing, "NOVO", "GRUPO") == "NOVO-GRUPO-01"


def test_factories_refuse_drafts_without_a_value() -> None:
    draft = candidate(0, value=None)

    with pytest.raises(ValueError, match="temp-0"):
        InsumoFactory().build(draft, at=T1, existing={})
    with pytest.raises(ValueError, match="temp-0"):
        ComposicaoFactory().build(draft, at=T1, existing={})
    with pytest.raises(ValueError, match="temp-0"):
        InsumoFactory().apply_update(make_insumo(), draft, at=T1)
