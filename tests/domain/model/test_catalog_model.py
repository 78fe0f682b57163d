from __future__ import annotations

import pytest

from hquant.domain.model import (
    Composicao,
    DecisionKind,
    Insumo,
    InsumoTipo,
    MatchResult,
    PriceEntry,
    ReviewDecision,
    assign_temp_ids,
    best_matches,
)
from tests.helpers.catalog import T0, T1, candidate, make_composicao, make_insumo


def test_create_writes_exactly_one_history_entry() -> None:
    insumo = make_insumo(value=1.30)

    assert insumo.history == (PriceEntry(at=T0, value=1.30),)
    assert insumo.value == 1.30
    assert insumo.updated_at == T0


def test_record_value_appends_and_keeps_prior_entries() -> None:
    insumo = make_insumo(value=1.30)
    before = insumo.history

    insumo.record_value(1.45, at=T1)

    assert insumo.history[: len(before)] == before
    assert insumo.history[-1] == PriceEntry(at=T1, value=1.45)
    assert insumo.value == 1.45


def test_history_property_is_a_copy() -> None:
    insumo = make_insumo()

    history = insumo.history
    insumo.record_value(2.0, at=T1)

    assert len(history) == 1
    assert len(insumo.history) == 2


def test_record_requires_name_and_history() -> None:
    with pytest.raises(ValueError, match="name"):
        make_insumo(name="  ")
    with pytest.raises(ValueError, match="history"):
        Insumo.restore(history=[], name="Areia")


def test_restore_keeps_identity_and_history() -> None:
    history = [PriceEntry(at=T0, value=10.0), PriceEntry(at=T1, value=12.0)]

    insumo = Insumo.restore(history=history, id="db-1", name="Areia media", unit="m3")

    assert insumo.id == "db-1"
    assert insumo.value == 12.0
    assert insumo.history == tuple(history)


def test_search_matches_name_classification_and_brand() -> None:
    insumo = make_insumo("Argamassa AC-III", tipo=InsumoTipo.MATERIAL, brand="Quartzolit")

    assert insumo.matches("argamassa")
    assert insumo.matches("MATERIAL")
    assert insumo.matches("quartz")
    assert insumo.matches("")
    assert not insumo.matches("pedreiro")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, InsumoTipo.MATERIAL),
        ("Material", InsumoTipo.MATERIAL),
        ("Mão de Obra", InsumoTipo.MAO_OBRA),
        ("maoobra", InsumoTipo.MAO_OBRA),
        ("Equipamentos", InsumoTipo.EQUIPAMENTO),
        ("something else", InsumoTipo.MATERIAL),
    ],
)
def test_insumo_tipo_parse_is_lenient(raw: str | None, expected: InsumoTipo) -> None:
    assert InsumoTipo.parse(raw) is expected


def test_composition_classification_and_code_sequence() -> None:
    composicao = make_composicao(
        codigo="PISOS-CONTRAPISO-07",
        grupo="PISOS",
        subgrupo="CONTRAPISO",
        details={"premissas": {"escopo": "Contrapiso com argamassa pronta"}},
    )

    assert isinstance(composicao, Composicao)
    assert composicao.classification == "PISOS/CONTRAPISO"
    assert composicao.code_sequence() == 7
    assert composicao.escopo == "Contrapiso com argamassa pronta"
    assert make_composicao(codigo="").code_sequence() == 0


def test_invalid_input_alert_requires_missing_name() -> None:
    alert = candidate(name=None, value=None, annotation="Alerta: texto não reconhecido")
    named = candidate(annotation="Alerta: revisar unidade")

    assert alert.is_invalid_input_alert
    assert not named.is_invalid_input_alert
    assert not candidate(name=None, annotation="sem nome").is_invalid_input_alert


def test_assign_temp_ids_in_input_order() -> None:
    drafts = assign_temp_ids([candidate(5), candidate(5), candidate(9)])

    assert [draft.id for draft in drafts] == ["temp-0", "temp-1", "temp-2"]


def test_match_result_score_range() -> None:
    with pytest.raises(ValueError, match="0..100"):
        MatchResult(candidate_id="temp-0", existing_id="db-1", score=101)


def test_best_matches_prefers_highest_then_first_seen() -> None:
    matches = [
        MatchResult(candidate_id="temp-0", existing_id="db-1", score=70),
        MatchResult(candidate_id="temp-0", existing_id="db-2", score=92),
        MatchResult(candidate_id="temp-0", existing_id="db-3", score=92),
        MatchResult(candidate_id="temp-1", existing_id="db-4", score=10),
    ]

    best = best_matches(matches)

    assert best["temp-0"].existing_id == "db-2"
    assert best["temp-1"].existing_id == "db-4"


def test_review_decision_shapes() -> None:
    assert ReviewDecision.new("temp-0").kind is DecisionKind.NEW
    update = ReviewDecision.update("temp-0", "db-1")
    assert update.is_update
    assert update.target_id == "db-1"
    with pytest.raises(ValueError, match="target"):
        ReviewDecision(kind=DecisionKind.UPDATE, candidate_id="temp-0")
    with pytest.raises(ValueError, match="target"):
        ReviewDecision(kind=DecisionKind.NEW, candidate_id="temp-0", target_id="db-1")
