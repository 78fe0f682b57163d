from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from hquant.adapters.gemini import (
    GeminiClient,
    GeminiCompositionExtractor,
    GeminiCompositionMatcher,
    GeminiInsumoExtractor,
    GeminiInsumoMatcher,
    GeminiReviser,
    extract_json_block,
    fix_invalid_escapes,
)
from hquant.config import GeminiConfig, ResilienceConfig
from hquant.domain.errors import AdapterError, InvalidInputError, MalformedResponseError
from hquant.domain.model import RecordKind
from hquant.domain.ports import ImageInput
from tests.helpers.catalog import candidate, make_composicao, make_insumo
from tests.helpers.http import make_client_factory

BASE_URL = "https://gemini.test/v1beta/"


def _config() -> GeminiConfig:
    return GeminiConfig(
        api_key="test-key",
        model="gemini-test",
        resilience=ResilienceConfig(name="gemini", base_url=BASE_URL),
    )


def _answer(payload: Any) -> httpx.Response:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(
        200,
        json={"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]},
    )


def _client(
    answer: httpx.Response,
    requests: list[httpx.Request] | None = None,
) -> GeminiClient:
    return GeminiClient(
        config=_config(),
        client_factory=make_client_factory(lambda _: answer, requests=requests),
    )


def test_generate_posts_prompt_and_image() -> None:
    requests: list[httpx.Request] = []
    client = _client(_answer({"ok": True}), requests)
    image = ImageInput(data=b"png", mime_type="image/png")

    text = asyncio.run(client.generate("Liste os insumos", image=image))

    assert json.loads(text) == {"ok": True}
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0] == {"text": "Liste os insumos"}
    assert parts[1] == {"inlineData": {"mimeType": "image/png", "data": "cG5n"}}
    assert body["generationConfig"] == {"responseMimeType": "application/json"}


def test_error_status_becomes_adapter_error() -> None:
    error = httpx.Response(
        503, json={"error": {"code": 503, "message": "model overloaded", "status": "UNAVAILABLE"}}
    )
    client = _client(error)

    with pytest.raises(AdapterError, match="model overloaded") as excinfo:
        asyncio.run(client.generate("x", operation="extract_insumos"))

    assert excinfo.value.status_code == 503
    assert excinfo.value.operation == "extract_insumos"


def test_transport_failure_becomes_adapter_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    client = GeminiClient(config=_config(), client_factory=make_client_factory(handler))

    with pytest.raises(AdapterError):
        asyncio.run(client.generate("x"))


def test_envelope_without_text_is_malformed() -> None:
    client = _client(httpx.Response(200, json={"candidates": []}))

    with pytest.raises(MalformedResponseError):
        asyncio.run(client.generate("x"))


def test_insumo_extraction_reads_fenced_answer_with_bad_escapes() -> None:
    answer = (
        "```json\n"
        '{"insumos": ['
        '{"nome": "Areia m\\edia", "unidade": "m3", "custo": "R$ 120,00", "tipo": "Material"},'
        '{"nome": "Pedreiro", "unidade": "h", "custo": 25.5, "tipo": "Mão de Obra",'
        ' "analiseEngenheiro": {"notaDaImportacao": "custo com encargos"}}'
        "]}\n```"
    )
    extractor = GeminiInsumoExtractor(client=_client(_answer(answer)))

    drafts = asyncio.run(extractor("Areia media m3 120,00\nPedreiro h 25,50"))

    assert [(d.id, d.name, d.unit, d.value) for d in drafts] == [
        ("temp-0", "Areia media", "m3", 120.0),
        ("temp-1", "Pedreiro", "h", 25.5),
    ]
    assert drafts[1].classification == "Mão de Obra"
    assert drafts[1].annotation == "custo com encargos"


def test_insumo_extraction_passes_through_invalid_input_alert() -> None:
    answer = [{"nome": None, "analiseEngenheiro": {"notaDaImportacao": "Alerta: sem insumos"}}]
    extractor = GeminiInsumoExtractor(client=_client(_answer(answer)))

    drafts = asyncio.run(extractor("bom dia"))

    assert len(drafts) == 1
    assert drafts[0].is_invalid_input_alert


def test_extraction_rejects_blank_text_and_bad_json() -> None:
    extractor = GeminiInsumoExtractor(client=_client(_answer("not json at all")))

    with pytest.raises(InvalidInputError):
        asyncio.run(extractor("  "))
    with pytest.raises(MalformedResponseError) as excinfo:
        asyncio.run(extractor("Cimento"))
    assert excinfo.value.operation == "extract_insumos"


@pytest.mark.parametrize("answer", ['"desculpe, nao entendi"', "42", "null"])
def test_extraction_rejects_answers_that_are_not_records(answer: str) -> None:
    insumos = GeminiInsumoExtractor(client=_client(_answer(answer)))
    composicoes = GeminiCompositionExtractor(client=_client(_answer(answer)))

    with pytest.raises(MalformedResponseError):
        asyncio.run(insumos("Cimento"))
    with pytest.raises(MalformedResponseError):
        asyncio.run(composicoes("Contrapiso"))


def test_insumo_matcher_rejects_non_finite_scores() -> None:
    existing = make_insumo()
    answer = (
        '{"resultados": [{"newInsumoId": "temp-0", '
        f'"existingInsumoId": "{existing.id}", "similarityScore": Infinity}}]}}'
    )
    matcher = GeminiInsumoMatcher(client=_client(_answer(answer)))

    with pytest.raises(MalformedResponseError):
        asyncio.run(matcher([candidate(0)], [existing]))


def test_composition_extraction_keeps_structured_content() -> None:
    answer = {
        "composicoes": [
            {
                "titulo": "Contrapiso e=4cm",
                "unidade": "m2",
                "quantidadeReferencia": "1,5",
                "grupo": "PISOS",
                "subgrupo": "CONTRAPISO",
                "premissas": {"escopo": "Contrapiso com argamassa"},
                "indicadores": {"custoDiretoTotal_porUnidade": "R$ 45,90", "horasMaoObra": 0.4},
            }
        ]
    }
    extractor = GeminiCompositionExtractor(client=_client(_answer(answer)))

    (draft,) = asyncio.run(extractor("Contrapiso..."))

    assert draft.name == "Contrapiso e=4cm"
    assert draft.value == 45.9
    assert draft.quantity == 1.5
    assert draft.classification == "PISOS/CONTRAPISO"
    assert draft.details["premissas"] == {"escopo": "Contrapiso com argamassa"}
    assert draft.details["indicadores"]["horasMaoObra"] == 0.4


def test_insumo_matcher_clamps_scores_and_drops_unknown_ids() -> None:
    existing = make_insumo()
    answer = {
        "resultados": [
            {
                "newInsumoId": "temp-0",
                "existingInsumoId": existing.id,
                "similarityScore": "120%",
                "motivo": "mesmo produto",
            },
            {"newInsumoId": "temp-9", "existingInsumoId": existing.id, "similarityScore": 80},
            {"newInsumoId": "temp-0", "existingInsumoId": "made-up", "similarityScore": 70},
        ]
    }
    requests: list[httpx.Request] = []
    matcher = GeminiInsumoMatcher(client=_client(_answer(answer), requests))

    matches = asyncio.run(matcher([candidate(0)], [existing]))

    assert [(m.candidate_id, m.existing_id, m.score) for m in matches] == [
        ("temp-0", existing.id, 100)
    ]
    assert matches[0].rationale == "mesmo produto"
    prompt = json.loads(requests[0].content)["contents"][0]["parts"][0]["text"]
    assert existing.id in prompt
    assert '"newInsumos"' in prompt


def test_matchers_skip_the_call_when_a_side_is_empty() -> None:
    requests: list[httpx.Request] = []
    client = _client(_answer([]), requests)

    assert asyncio.run(GeminiInsumoMatcher(client=client)([], [make_insumo()])) == []
    assert asyncio.run(GeminiCompositionMatcher(client=client)([candidate(0)], [])) == []
    assert requests == []


def test_composition_matcher_flattens_candidates() -> None:
    existing = make_composicao()
    answer = {
        "resultados": [
            {
                "idNovaComposicao": "temp-0",
                "candidatos": [
                    {"idExistente": existing.id, "relevanciaScore": 87.6, "motivo": "mesmo escopo"},
                    {"idExistente": "ghost", "relevanciaScore": 90},
                ],
            }
        ]
    }
    matcher = GeminiCompositionMatcher(client=_client(_answer(answer)))

    matches = asyncio.run(matcher([candidate(0, "Contrapiso 4cm")], [existing]))

    assert [(m.candidate_id, m.existing_id, m.score) for m in matches] == [
        ("temp-0", existing.id, 88)
    ]


def test_reviser_keeps_candidate_id() -> None:
    requests: list[httpx.Request] = []
    answer = {"nome": "Cimento CP II 50kg", "unidade": "sc", "custo": 38.9}
    reviser = GeminiReviser(RecordKind.INSUMO, client=_client(_answer(answer), requests))

    revised = asyncio.run(reviser(candidate(3, "Cimento"), "o preço é por saco de 50kg"))

    assert revised.id == "temp-3"
    assert (revised.name, revised.unit, revised.value) == ("Cimento CP II 50kg", "sc", 38.9)
    prompt = json.loads(requests[0].content)["contents"][0]["parts"][0]["text"]
    assert "o preço é por saco de 50kg" in prompt


def test_reviser_requires_exactly_one_named_record() -> None:
    reviser = GeminiReviser(RecordKind.INSUMO, client=_client(_answer([{"nome": ""}])))

    with pytest.raises(MalformedResponseError):
        asyncio.run(reviser(candidate(0), "corrija"))
    with pytest.raises(ValueError, match="blank"):
        asyncio.run(reviser(candidate(0), " "))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('Resposta:\n```json\n[1, 2]\n```\nfim', "[1, 2]"),
        ('{"a": "b"}', '{"a": "b"}'),
    ],
)
def test_extract_json_block(raw: str, expected: str) -> None:
    assert extract_json_block(raw) == expected


def test_fix_invalid_escapes_keeps_valid_ones() -> None:
    assert fix_invalid_escapes(r'"a\"b\né\x"') == r'"a\"b\néx"'
