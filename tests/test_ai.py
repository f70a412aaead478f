"""
Tests for the AI assistant endpoints.

The model is never called: either no API key is configured (the default in
tests) or the LangChain call is replaced.
"""
import io
import json
import zlib
from types import SimpleNamespace

import pytest
from docx import Document
from fastapi import status

from planejar.pipeline.phase_data import load_phase_data
from planejar.services import ai_service


@pytest.fixture
def fake_llm(monkeypatch):
    """Replace the chat model; the test sets ``fake_llm.reply``."""
    state = SimpleNamespace(reply="", calls=[])

    def invoke(llm, messages):
        state.calls.append(messages)
        return SimpleNamespace(content=state.reply)

    monkeypatch.setattr(ai_service, "get_llm", lambda temperature=0.5: object())
    monkeypatch.setattr(ai_service, "invoke_llm", invoke)
    return state


def upload(client, project, headers, phase_number=1):
    response = client.post(
        f"/projects/{project.id}/documents",
        data={"phase_number": str(phase_number)},
        files={"file": ("matricula.txt", "Matrícula do imóvel da Rua A".encode("utf-8"), "text/plain")},
        headers=headers,
    )
    return response.json()["id"]


def pdf_with_text(text):
    """A one-page PDF whose content stream is FlateDecode-compressed."""
    stream = zlib.compress(f"BT /F1 12 Tf 20 100 Td ({text}) Tj ET".encode("latin-1"))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 300 200] "
        b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        b"<< /Length %d /Filter /FlateDecode >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.mark.unit
class TestDocumentText:
    def test_compressed_pdf_text_is_extracted(self):
        text = ai_service.document_text(pdf_with_text("Matricula 12345 Cartorio"), "application/pdf")
        assert "Matricula 12345" in text
        assert "FlateDecode" not in text

    def test_docx_paragraphs_and_tables(self):
        document = Document()
        document.add_paragraph("Contrato social da holding")
        table = document.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Capital"
        table.rows[0].cells[1].text = "100.000"
        buffer = io.BytesIO()
        document.save(buffer)

        text = ai_service.document_text(buffer.getvalue(), ai_service.DOCX_TYPES[0])
        assert "Contrato social da holding" in text
        assert "Capital | 100.000" in text

    def test_broken_pdf_gives_empty_text(self):
        assert ai_service.document_text(b"%PDF-1.4 truncado", "application/pdf") == ""

    def test_unknown_binary_is_not_sent(self):
        assert ai_service.document_text(b"\x89PNG\r\n\x1a\nIHDR imagem", "image/png") == ""


@pytest.mark.unit
class TestParsing:
    def test_parse_analysis_strips_code_fence(self):
        raw = '```json\n{"summary": "Resumo", "key_info": [{"label": "Nome", "value": "Ana"}], "suggested_tasks": ["A"]}\n```'
        result = ai_service.parse_analysis(raw)
        assert result.summary == "Resumo"
        assert result.key_info[0].value == "Ana"

    def test_parse_analysis_invalid_json(self):
        assert ai_service.parse_analysis("não é json") is None

    def test_history_roles(self):
        messages = ai_service.build_messages("E agora?", [{"role": "user", "content": "Oi"}, {"role": "model", "content": "Olá"}])
        assert [type(m).__name__ for m in messages] == ["SystemMessage", "HumanMessage", "AIMessage", "HumanMessage"]


@pytest.mark.integration
class TestEndpointsWithoutKey:
    def test_help_returns_friendly_message(self, client, consultant_headers):
        response = client.post("/ai/help", json={"prompt": "O que é uma holding?"}, headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["response"] == ai_service.HELP_ERROR_MESSAGE

    def test_draft_returns_error(self, client, consultant_headers):
        response = client.post("/ai/draft", json={"instructions": "Acordo de sócios"}, headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"draft": None, "error": ai_service.DRAFT_ERROR_MESSAGE}

    def test_analyze_returns_error(self, client, project, consultant_headers):
        document_id = upload(client, project, consultant_headers)
        response = client.post("/ai/analyze", json={"document_id": document_id}, headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["error"] == ai_service.ANALYSIS_ERROR_MESSAGE

    def test_requires_login(self, client):
        response = client.post("/ai/help", json={"prompt": "Oi"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.integration
class TestEndpointsWithModel:
    def test_help_answer(self, client, consultant_headers, fake_llm):
        fake_llm.reply = "Uma holding é uma empresa que controla outras."
        response = client.post("/ai/help", json={"prompt": "O que é uma holding?"}, headers=consultant_headers)
        assert response.json()["response"] == fake_llm.reply

    def test_analysis_of_diagnostic_document_is_stored(self, client, db_session, project, consultant_headers, fake_llm):
        fake_llm.reply = json.dumps({
            "summary": "Matrícula de imóvel",
            "key_info": [{"label": "Endereço", "value": "Rua A"}],
            "suggested_tasks": ["Solicitar certidão atualizada"],
        })
        document_id = upload(client, project, consultant_headers)
        response = client.post("/ai/analyze", json={"document_id": document_id}, headers=consultant_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["result"]["suggested_tasks"] == ["Solicitar certidão atualizada"]
        assert "Matrícula do imóvel" in fake_llm.calls[0][0].content

        db_session.refresh(project)
        data = load_phase_data(1, project.get_phase(1).phase_data)
        assert data.analyzed_document_id == document_id
        assert data.ai_analysis_result.summary == "Matrícula de imóvel"

        # suggestions are not turned into tasks until confirmed
        tasks = client.get(f"/projects/{project.id}/tasks", headers=consultant_headers).json()
        assert tasks == []
