"""
AI assistant ("Plano") backed by an OpenAI chat model through LangChain.

Every call degrades gracefully: help answers fall back to a fixed apology
message, drafts and analyses return None, so callers never see provider
errors.
"""
import io
import json
import logging
import re
import zipfile
from typing import List, Optional, Sequence

from docx import Document as DocxDocument
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from planejar.config import settings
from planejar.pipeline.phase_data import AIAnalysisResult
from planejar.utils.llm import invoke_llm

logger = logging.getLogger(__name__)

HELP_ERROR_MESSAGE = "Ocorreu um erro ao processar sua pergunta. Tente novamente mais tarde."
ANALYSIS_ERROR_MESSAGE = "Não foi possível analisar o documento."
DRAFT_ERROR_MESSAGE = "Ocorreu um erro ao gerar o rascunho. Tente novamente."

AI_PERSONA = (
    "Persona: Você é um assistente de IA para uma plataforma de gestão de holdings familiares. "
    "Seu nome é Plano. Sua personalidade é paciente, didática e você deve explicar conceitos complexos "
    "de forma simples, como se estivesse falando com alguém mais velho e sem conhecimento técnico. "
    "Use exemplos práticos, analogias e formate suas respostas com markdown (listas, negrito). "
    "Nunca recuse uma pergunta, mas se o assunto for muito fora do escopo de holdings, finanças ou "
    "direito de família, gentilmente redirecione a conversa para o tema principal."
)

DRAFT_SYSTEM = (
    "Você é um assistente especialista em direito societário e planejamento patrimonial no Brasil. "
    "Sua tarefa é gerar minutas de documentos jurídicos, como acordos de sócios para holdings familiares. "
    "O texto deve ser formal, claro e abranger os pontos solicitados. Não inclua opiniões ou saudações, "
    "apenas o texto do documento."
)

ANALYSIS_PROMPT = """Analise este documento no contexto da criação de uma holding familiar no Brasil.
1. Faça um resumo conciso do propósito principal do documento.
2. Extraia informações chave, como nomes de pessoas, empresas, endereços de imóveis, valores monetários e cláusulas importantes.
3. Sugira de 3 a 5 tarefas ou próximos passos acionáveis para um consultor com base no conteúdo. As tarefas devem ser curtas e diretas.

Retorne EXCLUSIVAMENTE um objeto JSON no formato:
{{"summary": "...", "key_info": [{{"label": "...", "value": "..."}}], "suggested_tasks": ["..."]}}

Documento: {name}
Conteúdo:
{content}
"""

# Characters of document text sent to the model
MAX_DOCUMENT_CHARS = 15000

_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def get_llm(temperature: float = 0.5) -> ChatOpenAI:
    if not settings.ai_enabled:
        raise RuntimeError("AI assistant is not configured")
    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=settings.AI_MODEL,
        temperature=temperature,
    )


def _text(response) -> str:
    content = getattr(response, "content", response)
    return content if isinstance(content, str) else ""


def build_messages(prompt: str, history: Sequence = ()) -> List:
    """History items carry ``role`` ("user" or "model") and ``content``."""
    messages = [SystemMessage(content=AI_PERSONA)]
    for item in history:
        role = item["role"] if isinstance(item, dict) else item.role
        content = item["content"] if isinstance(item, dict) else item.content
        messages.append(HumanMessage(content=content) if role == "user" else AIMessage(content=content))
    messages.append(HumanMessage(content=prompt))
    return messages


def get_ai_help(prompt: str, history: Sequence = ()) -> str:
    try:
        answer = _text(invoke_llm(get_llm(0.5), build_messages(prompt, history)))
    except Exception as e:
        logger.error("AI help failed: %s", e)
        return HELP_ERROR_MESSAGE
    return answer or HELP_ERROR_MESSAGE


def generate_draft(instructions: str, context: Optional[str] = None) -> Optional[str]:
    prompt = instructions if not context else f"{instructions}\n\nContexto:\n{context}"
    try:
        draft = _text(invoke_llm(get_llm(0.3), [SystemMessage(content=DRAFT_SYSTEM), HumanMessage(content=prompt)]))
    except Exception as e:
        logger.error("AI draft generation failed: %s", e)
        return None
    return draft or None


PDF_TYPES = ("application/pdf",)
DOCX_TYPES = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",)


def _pdf_text(content: bytes) -> str:
    reader = PdfReader(io.BytesIO(content))
    return "\n\n".join(page.extract_text() or "" for page in reader.pages)


def _docx_text(content: bytes) -> str:
    document = DocxDocument(io.BytesIO(content))
    parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n\n".join(parts)


def document_text(content: bytes, content_type: Optional[str]) -> str:
    """Plain text of an uploaded document for the analysis prompt; empty for formats we can't read."""
    if content_type and (content_type.startswith("text/") or content_type == "application/json"):
        return content.decode("utf-8", errors="ignore")[:MAX_DOCUMENT_CHARS]
    try:
        if content_type in PDF_TYPES or content.startswith(b"%PDF"):
            return _pdf_text(content)[:MAX_DOCUMENT_CHARS]
        if content_type in DOCX_TYPES:
            return _docx_text(content)[:MAX_DOCUMENT_CHARS]
    except (PdfReadError, zipfile.BadZipFile, KeyError, ValueError) as e:
        logger.warning("Could not extract document text: %s", e)
    return ""


def parse_analysis(raw: str) -> Optional[AIAnalysisResult]:
    cleaned = _JSON_FENCE.sub("", (raw or "").strip())
    try:
        return AIAnalysisResult.model_validate(json.loads(cleaned))
    except ValueError as e:
        logger.warning("AI analysis returned invalid JSON: %s", e)
        return None


def analyze_document(name: str, content: bytes, content_type: Optional[str] = None) -> Optional[AIAnalysisResult]:
    prompt = ANALYSIS_PROMPT.format(name=name, content=document_text(content, content_type))
    try:
        response = invoke_llm(get_llm(0.2), [HumanMessage(content=prompt)])
    except Exception as e:
        logger.error("AI document analysis failed: %s", e)
        return None
    return parse_analysis(_text(response))
