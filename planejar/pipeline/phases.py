"""
Phase definitions. Numbers 1..10 have a fixed meaning; titles and
descriptions are not user-editable.
"""
from typing import Any, Dict, List

PHASES: List[Dict[str, Any]] = [
    {
        "number": 1,
        "key": "diagnostic",
        "title": "Diagnóstico e Planejamento",
        "description": "Coleta de informações iniciais e definição dos objetivos da holding.",
    },
    {
        "number": 2,
        "key": "constitution",
        "title": "Constituição da Holding",
        "description": "Definição do quadro societário, elaboração do contrato social e registro da empresa.",
    },
    {
        "number": 3,
        "key": "integralization",
        "title": "Coleta de Dados para Integralização",
        "description": "Declaração dos bens que serão transferidos para o capital social da holding.",
    },
    {
        "number": 4,
        "key": "minuta",
        "title": "Minuta de Integralização",
        "description": "Elaboração e revisão da minuta do contrato de integralização dos bens.",
    },
    {
        "number": 5,
        "key": "itbi",
        "title": "Pagamento do ITBI",
        "description": "Processamento do Imposto sobre Transmissão de Bens Imóveis (ITBI), se aplicável.",
    },
    {
        "number": 6,
        "key": "registration",
        "title": "Registro da Integralização",
        "description": "Registro da transferência dos bens no cartório de registro de imóveis competente.",
    },
    {
        "number": 7,
        "key": "conclusion",
        "title": "Conclusão e Entrega",
        "description": "Entrega do dossiê final com todos os documentos e registros concluídos.",
    },
    {
        "number": 8,
        "key": "quotas",
        "title": "Transferência de Quotas",
        "description": "Processo de doação ou venda de quotas sociais para herdeiros ou terceiros.",
    },
    {
        "number": 9,
        "key": "agreement",
        "title": "Acordo de Sócios",
        "description": "Elaboração do acordo para regular as relações entre os sócios da holding.",
    },
    {
        "number": 10,
        "key": "support",
        "title": "Suporte e Alterações",
        "description": "Canal para solicitações de alterações, dúvidas e suporte contínuo após a conclusão do projeto.",
    },
]

PHASE_COUNT = len(PHASES)
FIRST_PHASE = 1
LAST_PHASE = PHASES[-1]["number"]

# Closed by the finalize action instead of advance-phase
CONCLUSION_PHASE = 7
# Reachable only through the post-completion choice
POST_COMPLETION_PHASES = {"quotas": 8, "agreement": 9}
SUPPORT_PHASE = 10

PHASE_BY_NUMBER = {p["number"]: p for p in PHASES}


def phase_title(number: int) -> str:
    return PHASE_BY_NUMBER[number]["title"]
