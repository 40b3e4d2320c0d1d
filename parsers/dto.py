# parsers/dto.py
"""
Registros canônicos produzidos pelos parsers. Planos, já convertidos e
sem nenhuma referência ao banco.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass
class EmpresaParsed:
    cnpj: str = ""
    cpf: str = ""
    razao_social: str = ""
    nome_fantasia: str = ""
    ie: str = ""
    uf: str = ""
    municipio: str = ""
    cep: str = ""

    @property
    def documento(self) -> str:
        return self.cnpj or self.cpf


@dataclass
class CteParsed:
    chave: str
    numero: int
    serie: str
    data_emissao: datetime
    cfop: str
    modalidade_frete: str
    valor_total: Decimal
    valor_carga: Decimal
    uf_inicio: str
    uf_fim: str
    municipio_inicio: str
    municipio_fim: str

    emitente: EmpresaParsed
    remetente: EmpresaParsed
    destinatario: EmpresaParsed
    # Referência para remetente ou destinatario (mesmo objeto), ou None
    tomador: Optional[EmpresaParsed] = None
    indicador_tomador: str = ""

    status: str = ""
    protocolo: str = ""
    data_autorizacao: Optional[datetime] = None

    rntrc: str = ""
    placa_veiculo: str = ""
    observacoes: str = ""

    chaves_nfe: list[str] = field(default_factory=list)

    tipo = "CTE"


@dataclass
class SeguradoraParsed:
    nome: str = ""
    cnpj: str = ""
    apolice: str = ""
    averbacao: str = ""


@dataclass
class MdfeParsed:
    chave: str
    numero: int
    serie: str
    data_emissao: datetime
    uf_inicio: str
    uf_fim: str
    municipio_inicio: str
    municipio_fim: str

    emitente: EmpresaParsed

    placa_veiculo: str = ""
    uf_veiculo: str = ""
    renavam: str = ""
    rntrc: str = ""
    tara_kg: int = 0
    capacidade_kg: int = 0

    nome_motorista: str = ""
    cpf_motorista: str = ""

    chaves_cte: list[str] = field(default_factory=list)
    chaves_nfe: list[str] = field(default_factory=list)

    qtd_cte: int = 0
    qtd_nfe: int = 0
    valor_total_carga: Decimal = Decimal("0")
    peso_bruto_total: Decimal = Decimal("0")

    produto_predominante: str = ""
    tipo_carga: str = ""

    seguradoras: list[SeguradoraParsed] = field(default_factory=list)

    status: str = ""
    protocolo: str = ""
    data_autorizacao: Optional[datetime] = None

    tipo = "MDFE"


@dataclass
class EventoParsed:
    chave: str
    tipo_evento: str
    descricao: str
    sequencia: str
    data_evento: datetime

    protocolo: str = ""
    protocolo_referencia: str = ""
    status: str = ""
    motivo: str = ""
    justificativa: str = ""

    # Só encerramento de MDF-e
    data_encerramento: Optional[date] = None
    municipio_encerramento: str = ""

    # "CTE" ou "MDFE": tipo do documento alvo
    tipo_documento: str = ""
