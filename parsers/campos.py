# parsers/campos.py
"""
Conversões de campos texto do XML para tipos Python.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date, parse_datetime

from documentos.chave_acesso import TAMANHO_CHAVE
from ingestao.exceptions import (
    ChaveAcessoInvalida,
    DataInvalida,
    IdentificadorAusente,
    NumeroInvalido,
)

_INTEIRO_RE = re.compile(r"^\+?\d+$")


def parse_decimal(campo: str, texto: str | None) -> Decimal:
    """
    "1.234,5" não é aceito (só um separador). Aceita "1234.50" e "1234,50".
    Vazio -> Decimal("0"). NaN / Infinity são rejeitados.
    """
    valor = (texto or "").strip()
    if not valor:
        return Decimal("0")

    valor = valor.replace(",", ".")
    try:
        numero = Decimal(valor)
    except InvalidOperation as exc:
        raise NumeroInvalido(campo, texto) from exc

    if not numero.is_finite():
        raise NumeroInvalido(campo, texto)
    return numero


def parse_inteiro(campo: str, texto: str | None) -> int:
    """
    Inteiro não negativo (número do documento, quantidades, pesos).
    Vazio -> 0.
    """
    valor = (texto or "").strip()
    if not valor:
        return 0
    if not _INTEIRO_RE.match(valor):
        raise NumeroInvalido(campo, texto)
    return int(valor)


def parse_data_hora(campo: str, texto: str | None) -> datetime:
    """
    Data/hora ISO-8601 com fuso (ex.: 2024-05-06T09:39:00-03:00).
    """
    valor = (texto or "").strip()
    try:
        dt = parse_datetime(valor) if valor else None
    except ValueError as exc:
        raise DataInvalida(campo, texto) from exc

    if dt is None or dt.tzinfo is None:
        raise DataInvalida(campo, texto)
    return dt


def parse_data_hora_opcional(campo: str, texto: str | None) -> datetime | None:
    if not (texto or "").strip():
        return None
    return parse_data_hora(campo, texto)


def parse_data(campo: str, texto: str | None):
    """
    Data simples (AAAA-MM-DD), usada no encerramento do MDF-e.
    """
    valor = (texto or "").strip()
    try:
        d = parse_date(valor) if valor else None
    except ValueError as exc:
        raise DataInvalida(campo, texto) from exc

    if d is None:
        raise DataInvalida(campo, texto)
    return d


def extrair_chave(identificador: str, prefixo: str, *, campo: str) -> str:
    """
    "CTe3124..." -> "3124...". Exige 44 caracteres após remover o prefixo.
    """
    if not identificador:
        raise IdentificadorAusente(
            f"XML inválido: identificador ({campo}) não encontrado.",
            campo=campo,
        )

    chave = identificador[len(prefixo):] if identificador.startswith(prefixo) else identificador
    if len(chave) != TAMANHO_CHAVE:
        raise ChaveAcessoInvalida(f"Chave de acesso inválida: {chave}", chave=chave, campo=campo)
    return chave


def filtrar_chaves(chaves) -> list[str]:
    """
    Mantém só chaves com 44 caracteres, sem repetir, na ordem original.
    """
    vistas: list[str] = []
    for chave in chaves:
        chave = (chave or "").strip()
        if len(chave) == TAMANHO_CHAVE and chave not in vistas:
            vistas.append(chave)
    return vistas


def texto_ou_none(valor: str | None) -> str | None:
    valor = (valor or "").strip()
    return valor or None
