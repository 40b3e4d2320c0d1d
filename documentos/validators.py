# documentos/validators.py
"""
Validações executadas explicitamente antes de qualquer gravação.

Nada aqui acessa o banco: tudo é testável só com o registro decodificado.
"""

from __future__ import annotations

import re

from django.conf import settings

from documentos.chave_acesso import TAMANHO_CHAVE, validar_chave_acesso
from documentos.models.veiculo_models import normalizar_placa
from ingestao.exceptions import (
    CampoInvalido,
    CampoObrigatorioAusente,
    ChaveAcessoInvalida,
    TipoDocumentoNaoReconhecido,
)

_UF_RE = re.compile(r"^[A-Z]{2}$")


def somente_digitos(valor: str | None) -> str:
    return "".join(ch for ch in (valor or "") if ch.isdigit())


def _calc_dv(digs: str) -> str:
    soma = 0
    peso = len(digs) + 1
    for c in digs:
        soma += int(c) * peso
        peso -= 1
    resto = soma % 11
    if resto < 2:
        return "0"
    return str(11 - resto)


def cpf_valido(cpf: str | None) -> bool:
    """
    - 11 dígitos, sem sequência repetida (000..., 111...)
    - dígitos verificadores conferem
    """
    cpf = somente_digitos(cpf)
    if len(cpf) != 11:
        return False

    if cpf == cpf[0] * 11:
        return False

    dv1 = _calc_dv(cpf[:9])
    dv2 = _calc_dv(cpf[:9] + dv1)
    return cpf[-2:] == dv1 + dv2


def cnpj_valido(cnpj: str | None) -> bool:
    """
    CNPJ: pesos 5..2,9..2 (1º DV) e 6..2,9..2 (2º DV).
    """
    cnpj = somente_digitos(cnpj)
    if len(cnpj) != 14:
        return False

    if cnpj == cnpj[0] * 14:
        return False

    def calc_dv(digs: str) -> str:
        pesos = list(range(len(digs) - 7, 1, -1)) + list(range(9, 1, -1))
        soma = sum(int(c) * p for c, p in zip(digs, pesos))
        resto = soma % 11
        if resto < 2:
            return "0"
        return str(11 - resto)

    dv1 = calc_dv(cnpj[:12])
    dv2 = calc_dv(cnpj[:12] + dv1)
    return cnpj[-2:] == dv1 + dv2


def _validar_uf(campo: str, uf: str) -> None:
    if not _UF_RE.match((uf or "").strip().upper()):
        raise CampoObrigatorioAusente(campo, f"UF inválida em '{campo}': {uf!r}")


def _validar_tamanho(campo: str, valor: str | None, maximo: int) -> None:
    if len(valor or "") > maximo:
        raise CampoInvalido(campo, f"Valor excede {maximo} caracteres em '{campo}': {valor!r}")


def _validar_empresa(prefixo: str, dados) -> None:
    if dados is None:
        return
    _validar_tamanho(f"{prefixo}/CNPJ", somente_digitos(dados.cnpj), 14)
    _validar_tamanho(f"{prefixo}/CPF", somente_digitos(dados.cpf), 11)
    _validar_tamanho(f"{prefixo}/IE", (dados.ie or "").strip(), 20)
    _validar_tamanho(f"{prefixo}/UF", (dados.uf or "").strip(), 2)
    _validar_tamanho(f"{prefixo}/xMun", (dados.municipio or "").strip(), 100)
    _validar_tamanho(f"{prefixo}/CEP", somente_digitos(dados.cep), 8)


def _validar_tamanhos(parsed) -> None:
    """
    Limites das colunas de destino, conferidos no mesmo formato em que o
    valor será gravado (dígitos, placa normalizada).
    """
    _validar_tamanho("ide/serie", parsed.serie, 3)
    _validar_tamanho("infProt/nProt", parsed.protocolo, 20)

    if parsed.tipo == "CTE":
        _validar_tamanho("ide/CFOP", parsed.cfop, 4)
        _validar_tamanho("ide/xMunIni", parsed.municipio_inicio, 100)
        _validar_tamanho("ide/xMunFim", parsed.municipio_fim, 100)
        _validar_tamanho("rodo/RNTRC", parsed.rntrc, 8)
        _validar_tamanho("ObsCont/PLACA", parsed.placa_veiculo, 10)
        _validar_empresa("emit", parsed.emitente)
        _validar_empresa("rem", parsed.remetente)
        _validar_empresa("dest", parsed.destinatario)
        return

    _validar_tamanho("infMunCarrega/xMunCarrega", parsed.municipio_inicio, 100)
    _validar_tamanho("infMunDescarga/xMunDescarga", parsed.municipio_fim, 100)
    _validar_tamanho("veicTracao/placa", normalizar_placa(parsed.placa_veiculo), 10)
    _validar_tamanho("veicTracao/UF", (parsed.uf_veiculo or "").strip(), 2)
    _validar_tamanho("veicTracao/RENAVAM", (parsed.renavam or "").strip(), 11)
    _validar_tamanho("condutor/xNome", (parsed.nome_motorista or "").strip(), 100)
    _validar_tamanho("condutor/CPF", somente_digitos(parsed.cpf_motorista), 11)
    _validar_tamanho("prodPred/xProd", parsed.produto_predominante, 120)
    _validar_tamanho("prodPred/tpCarga", parsed.tipo_carga, 2)
    _validar_empresa("emit", parsed.emitente)
    # Só a primeira seguradora é gravada
    if parsed.seguradoras:
        seg = parsed.seguradoras[0]
        _validar_tamanho("infSeg/xSeg", seg.nome, 100)
        _validar_tamanho("infSeg/CNPJ", somente_digitos(seg.cnpj), 14)
        _validar_tamanho("seg/nApol", seg.apolice, 50)
        _validar_tamanho("seg/nAver", seg.averbacao, 50)


def validar_documento_para_persistencia(parsed) -> None:
    """
    Checagens de pré-gravação para CteParsed / MdfeParsed:

    - chave com 44 dígitos numéricos; DV conferido se
      settings.INGESTAO_VALIDAR_DV_CHAVE estiver ligado
    - tipo conhecido (CTE / MDFE)
    - UFs de início e fim com duas letras
    - MDF-e: nome e CPF do motorista presentes
    - nenhum valor maior que a coluna onde será gravado
    """
    tipo = getattr(parsed, "tipo", None)
    if tipo not in ("CTE", "MDFE"):
        raise TipoDocumentoNaoReconhecido(f"Tipo de documento inválido: {tipo!r}")

    chave = parsed.chave or ""
    if getattr(settings, "INGESTAO_VALIDAR_DV_CHAVE", True):
        validar_chave_acesso(chave)
    elif len(chave) != TAMANHO_CHAVE or not (chave.isascii() and chave.isdigit()):
        raise ChaveAcessoInvalida(
            f"Chave deve ter {TAMANHO_CHAVE} dígitos numéricos: {chave}",
            chave=chave,
        )

    _validar_uf("ide/UFIni", parsed.uf_inicio)
    _validar_uf("ide/UFFim", parsed.uf_fim)

    if tipo == "MDFE":
        if not (parsed.nome_motorista or "").strip():
            raise CampoObrigatorioAusente("condutor/xNome", "Nome do motorista não informado.")
        if not somente_digitos(parsed.cpf_motorista):
            raise CampoObrigatorioAusente("condutor/CPF", "CPF do motorista não informado.")

    _validar_tamanhos(parsed)
