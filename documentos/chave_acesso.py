# documentos/chave_acesso.py
"""
Chave de acesso de documentos fiscais eletrônicos (CT-e / MDF-e).

Layout (44 dígitos):

    cUF(2) AAMM(4) CNPJ(14) mod(2) serie(3) numero(9) tpEmis(1) codigo(8) DV(1)

O DV é módulo 11 sobre os 43 primeiros dígitos, da direita para a esquerda,
com pesos 2..9 cíclicos. Restos 0 e 1 geram DV 0, por isso o DV não detecta
toda troca de um único dígito: uma troca que leve o resto de 0 para 1 (ou de
1 para 0) passa despercebida.
"""

from __future__ import annotations

from dataclasses import dataclass

from ingestao.exceptions import ChaveAcessoInvalida

TAMANHO_CHAVE = 44


def calcular_digito_verificador(prefixo: str) -> int:
    """
    Calcula o DV (0..9) para os 43 primeiros dígitos da chave.
    """
    if len(prefixo) != TAMANHO_CHAVE - 1 or not (prefixo.isascii() and prefixo.isdigit()):
        raise ValueError("Prefixo da chave deve ter 43 dígitos numéricos.")

    soma = 0
    peso = 2
    for c in reversed(prefixo):
        soma += int(c) * peso
        peso = 2 if peso == 9 else peso + 1

    resto = soma % 11
    if resto < 2:
        return 0
    return 11 - resto


def validar_chave_acesso(chave: str) -> None:
    """
    Levanta ChaveAcessoInvalida se a chave não tiver 44 dígitos ou o DV não conferir.
    """
    if chave is None or len(chave) != TAMANHO_CHAVE:
        tamanho = 0 if chave is None else len(chave)
        raise ChaveAcessoInvalida(
            f"Chave deve ter {TAMANHO_CHAVE} dígitos, tem {tamanho}.",
            chave=chave,
        )

    if not (chave.isascii() and chave.isdigit()):
        raise ChaveAcessoInvalida("Chave deve conter apenas números.", chave=chave)

    dv = calcular_digito_verificador(chave[:-1])
    if int(chave[-1]) != dv:
        raise ChaveAcessoInvalida(
            f"Dígito verificador inválido: esperado {dv}, recebido {chave[-1]}.",
            chave=chave,
        )


def chave_valida(chave: str) -> bool:
    try:
        validar_chave_acesso(chave)
    except ChaveAcessoInvalida:
        return False
    return True


@dataclass(frozen=True)
class ComposicaoChave:
    cuf: str
    ano_mes: str
    cnpj_emitente: str
    modelo: str
    serie: str
    numero: str
    tipo_emissao: str
    codigo_numerico: str
    dv: str


def decompor_chave(chave: str) -> ComposicaoChave:
    """
    Separa a chave nos seus campos. Não valida DV; use validar_chave_acesso antes
    se precisar.
    """
    if len(chave) != TAMANHO_CHAVE:
        raise ChaveAcessoInvalida(
            f"Chave deve ter {TAMANHO_CHAVE} dígitos, tem {len(chave)}.",
            chave=chave,
        )
    return ComposicaoChave(
        cuf=chave[0:2],
        ano_mes=chave[2:6],
        cnpj_emitente=chave[6:20],
        modelo=chave[20:22],
        serie=chave[22:25],
        numero=chave[25:34],
        tipo_emissao=chave[34:35],
        codigo_numerico=chave[35:43],
        dv=chave[43:44],
    )
