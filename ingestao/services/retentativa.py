# ingestao/services/retentativa.py
import logging
import random
import time
from typing import Callable, TypeVar

from django.conf import settings
from django.db import InterfaceError, OperationalError

logger = logging.getLogger("transporte.ingestao")

T = TypeVar("T")

# Falhas transitórias de banco (conexão caiu, deadlock, lock timeout...).
# IntegrityError NÃO entra: contenção é absorvida no resolver.
ERROS_TRANSITORIOS = (OperationalError, InterfaceError)


def calcular_atraso(tentativa: int, base: float) -> float:
    """
    Backoff exponencial com jitter: base * 2^tentativa + [0, 0.1).
    """
    return base * (2 ** tentativa) + random.uniform(0, 0.1)


def executar_com_retentativas(
    operacao: Callable[[], T],
    *,
    descricao: str,
    max_tentativas: int | None = None,
    backoff_base: float | None = None,
    dormir: Callable[[float], None] = time.sleep,
) -> T:
    """
    Executa `operacao` (que abre e fecha sua própria transação) repetindo em
    caso de erro transitório de banco. Esgotadas as tentativas, o último
    erro é propagado.
    """
    if max_tentativas is None:
        max_tentativas = getattr(settings, "INGESTAO_MAX_TENTATIVAS", 3)
    if backoff_base is None:
        backoff_base = getattr(settings, "INGESTAO_BACKOFF_BASE", 0.5)
    max_tentativas = max(int(max_tentativas), 1)

    for tentativa in range(max_tentativas):
        try:
            return operacao()
        except ERROS_TRANSITORIOS as exc:
            if tentativa >= max_tentativas - 1:
                logger.error(
                    "Falha de banco persistente: tentativas esgotadas",
                    extra={
                        "event": "ingestao_retentativas_esgotadas",
                        "operacao": descricao,
                        "tentativas": max_tentativas,
                        "erro": str(exc),
                    },
                )
                raise

            atraso = calcular_atraso(tentativa, backoff_base)
            logger.warning(
                "Falha transitória de banco, nova tentativa agendada",
                extra={
                    "event": "ingestao_retentativa",
                    "operacao": descricao,
                    "tentativa": tentativa + 1,
                    "max_tentativas": max_tentativas,
                    "atraso_s": round(atraso, 3),
                    "erro": str(exc),
                },
            )
            dormir(atraso)

    # inalcançável: o laço sempre retorna ou propaga
    raise RuntimeError("executar_com_retentativas: laço terminou sem resultado")
