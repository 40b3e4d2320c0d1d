# parsers/detector.py
from __future__ import annotations

from enum import Enum


class TipoXml(str, Enum):
    CTE = "CTE"
    MDFE = "MDFE"
    EVENTO_CTE = "EVENTO_CTE"
    EVENTO_MDFE = "EVENTO_MDFE"
    DESCONHECIDO = "DESCONHECIDO"

    @property
    def is_evento(self) -> bool:
        return self in (TipoXml.EVENTO_CTE, TipoXml.EVENTO_MDFE)


# Ordem importa: a primeira regra que casar vence.
_MARCADORES: tuple[tuple[TipoXml, tuple[bytes, ...]], ...] = (
    (TipoXml.CTE, (b"<cteProc", b"<CTe")),
    (TipoXml.MDFE, (b"<mdfeProc", b"<MDFe")),
    (TipoXml.EVENTO_CTE, (b"<procEventoCTe", b"<eventoCTe")),
    (TipoXml.EVENTO_MDFE, (b"<procEventoMDFe", b"<eventoMDFe")),
)


def detectar_tipo(conteudo: bytes | str) -> TipoXml:
    """
    Classifica o conteúdo pela presença de marcadores de elemento raiz, sem
    fazer parse. Um XML que case aqui ainda pode falhar na decodificação.
    """
    if isinstance(conteudo, str):
        conteudo = conteudo.encode("utf-8")

    for tipo, marcadores in _MARCADORES:
        if any(m in conteudo for m in marcadores):
            return tipo
    return TipoXml.DESCONHECIDO
