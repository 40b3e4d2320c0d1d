# parsers/evento_parser.py
from __future__ import annotations

from documentos.chave_acesso import TAMANHO_CHAVE
from ingestao.exceptions import ChaveAcessoInvalida, IdentificadorAusente
from parsers.campos import parse_data, parse_data_hora
from parsers.dto import EventoParsed
from parsers.schemas import Evento, ProcEventoCTe, ProcEventoMDFe, RetEvento
from parsers.xml_binding import parse_xml, vincular_raiz

TIPO_EVENTO_CANCELAMENTO = "110111"
TIPO_EVENTO_ENCERRAMENTO = "110112"

DESCRICAO_EVENTO = {
    "110110": "Carta de Correção",
    "110111": "Cancelamento",
    "110112": "Encerramento",
    "110114": "Inclusão de Condutor",
    "110140": "EPEC",
    "110170": "Cancelamento por Substituição",
}


def descricao_evento(tipo_evento: str) -> str:
    return DESCRICAO_EVENTO.get(tipo_evento, f"Evento {tipo_evento}")


def _montar_evento(evento: Evento, ret: RetEvento, *, chave: str, campo_chave: str, tipo_documento: str) -> EventoParsed:
    if not chave:
        raise IdentificadorAusente(f"XML inválido: identificador ({campo_chave}) não encontrado.", campo=campo_chave)
    if len(chave) != TAMANHO_CHAVE:
        raise ChaveAcessoInvalida(f"Chave de acesso inválida: {chave}", chave=chave, campo=campo_chave)

    inf = evento.infEvento
    info_ret = ret.infEvento

    return EventoParsed(
        chave=chave,
        tipo_evento=inf.tpEvento,
        descricao=descricao_evento(inf.tpEvento),
        sequencia=inf.nSeqEvento,
        data_evento=parse_data_hora("infEvento/dhEvento", inf.dhEvento),
        protocolo=info_ret.nProt,
        status=info_ret.cStat,
        motivo=info_ret.xMotivo,
        tipo_documento=tipo_documento,
    )


def parse_evento_cte(conteudo: bytes) -> EventoParsed:
    raiz = parse_xml(conteudo)
    proc = vincular_raiz(ProcEventoCTe, raiz, aceitas={"eventoCTe": "eventoCTe"})

    inf = proc.eventoCTe.infEvento
    resultado = _montar_evento(
        proc.eventoCTe,
        proc.retEventoCTe,
        chave=inf.chCTe,
        campo_chave="infEvento/chCTe",
        tipo_documento="CTE",
    )

    canc = inf.detEvento.evCancCTe
    if canc is not None:
        resultado.justificativa = canc.xJust
        resultado.protocolo_referencia = canc.nProt

    return resultado


def parse_evento_mdfe(conteudo: bytes) -> EventoParsed:
    """
    Evento de MDF-e: cancelamento (evCancMDFe) ou encerramento (evEncMDFe).
    """
    raiz = parse_xml(conteudo)
    proc = vincular_raiz(ProcEventoMDFe, raiz, aceitas={"eventoMDFe": "eventoMDFe"})

    inf = proc.eventoMDFe.infEvento
    resultado = _montar_evento(
        proc.eventoMDFe,
        proc.retEventoMDFe,
        chave=inf.chMDFe,
        campo_chave="infEvento/chMDFe",
        tipo_documento="MDFE",
    )

    det = inf.detEvento
    if det.evCancMDFe is not None:
        resultado.justificativa = det.evCancMDFe.xJust
        resultado.protocolo_referencia = det.evCancMDFe.nProt

    if det.evEncMDFe is not None:
        enc = det.evEncMDFe
        resultado.protocolo_referencia = enc.nProt
        if enc.dtEnc:
            resultado.data_encerramento = parse_data("evEncMDFe/dtEnc", enc.dtEnc)
        resultado.municipio_encerramento = enc.cMun

    return resultado
