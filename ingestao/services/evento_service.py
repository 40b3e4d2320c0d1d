# ingestao/services/evento_service.py

import logging
from dataclasses import dataclass
from datetime import datetime, time

from django.db import transaction
from django.utils import timezone

from documentos.models import STATUS_CANCELADO, DocumentoFiscal, TipoDocumento
from ingestao.exceptions import DocumentoNaoEncontrado, EventoNaoSuportado
from parsers.dto import EventoParsed
from parsers.evento_parser import TIPO_EVENTO_CANCELAMENTO, TIPO_EVENTO_ENCERRAMENTO

logger = logging.getLogger("transporte.ingestao")

_ROTULO = {
    TipoDocumento.CTE.value: "CT-e",
    TipoDocumento.MDFE.value: "MDF-e",
}


@dataclass
class EventoAplicado:
    chave: str
    tipo_evento: str
    descricao: str
    # False quando o documento já estava no estado final (evento repetido)
    alterou: bool
    mensagem: str


def _data_encerramento(evento: EventoParsed) -> datetime:
    if evento.data_encerramento is not None:
        return timezone.make_aware(datetime.combine(evento.data_encerramento, time.min))
    return evento.data_evento


def _cancelar(doc: DocumentoFiscal) -> bool:
    if doc.cancelado:
        return False
    doc.cancelado = True
    doc.status = STATUS_CANCELADO
    doc.save(update_fields=["cancelado", "status", "updated_at"])
    return True


def _encerrar(doc: DocumentoFiscal, evento: EventoParsed) -> bool:
    info = doc.mdfe_info
    if info.encerrado:
        return False
    info.encerrado = True
    info.data_encerramento = _data_encerramento(evento)
    info.local_encerramento = evento.municipio_encerramento or ""
    info.save(update_fields=["encerrado", "data_encerramento", "local_encerramento"])
    return True


def aplicar_evento(evento: EventoParsed) -> EventoAplicado:
    """
    Aplica um evento (cancelamento / encerramento) ao documento da chave.

    Regras:
      - Documento inexistente -> DocumentoNaoEncontrado. Não cria placeholder
        e não guarda o evento para depois.
      - Documento travado com select_for_update durante a transição.
      - Cancelamento: cancelado=True, status=101.
      - Encerramento: só MDF-e; encerrado=True + data/local.
      - Evento repetido sobre documento já cancelado/encerrado: sucesso sem alteração.
      - Qualquer outro tipo de evento -> EventoNaoSuportado.
    """
    tipo_doc = evento.tipo_documento or None
    rotulo = _ROTULO.get(tipo_doc)

    with transaction.atomic():
        qs = DocumentoFiscal.objects.select_for_update().filter(chave_acesso=evento.chave)
        if tipo_doc:
            qs = qs.filter(tipo=tipo_doc)
        doc = qs.first()

        if doc is None:
            logger.warning(
                "Evento para documento inexistente",
                extra={
                    "event": "evento_documento_nao_encontrado",
                    "chave": evento.chave,
                    "tipo_evento": evento.tipo_evento,
                },
            )
            raise DocumentoNaoEncontrado(evento.chave, rotulo)

        rotulo = _ROTULO.get(doc.tipo, doc.tipo)

        if evento.tipo_evento == TIPO_EVENTO_CANCELAMENTO:
            alterou = _cancelar(doc)
        elif evento.tipo_evento == TIPO_EVENTO_ENCERRAMENTO and doc.tipo == TipoDocumento.MDFE:
            alterou = _encerrar(doc, evento)
        else:
            raise EventoNaoSuportado(evento.tipo_evento, rotulo)

    logger.info(
        "Evento aplicado" if alterou else "Evento repetido ignorado",
        extra={
            "event": "evento_aplicado" if alterou else "evento_repetido",
            "chave": evento.chave,
            "tipo_evento": evento.tipo_evento,
        },
    )

    return EventoAplicado(
        chave=evento.chave,
        tipo_evento=evento.tipo_evento,
        descricao=evento.descricao,
        alterou=alterou,
        mensagem=f"Evento {evento.descricao} processado para {rotulo}",
    )
