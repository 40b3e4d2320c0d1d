# uploads/services/intake_service.py

import logging
from typing import Iterable

from django.conf import settings
from django.core.exceptions import ValidationError

from ingestao.services.processamento_service import finalizar_upload, processar_upload
from uploads.dispatcher import IngestaoDispatcher
from uploads.exceptions import ArquivoNaoXml, LimiteLoteExcedido, UploadNaoEncontrado
from uploads.models import Upload, UploadStatus
from uploads.serializers import UploadSerializer

logger = logging.getLogger("transporte.uploads")

EXTENSAO_XML = ".xml"

MENSAGEM_FALHA_AGENDAMENTO = "Ingestão não agendada: serviço de processamento encerrado."


def _eh_xml(nome_arquivo: str) -> bool:
    return (nome_arquivo or "").lower().endswith(EXTENSAO_XML)


def _agendar(reserva, upload: Upload, conteudo: bytes):
    try:
        return reserva.despachar(processar_upload, upload.id, conteudo)
    except RuntimeError:
        # Executor encerrado: o upload não pode ficar PENDING para sempre
        logger.exception(
            "Falha ao agendar ingestão",
            extra={"event": "upload_agendamento_falhou", "upload_id": str(upload.id)},
        )
        finalizar_upload(upload.id, status=UploadStatus.FALHOU, detalhes_erro=MENSAGEM_FALHA_AGENDAMENTO)
        raise


def receber_arquivo(nome_arquivo: str, conteudo: bytes, *, dispatcher: IngestaoDispatcher):
    """
    Registra o Upload (PENDING) e agenda a ingestão. Retorna o id do Upload
    sem esperar o processamento.

    Deve ser chamada fora de transaction.atomic: a tarefa roda em outra
    conexão e precisa enxergar o Upload já gravado.
    """
    if not _eh_xml(nome_arquivo):
        raise ArquivoNaoXml(nome_arquivo)

    with dispatcher.reservar(1) as reserva:
        upload = Upload.objects.create(nome_arquivo=nome_arquivo)
        _agendar(reserva, upload, conteudo)

    logger.info(
        "Upload recebido",
        extra={"event": "upload_recebido", "upload_id": str(upload.id), "nome_arquivo": nome_arquivo},
    )
    return upload.id


def receber_lote(arquivos: Iterable[tuple[str, bytes]], *, dispatcher: IngestaoDispatcher) -> list:
    """
    Lote de (nome, conteúdo).

    - Mais de UPLOAD_MAX_ARQUIVOS_LOTE entradas: rejeita o lote inteiro,
      antes de gravar ou agendar qualquer coisa.
    - Nomes sem extensão .xml são ignorados (com log de aviso).
    - A capacidade do dispatcher é reservada para o lote todo de uma vez.
    """
    arquivos = list(arquivos)
    limite = getattr(settings, "UPLOAD_MAX_ARQUIVOS_LOTE", 100)
    if len(arquivos) > limite:
        raise LimiteLoteExcedido(len(arquivos), limite)

    aceitos = []
    for nome, conteudo in arquivos:
        if not _eh_xml(nome):
            logger.warning(
                "Arquivo ignorado no lote: extensão não é .xml",
                extra={"event": "upload_lote_ignorado", "nome_arquivo": nome},
            )
            continue
        aceitos.append((nome, conteudo))

    if not aceitos:
        return []

    ids = []
    with dispatcher.reservar(len(aceitos)) as reserva:
        for nome, conteudo in aceitos:
            upload = Upload.objects.create(nome_arquivo=nome)
            _agendar(reserva, upload, conteudo)
            ids.append(upload.id)

    logger.info(
        "Lote recebido",
        extra={
            "event": "upload_lote_recebido",
            "recebidos": len(arquivos),
            "agendados": len(ids),
        },
    )
    return ids


def consultar_upload(upload_id) -> dict:
    try:
        upload = Upload.objects.get(id=upload_id)
    except (Upload.DoesNotExist, ValidationError, ValueError):
        raise UploadNaoEncontrado(upload_id)
    return UploadSerializer(upload).data
