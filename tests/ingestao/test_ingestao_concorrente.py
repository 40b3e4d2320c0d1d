# tests/ingestao/test_ingestao_concorrente.py
"""
Ingestões simultâneas, cada uma na sua thread e conexão.

No SQLite as transações são serializadas (BEGIN IMMEDIATE); com
DB_ENGINE=postgresql os INSERTs disputam de fato a mesma chave natural.
"""
from concurrent.futures import ThreadPoolExecutor

import pytest
from django.db import connections

from documentos.models import DocumentoFiscal, Empresa
from ingestao.services.processamento_service import processar_upload
from tests.fixtures.xml_factory import CNPJ_DESTINATARIO, CNPJ_EMITENTE, CNPJ_REMETENTE, cte_xml, montar_chave
from uploads.models import Upload, UploadStatus

pytestmark = pytest.mark.django_db(transaction=True)

QTD_DOCUMENTOS = 12


def _processar_em_thread(args):
    upload_id, conteudo = args
    try:
        return processar_upload(upload_id, conteudo)
    finally:
        connections.close_all()


def test_ctes_distintos_com_as_mesmas_partes_criam_cada_empresa_uma_vez(sem_espera):
    """
    Cenário:
    - 12 CT-es com chaves distintas, todos com o mesmo emitente, remetente e
      destinatário, ainda inexistentes na base.
    - Processados ao mesmo tempo por 6 threads.
    Esperado:
    - Uma única linha de Empresa por CNPJ.
    - Os 12 documentos gravados e todos os uploads PROCESSED.
    """
    tarefas = []
    for n in range(QTD_DOCUMENTOS):
        numero = 500 + n
        upload = Upload.objects.create(nome_arquivo=f"cte_{numero}.xml")
        tarefas.append((upload.id, cte_xml(chave=montar_chave(numero=numero), numero=numero)))

    with ThreadPoolExecutor(max_workers=6) as pool:
        resultados = list(pool.map(_processar_em_thread, tarefas))

    assert all(r is not None for r in resultados)
    assert Empresa.objects.filter(cnpj=CNPJ_REMETENTE).count() == 1
    assert Empresa.objects.filter(cnpj=CNPJ_EMITENTE).count() == 1
    assert Empresa.objects.filter(cnpj=CNPJ_DESTINATARIO).count() == 1
    assert DocumentoFiscal.objects.count() == QTD_DOCUMENTOS
    assert Upload.objects.filter(status=UploadStatus.PROCESSADO).count() == QTD_DOCUMENTOS
