# tests/uploads/test_intake_service.py
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from documentos.models import DocumentoFiscal
from uploads.dispatcher import ExecutorSincrono, IngestaoDispatcher
from uploads.exceptions import ArquivoNaoXml, FilaIngestaoCheia, LimiteLoteExcedido, UploadNaoEncontrado
from uploads.models import Upload, UploadStatus
from uploads.services.intake_service import (
    MENSAGEM_FALHA_AGENDAMENTO,
    consultar_upload,
    receber_arquivo,
    receber_lote,
)
from tests.fixtures.xml_factory import cte_xml, mdfe_xml, montar_chave

pytestmark = pytest.mark.django_db


def test_arquivo_recebido_e_processado(dispatcher):
    chave = montar_chave(numero=70)
    upload_id = receber_arquivo("cte.xml", cte_xml(chave=chave, numero=70), dispatcher=dispatcher)

    dados = consultar_upload(upload_id)
    assert dados["id"] == str(upload_id)
    assert dados["nome_arquivo"] == "cte.xml"
    assert dados["status"] == UploadStatus.PROCESSADO
    assert dados["status_display"] == "Processado"
    assert dados["tipo_documento"] == "CTE"
    assert dados["chave_documento"] == chave
    assert dados["detalhes_erro"] is None
    assert dados["processado_em"] is not None
    assert dispatcher.em_voo == 0


def test_extensao_em_maiusculas_aceita(dispatcher):
    upload_id = receber_arquivo("CTE.XML", cte_xml(), dispatcher=dispatcher)
    assert Upload.objects.get(id=upload_id).status == UploadStatus.PROCESSADO


def test_arquivo_que_nao_e_xml_rejeitado(dispatcher):
    with pytest.raises(ArquivoNaoXml) as exc:
        receber_arquivo("nota.pdf", b"%PDF", dispatcher=dispatcher)

    assert exc.value.nome_arquivo == "nota.pdf"
    assert Upload.objects.count() == 0


def test_upload_com_falha_traz_detalhe(dispatcher):
    upload_id = receber_arquivo("ruim.xml", b"<cteProc><CTe>", dispatcher=dispatcher)

    dados = consultar_upload(upload_id)
    assert dados["status"] == UploadStatus.FALHOU
    assert dados["chave_documento"] is None
    assert dados["detalhes_erro"]


def test_lote_ignora_arquivos_que_nao_sao_xml(dispatcher):
    ids = receber_lote(
        [
            ("cte.xml", cte_xml(chave=montar_chave(numero=71), numero=71)),
            ("leia-me.txt", b"nada"),
            ("mdfe.xml", mdfe_xml()),
        ],
        dispatcher=dispatcher,
    )

    assert len(ids) == 2
    nomes = set(Upload.objects.values_list("nome_arquivo", flat=True))
    assert nomes == {"cte.xml", "mdfe.xml"}
    assert Upload.objects.filter(status=UploadStatus.PROCESSADO).count() == 2
    assert DocumentoFiscal.objects.count() == 2


def test_lote_sem_nenhum_xml(dispatcher):
    assert receber_lote([("a.txt", b"")], dispatcher=dispatcher) == []
    assert Upload.objects.count() == 0


def test_lote_acima_do_limite_rejeitado_por_inteiro(dispatcher, settings):
    """
    Cenário:
    - Limite de 100 arquivos; lote com 101.
    Esperado:
    - Rejeitado antes de gravar ou agendar qualquer coisa.
    """
    settings.UPLOAD_MAX_ARQUIVOS_LOTE = 100
    arquivos = [(f"{i}.xml", cte_xml()) for i in range(101)]

    with pytest.raises(LimiteLoteExcedido) as exc:
        receber_lote(arquivos, dispatcher=dispatcher)

    assert exc.value.quantidade == 101
    assert exc.value.limite == 100
    assert Upload.objects.count() == 0
    assert dispatcher.em_voo == 0


def test_backpressure_rejeita_sem_criar_upload():
    """
    Cenário:
    - Dispatcher com 2 vagas, ambas ocupadas.
    Esperado:
    - Novo arquivo rejeitado com FilaIngestaoCheia e nenhum Upload criado;
      liberadas as vagas, o arquivo é aceito.
    """
    d = IngestaoDispatcher(executor=ExecutorSincrono(), max_pendentes=2, fechar_conexoes=False)
    ocupadas = d.reservar(2)

    with pytest.raises(FilaIngestaoCheia) as exc:
        receber_arquivo("cte.xml", cte_xml(), dispatcher=d)
    assert exc.value.disponiveis == 0
    assert Upload.objects.count() == 0

    ocupadas.liberar()
    receber_arquivo("cte.xml", cte_xml(), dispatcher=d)
    assert Upload.objects.count() == 1


def test_lote_maior_que_as_vagas_rejeitado_por_inteiro():
    d = IngestaoDispatcher(executor=ExecutorSincrono(), max_pendentes=3, fechar_conexoes=False)
    ocupada = d.reservar(1)

    arquivos = [(f"{i}.xml", cte_xml(chave=montar_chave(numero=80 + i), numero=80 + i)) for i in range(3)]
    with pytest.raises(FilaIngestaoCheia) as exc:
        receber_lote(arquivos, dispatcher=d)

    assert exc.value.solicitadas == 3
    assert exc.value.disponiveis == 2
    assert Upload.objects.count() == 0
    ocupada.liberar()


def test_consultar_upload_inexistente():
    with pytest.raises(UploadNaoEncontrado):
        consultar_upload(uuid.uuid4())
    with pytest.raises(UploadNaoEncontrado):
        consultar_upload("nao-e-uuid")


def test_upload_pendente_visivel_na_consulta():
    up = Upload.objects.create(nome_arquivo="fila.xml")

    dados = consultar_upload(up.id)
    assert dados["status"] == UploadStatus.PENDENTE
    assert dados["chave_documento"] is None
    assert dados["processado_em"] is None


def test_executor_encerrado_finaliza_o_upload_como_falho():
    """
    Cenário:
    - Pool de workers já encerrado quando o arquivo chega.
    Esperado:
    - O erro de agendamento sobe, mas o Upload criado não fica PENDING:
      termina FAILED com o motivo, e a vaga reservada é devolvida.
    """
    d = IngestaoDispatcher(executor=ThreadPoolExecutor(max_workers=1), max_pendentes=2, fechar_conexoes=False)
    d.encerrar()

    with pytest.raises(RuntimeError):
        receber_arquivo("cte.xml", cte_xml(), dispatcher=d)

    upload = Upload.objects.get()
    assert upload.status == UploadStatus.FALHOU
    assert upload.detalhes_erro == MENSAGEM_FALHA_AGENDAMENTO
    assert upload.processado_em is not None
    assert d.em_voo == 0
