# tests/uploads/test_importar_xml_command.py
import io

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from documentos.models import DocumentoFiscal
from tests.fixtures.xml_factory import cte_xml, evento_cte_xml, mdfe_xml, montar_chave
from uploads.models import Upload, UploadStatus

pytestmark = pytest.mark.django_db


def _rodar(*args):
    out, err = io.StringIO(), io.StringIO()
    call_command("importar_xml", *args, "--sincrono", stdout=out, stderr=err)
    return out.getvalue(), err.getvalue()


def test_importa_diretorio(tmp_path):
    """
    Cenário:
    - Diretório com um CT-e, o cancelamento dele, um MDF-e e um .txt.
    Esperado:
    - Três uploads PROCESSED (na ordem alfabética dos arquivos), aviso para
      o .txt e resumo sem erros.
    """
    chave = montar_chave(numero=90)
    (tmp_path / "01_cte.xml").write_bytes(cte_xml(chave=chave, numero=90))
    (tmp_path / "02_canc.xml").write_bytes(evento_cte_xml(chave=chave))
    (tmp_path / "03_mdfe.xml").write_bytes(mdfe_xml())
    (tmp_path / "leia-me.txt").write_text("nada")

    out, err = _rodar(str(tmp_path))

    assert "4 arquivo(s) encontrado(s)" in out
    assert f"OK    01_cte.xml -> {chave}" in out
    assert "OK    02_canc.xml" in out
    assert "Concluído: 3 processado(s), 0 com erro." in out
    assert "leia-me.txt" in err

    assert Upload.objects.filter(status=UploadStatus.PROCESSADO).count() == 3
    assert DocumentoFiscal.objects.get(chave_acesso=chave).cancelado is True


def test_arquivo_com_erro_aparece_no_resumo(tmp_path):
    ruim = tmp_path / "ruim.xml"
    ruim.write_bytes(b"<cteProc><CTe>")
    bom = tmp_path / "bom.xml"
    bom.write_bytes(cte_xml())

    out, _ = _rodar(str(ruim), str(bom))

    assert "ERRO  ruim.xml:" in out
    assert "OK    bom.xml" in out
    assert "Concluído: 1 processado(s), 1 com erro." in out


def test_modo_lote(tmp_path):
    (tmp_path / "a.xml").write_bytes(cte_xml())
    (tmp_path / "b.txt").write_text("x")

    out, _ = _rodar(str(tmp_path), "--lote")

    assert "Concluído: 1 processado(s), 0 com erro." in out
    assert Upload.objects.count() == 1


def test_lote_acima_do_limite(tmp_path, settings):
    settings.UPLOAD_MAX_ARQUIVOS_LOTE = 2
    for i in range(3):
        (tmp_path / f"{i}.xml").write_bytes(cte_xml())

    with pytest.raises(CommandError, match="Máximo de 2 arquivos"):
        _rodar(str(tmp_path), "--lote")
    assert Upload.objects.count() == 0


def test_caminho_inexistente(tmp_path):
    with pytest.raises(CommandError, match="Caminho não encontrado"):
        _rodar(str(tmp_path / "nao-existe.xml"))


def test_diretorio_vazio(tmp_path):
    with pytest.raises(CommandError, match="Nenhum arquivo"):
        _rodar(str(tmp_path))
