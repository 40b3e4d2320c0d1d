# tests/parsers/test_detector.py
import pytest

from parsers.detector import TipoXml, detectar_tipo
from tests.fixtures.xml_factory import (
    cte_xml,
    evento_cte_xml,
    evento_mdfe_xml,
    mdfe_xml,
    montar_chave,
)


def test_detecta_cada_tipo_de_documento():
    chave_cte = montar_chave()
    chave_mdfe = montar_chave(modelo="58")

    assert detectar_tipo(cte_xml()) == TipoXml.CTE
    assert detectar_tipo(cte_xml(raiz="CTe")) == TipoXml.CTE
    assert detectar_tipo(mdfe_xml()) == TipoXml.MDFE
    assert detectar_tipo(evento_cte_xml(chave=chave_cte)) == TipoXml.EVENTO_CTE
    assert detectar_tipo(evento_mdfe_xml(chave=chave_mdfe)) == TipoXml.EVENTO_MDFE


def test_mdfe_com_ctes_vinculados_continua_mdfe():
    """
    infCTe dentro do MDF-e não pode ser confundido com um CT-e.
    """
    xml = mdfe_xml(chaves_cte=(montar_chave(numero=5),))
    assert detectar_tipo(xml) == TipoXml.MDFE


def test_aceita_texto_alem_de_bytes():
    assert detectar_tipo(cte_xml().decode("utf-8")) == TipoXml.CTE


@pytest.mark.parametrize(
    "conteudo",
    [
        b"",
        b"<nfeProc><NFe/></nfeProc>",
        b"texto qualquer",
        b"<cteproc/>",
    ],
)
def test_conteudo_sem_marcador_conhecido(conteudo):
    assert detectar_tipo(conteudo) == TipoXml.DESCONHECIDO


def test_is_evento():
    assert TipoXml.EVENTO_CTE.is_evento
    assert TipoXml.EVENTO_MDFE.is_evento
    assert not TipoXml.CTE.is_evento
    assert not TipoXml.DESCONHECIDO.is_evento
