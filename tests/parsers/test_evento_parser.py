# tests/parsers/test_evento_parser.py
import datetime

import pytest

from ingestao.exceptions import ChaveAcessoInvalida, IdentificadorAusente, XmlMalformado
from parsers.evento_parser import descricao_evento, parse_evento_cte, parse_evento_mdfe
from tests.fixtures.xml_factory import evento_cte_xml, evento_mdfe_xml, montar_chave


def test_cancelamento_de_cte():
    chave = montar_chave()
    ev = parse_evento_cte(evento_cte_xml(chave=chave))

    assert ev.chave == chave
    assert ev.tipo_evento == "110111"
    assert ev.descricao == "Cancelamento"
    assert ev.sequencia == "1"
    assert ev.tipo_documento == "CTE"
    assert ev.protocolo == "131240000000099"
    assert ev.protocolo_referencia == "131240000000001"
    assert ev.status == "135"
    assert ev.justificativa.startswith("Erro na emissao")
    assert ev.data_evento.isoformat() == "2024-05-07T08:00:00-03:00"


def test_encerramento_de_mdfe():
    chave = montar_chave(modelo="58")
    ev = parse_evento_mdfe(evento_mdfe_xml(chave=chave, dt_enc="2024-05-08", c_mun="3550308"))

    assert ev.tipo_evento == "110112"
    assert ev.descricao == "Encerramento"
    assert ev.tipo_documento == "MDFE"
    assert ev.data_encerramento == datetime.date(2024, 5, 8)
    assert ev.municipio_encerramento == "3550308"
    assert ev.protocolo_referencia == "931240000000001"


def test_cancelamento_de_mdfe():
    chave = montar_chave(modelo="58")
    ev = parse_evento_mdfe(evento_mdfe_xml(chave=chave, tp_evento="110111"))

    assert ev.tipo_evento == "110111"
    assert ev.justificativa.startswith("Cancelamento por erro")
    assert ev.data_encerramento is None


def test_evento_sem_detalhe_conhecido():
    chave = montar_chave(modelo="58")
    ev = parse_evento_mdfe(evento_mdfe_xml(chave=chave, tp_evento="110114"))

    assert ev.descricao == "Inclusão de Condutor"
    assert ev.justificativa == ""
    assert ev.protocolo_referencia == ""


@pytest.mark.parametrize(
    "codigo, descricao",
    [
        ("110110", "Carta de Correção"),
        ("110111", "Cancelamento"),
        ("110112", "Encerramento"),
        ("999999", "Evento 999999"),
    ],
)
def test_descricao_evento(codigo, descricao):
    assert descricao_evento(codigo) == descricao


def test_chave_do_evento_com_tamanho_errado():
    with pytest.raises(ChaveAcessoInvalida) as exc:
        parse_evento_cte(evento_cte_xml(chave="123"))
    assert exc.value.campo == "infEvento/chCTe"


def test_evento_sem_chave_e_identificador_ausente():
    """
    Cenário:
    - Evento de CT-e com <chCTe> vazio.
    Esperado:
    - IdentificadorAusente (não ChaveAcessoInvalida), apontando o campo.
    """
    with pytest.raises(IdentificadorAusente) as exc:
        parse_evento_cte(evento_cte_xml(chave=""))
    assert exc.value.campo == "infEvento/chCTe"

    with pytest.raises(IdentificadorAusente) as exc:
        parse_evento_mdfe(evento_mdfe_xml(chave=""))
    assert exc.value.campo == "infEvento/chMDFe"


def test_raiz_de_outro_documento():
    with pytest.raises(XmlMalformado):
        parse_evento_mdfe(evento_cte_xml(chave=montar_chave()))
