# tests/parsers/test_cte_parser.py
from decimal import Decimal

import pytest

from ingestao.exceptions import (
    ChaveAcessoInvalida,
    DataInvalida,
    IdentificadorAusente,
    NumeroInvalido,
    XmlMalformado,
)
from parsers.cte_parser import determinar_modalidade_frete, parse_cte
from tests.fixtures.xml_factory import (
    CHAVE_CENARIO,
    CNPJ_DESTINATARIO,
    CNPJ_EMITENTE,
    CNPJ_REMETENTE,
    cte_xml,
    montar_chave,
)


def test_cenario_tomador_destinatario_fob():
    """
    Cenário:
    - cteProc com Id "CTe3123...0123", nCT=123, toma=3.
    Esperado:
    - chave sem o prefixo, número 123, modalidade FOB e tomador = destinatário.
    """
    parsed = parse_cte(cte_xml(chave=CHAVE_CENARIO, numero=123, toma="3"))

    assert parsed.chave == CHAVE_CENARIO
    assert parsed.numero == 123
    assert parsed.modalidade_frete == "FOB"
    assert parsed.tomador is parsed.destinatario
    assert parsed.tomador.cnpj == CNPJ_DESTINATARIO
    assert parsed.indicador_tomador == "3"


@pytest.mark.parametrize(
    "toma, modalidade, papel",
    [
        ("0", "CIF", "remetente"),
        ("1", "CIF", "remetente"),
        ("2", "FOB", "destinatario"),
        ("3", "FOB", "destinatario"),
        ("4", "CIF", None),
        ("9", "CIF", None),
    ],
)
def test_indicador_do_tomador(toma, modalidade, papel):
    parsed = parse_cte(cte_xml(toma=toma))

    assert parsed.modalidade_frete == modalidade
    assert determinar_modalidade_frete(toma) == modalidade
    if papel is None:
        assert parsed.tomador is None
    else:
        assert parsed.tomador is getattr(parsed, papel)


def test_campos_principais_do_cte():
    chave = montar_chave(numero=42)
    parsed = parse_cte(cte_xml(chave=chave, numero=42))

    assert parsed.tipo == "CTE"
    assert parsed.serie == "1"
    assert parsed.cfop == "6353"
    assert parsed.valor_total == Decimal("1500.00")
    # vCarga com vírgula decimal
    assert parsed.valor_carga == Decimal("25000.50")
    assert (parsed.uf_inicio, parsed.uf_fim) == ("MG", "SP")
    assert (parsed.municipio_inicio, parsed.municipio_fim) == ("Belo Horizonte", "Sao Paulo")
    assert parsed.data_emissao.isoformat() == "2024-05-06T09:39:00-03:00"

    assert parsed.emitente.cnpj == CNPJ_EMITENTE
    assert parsed.emitente.razao_social == "TRANSPORTADORA EXEMPLO LTDA"
    assert parsed.emitente.nome_fantasia == "TRANSEX"
    assert parsed.remetente.cnpj == CNPJ_REMETENTE
    assert parsed.remetente.ie == "ISENTO"
    assert parsed.destinatario.uf == "SP"
    assert parsed.destinatario.municipio == "Sao Paulo"

    assert parsed.status == "100"
    assert parsed.protocolo == "131240000000001"
    assert parsed.data_autorizacao is not None
    assert parsed.rntrc == "12345678"
    assert parsed.observacoes == "Entrega agendada"


def test_placa_vem_do_obscont_placa():
    parsed = parse_cte(cte_xml(placa="DEF4G56"))
    assert parsed.placa_veiculo == "DEF4G56"


def test_sem_obscont_placa_fica_vazia():
    parsed = parse_cte(cte_xml(placa=""))
    assert parsed.placa_veiculo == ""


def test_chaves_nfe_filtradas():
    """
    Só chaves com 44 caracteres entram; repetidas aparecem uma vez.
    """
    boa = "3" * 44
    parsed = parse_cte(cte_xml(chaves_nfe=(boa, "123", boa)))
    assert parsed.chaves_nfe == [boa]


def test_remetente_pessoa_fisica():
    parsed = parse_cte(cte_xml(rem_cnpj="", rem_cpf="52998224725"))
    assert parsed.remetente.cnpj == ""
    assert parsed.remetente.cpf == "52998224725"
    assert parsed.remetente.documento == "52998224725"


def test_cte_sem_envelope_nao_tem_protocolo():
    parsed = parse_cte(cte_xml(raiz="CTe"))

    assert parsed.status == ""
    assert parsed.protocolo == ""
    assert parsed.data_autorizacao is None


def test_cte_sem_protocolo_no_envelope():
    parsed = parse_cte(cte_xml(com_protocolo=False))
    assert parsed.status == ""


def test_cte_sem_namespace():
    xml = cte_xml().replace(b' xmlns="http://www.portalfiscal.inf.br/cte"', b"")
    parsed = parse_cte(xml)
    assert parsed.numero == 1


def test_identificador_ausente():
    xml = cte_xml().replace(b'Id="CTe', b'Outro="CTe')
    with pytest.raises(IdentificadorAusente) as exc:
        parse_cte(xml)
    assert exc.value.campo == "infCte/@Id"


def test_chave_curta():
    with pytest.raises(ChaveAcessoInvalida):
        parse_cte(cte_xml(chave="3124"))


def test_valor_invalido_informa_o_campo():
    with pytest.raises(NumeroInvalido) as exc:
        parse_cte(cte_xml(v_prest="mil"))
    assert exc.value.campo == "vPrest/vTPrest"


def test_numero_negativo_rejeitado_na_decodificacao():
    xml = cte_xml().replace(b"<nCT>1</nCT>", b"<nCT>-5</nCT>")
    assert b"<nCT>-5</nCT>" in xml

    with pytest.raises(NumeroInvalido) as exc:
        parse_cte(xml)
    assert exc.value.campo == "ide/nCT"


def test_data_emissao_invalida():
    with pytest.raises(DataInvalida):
        parse_cte(cte_xml(dh_emi="ontem"))


def test_xml_malformado():
    with pytest.raises(XmlMalformado):
        parse_cte(b"<cteProc><CTe>")


def test_raiz_inesperada():
    with pytest.raises(XmlMalformado):
        parse_cte(b"<nfeProc><NFe/></nfeProc>")


def test_entidade_externa_nao_e_resolvida():
    """
    DTD com entidade externa não pode vazar conteúdo de arquivo local.
    """
    xml = (
        b'<?xml version="1.0"?><!DOCTYPE cteProc [<!ENTITY x SYSTEM "file:///etc/passwd">]>'
        b"<cteProc><CTe><infCte Id=\"CTe" + b"3" * 44 + b"\"><ide><nCT>1</nCT>"
        b"<dhEmi>2024-05-06T09:39:00-03:00</dhEmi><xMunIni>&x;</xMunIni></ide></infCte></CTe></cteProc>"
    )
    try:
        parsed = parse_cte(xml)
    except XmlMalformado:
        return
    assert "root:" not in parsed.municipio_inicio
