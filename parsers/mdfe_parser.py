# parsers/mdfe_parser.py
from __future__ import annotations

from parsers.campos import (
    extrair_chave,
    filtrar_chaves,
    parse_data_hora,
    parse_data_hora_opcional,
    parse_decimal,
    parse_inteiro,
)
from parsers.cte_parser import empresa_emitente
from parsers.dto import MdfeParsed, SeguradoraParsed
from parsers.schemas import MDFeProc
from parsers.xml_binding import parse_xml, vincular_raiz

PREFIXO_CHAVE_MDFE = "MDFe"


def parse_mdfe(conteudo: bytes) -> MdfeParsed:
    """
    Decodifica um MDF-e (mdfeProc, ou MDFe sem protocolo) em MdfeParsed.

    - Veículo: infModal/rodo/veicTracao; motorista = primeiro condutor.
    - Documentos: infDoc/infMunDescarga/{infCTe/chCTe, infNFe/chNFe}.
    - Totais: tot. Seguro: todos os <seg>, na ordem do XML.
    """
    raiz = parse_xml(conteudo)
    proc = vincular_raiz(MDFeProc, raiz, aceitas={"MDFe": "MDFe"})

    inf = proc.MDFe.infMDFe
    ide = inf.ide

    chave = extrair_chave(inf.Id, PREFIXO_CHAVE_MDFE, campo="infMDFe/@Id")

    descargas = inf.infDoc.infMunDescarga
    municipio_inicio = ide.infMunCarrega[0].xMunCarrega if ide.infMunCarrega else ""
    municipio_fim = descargas[-1].xMunDescarga if descargas else ""

    parsed = MdfeParsed(
        chave=chave,
        numero=parse_inteiro("ide/nMDF", ide.nMDF),
        serie=ide.serie,
        data_emissao=parse_data_hora("ide/dhEmi", ide.dhEmi),
        uf_inicio=ide.UFIni,
        uf_fim=ide.UFFim,
        municipio_inicio=municipio_inicio,
        municipio_fim=municipio_fim,
        emitente=empresa_emitente(inf.emit),
    )

    prot = proc.protMDFe.infProt
    if prot.cStat:
        parsed.status = prot.cStat
        parsed.protocolo = prot.nProt
        parsed.data_autorizacao = parse_data_hora_opcional("infProt/dhRecbto", prot.dhRecbto)

    rodo = inf.infModal.rodo
    veic = rodo.veicTracao
    parsed.placa_veiculo = veic.placa
    parsed.uf_veiculo = veic.UF
    parsed.renavam = veic.RENAVAM
    parsed.tara_kg = parse_inteiro("veicTracao/tara", veic.tara)
    parsed.capacidade_kg = parse_inteiro("veicTracao/capKG", veic.capKG)
    parsed.rntrc = rodo.infANTT.RNTRC

    if veic.condutor:
        parsed.nome_motorista = veic.condutor[0].xNome
        parsed.cpf_motorista = veic.condutor[0].CPF

    chaves_cte: list[str] = []
    chaves_nfe: list[str] = []
    for descarga in descargas:
        chaves_cte.extend(c.chCTe for c in descarga.infCTe)
        chaves_nfe.extend(n.chNFe or n.chave for n in descarga.infNFe)
    parsed.chaves_cte = filtrar_chaves(chaves_cte)
    parsed.chaves_nfe = filtrar_chaves(chaves_nfe)

    tot = inf.tot
    parsed.qtd_cte = parse_inteiro("tot/qCTe", tot.qCTe)
    parsed.qtd_nfe = parse_inteiro("tot/qNFe", tot.qNFe)
    parsed.valor_total_carga = parse_decimal("tot/vCarga", tot.vCarga)
    parsed.peso_bruto_total = parse_decimal("tot/qCarga", tot.qCarga)

    parsed.produto_predominante = inf.prodPred.xProd
    parsed.tipo_carga = inf.prodPred.tpCarga

    parsed.seguradoras = [
        SeguradoraParsed(
            nome=seg.infSeg.xSeg,
            cnpj=seg.infSeg.CNPJ,
            apolice=seg.nApol,
            averbacao=seg.nAver[0] if seg.nAver else "",
        )
        for seg in inf.seg
    ]

    return parsed
