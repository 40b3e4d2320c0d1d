# parsers/cte_parser.py
from __future__ import annotations

import logging

from parsers.campos import (
    extrair_chave,
    filtrar_chaves,
    parse_data_hora,
    parse_data_hora_opcional,
    parse_decimal,
    parse_inteiro,
)
from parsers.dto import CteParsed, EmpresaParsed
from parsers.schemas import CTeProc, Emit, Participante
from parsers.xml_binding import parse_xml, vincular_raiz

logger = logging.getLogger("transporte.parsers")

PREFIXO_CHAVE_CTE = "CTe"

# indicador toma3/toma -> (modalidade, papel do tomador)
#   0 remetente, 1 expedidor, 2 recebedor, 3 destinatário.
#   Expedidor/recebedor não vêm no XML: caem em remetente/destinatário.
_TOMADOR = {
    "0": ("CIF", "remetente"),
    "1": ("CIF", "remetente"),
    "2": ("FOB", "destinatario"),
    "3": ("FOB", "destinatario"),
}


def determinar_modalidade_frete(toma: str) -> str:
    """
    0/1 -> CIF, 2/3 -> FOB, qualquer outro código -> CIF.
    """
    return _TOMADOR.get((toma or "").strip(), ("CIF", None))[0]


def empresa_emitente(emit: Emit) -> EmpresaParsed:
    return EmpresaParsed(
        cnpj=emit.CNPJ,
        cpf=emit.CPF,
        razao_social=emit.xNome,
        nome_fantasia=emit.xFant,
        ie=emit.IE,
        uf=emit.enderEmit.UF,
        municipio=emit.enderEmit.xMun,
        cep=emit.enderEmit.CEP,
    )


def _empresa_participante(p: Participante) -> EmpresaParsed:
    end = p.endereco
    return EmpresaParsed(
        cnpj=p.CNPJ,
        cpf=p.CPF,
        razao_social=p.xNome,
        nome_fantasia=p.xFant,
        ie=p.IE,
        uf=end.UF,
        municipio=end.xMun,
        cep=end.CEP,
    )


def parse_cte(conteudo: bytes) -> CteParsed:
    """
    Decodifica um CT-e (cteProc, ou CTe sem protocolo) em CteParsed.

    Função pura: não acessa banco. Erros são subclasses de ErroDecodificacao.
    """
    raiz = parse_xml(conteudo)
    proc = vincular_raiz(CTeProc, raiz, aceitas={"CTe": "CTe"})

    inf = proc.CTe.infCte
    ide = inf.ide

    chave = extrair_chave(inf.Id, PREFIXO_CHAVE_CTE, campo="infCte/@Id")

    toma = ide.toma3.toma.strip()
    modalidade = determinar_modalidade_frete(toma)
    papel_tomador = _TOMADOR.get(toma, (None, None))[1]

    remetente = _empresa_participante(inf.rem)
    destinatario = _empresa_participante(inf.dest)
    tomador = {"remetente": remetente, "destinatario": destinatario}.get(papel_tomador)

    parsed = CteParsed(
        chave=chave,
        numero=parse_inteiro("ide/nCT", ide.nCT),
        serie=ide.serie,
        data_emissao=parse_data_hora("ide/dhEmi", ide.dhEmi),
        cfop=ide.CFOP,
        modalidade_frete=modalidade,
        valor_total=parse_decimal("vPrest/vTPrest", inf.vPrest.vTPrest),
        valor_carga=parse_decimal("infCarga/vCarga", inf.infCTeNorm.infCarga.vCarga),
        uf_inicio=ide.UFIni,
        uf_fim=ide.UFFim,
        municipio_inicio=ide.xMunIni,
        municipio_fim=ide.xMunFim,
        emitente=empresa_emitente(inf.emit),
        remetente=remetente,
        destinatario=destinatario,
        tomador=tomador,
        indicador_tomador=toma,
        observacoes=inf.compl.xObs,
    )

    prot = proc.protCTe.infProt
    if prot.cStat:
        parsed.status = prot.cStat
        parsed.protocolo = prot.nProt
        parsed.data_autorizacao = parse_data_hora_opcional("infProt/dhRecbto", prot.dhRecbto)

    rodo = inf.infCTeNorm.infModal.rodo
    if rodo is not None:
        parsed.rntrc = rodo.RNTRC

    for obs in inf.compl.ObsCont:
        if obs.xCampo.upper() == "PLACA":
            parsed.placa_veiculo = obs.xTexto
            break

    brutas = [nfe.chave for nfe in inf.infCTeNorm.infDoc.infNFe]
    parsed.chaves_nfe = filtrar_chaves(brutas)
    if len(parsed.chaves_nfe) != len([c for c in brutas if c]):
        logger.debug(
            "Chaves de NF-e descartadas no CT-e",
            extra={"event": "cte_chaves_descartadas", "chave": chave},
        )

    return parsed
