# parsers/schemas.py
"""
Espelhos estruturais dos leiautes da SEFAZ (CT-e 4.00, MDF-e 3.00 e eventos).

Servem apenas como alvo de decodificação: todos os valores ficam como texto
(exatamente como vieram no XML). Conversão numérica, datas e derivações
ficam nos parsers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

from parsers.xml_binding import attr, filho, lista, opcional, tag


# ---------------------------------------------------------------------------
# Comuns
# ---------------------------------------------------------------------------

@dataclass
class Endereco:
    xLgr: str = tag("xLgr")
    nro: str = tag("nro")
    xBairro: str = tag("xBairro")
    cMun: str = tag("cMun")
    xMun: str = tag("xMun")
    CEP: str = tag("CEP")
    UF: str = tag("UF")


@dataclass
class Emit:
    CNPJ: str = tag("CNPJ")
    CPF: str = tag("CPF")
    IE: str = tag("IE")
    xNome: str = tag("xNome")
    xFant: str = tag("xFant")
    enderEmit: Endereco = filho(Endereco, "enderEmit")


@dataclass
class InfProt:
    tpAmb: str = tag("tpAmb")
    dhRecbto: str = tag("dhRecbto")
    nProt: str = tag("nProt")
    cStat: str = tag("cStat")
    xMotivo: str = tag("xMotivo")


@dataclass
class Prot:
    infProt: InfProt = filho(InfProt, "infProt")


@dataclass
class InfNFe:
    # CT-e usa <chave>, MDF-e usa <chNFe>
    chave: str = tag("chave")
    chNFe: str = tag("chNFe")


# ---------------------------------------------------------------------------
# CT-e
# ---------------------------------------------------------------------------

@dataclass
class Toma3:
    toma: str = tag("toma")


@dataclass
class IdeCTe:
    cUF: str = tag("cUF")
    CFOP: str = tag("CFOP")
    natOp: str = tag("natOp")
    mod: str = tag("mod")
    serie: str = tag("serie")
    nCT: str = tag("nCT")
    dhEmi: str = tag("dhEmi")
    tpAmb: str = tag("tpAmb")
    modal: str = tag("modal")
    xMunIni: str = tag("xMunIni")
    UFIni: str = tag("UFIni")
    xMunFim: str = tag("xMunFim")
    UFFim: str = tag("UFFim")
    toma3: Toma3 = filho(Toma3, "toma3")


@dataclass
class ObsCont:
    xCampo: str = attr("xCampo")
    xTexto: str = tag("xTexto")


@dataclass
class ComplCTe:
    xObs: str = tag("xObs")
    ObsCont: list = lista(ObsCont, "ObsCont")


@dataclass
class Participante:
    """
    rem / dest / exped / receb: mesmo formato, muda só o nome do endereço.
    """

    CNPJ: str = tag("CNPJ")
    CPF: str = tag("CPF")
    IE: str = tag("IE")
    xNome: str = tag("xNome")
    xFant: str = tag("xFant")
    enderReme: Endereco = filho(Endereco, "enderReme")
    enderDest: Endereco = filho(Endereco, "enderDest")

    @property
    def endereco(self) -> Endereco:
        if self.enderReme.UF or self.enderReme.xMun:
            return self.enderReme
        return self.enderDest


@dataclass
class VPrest:
    vTPrest: str = tag("vTPrest")
    vRec: str = tag("vRec")


@dataclass
class InfQ:
    cUnid: str = tag("cUnid")
    tpMed: str = tag("tpMed")
    qCarga: str = tag("qCarga")


@dataclass
class InfCarga:
    vCarga: str = tag("vCarga")
    proPred: str = tag("proPred")
    infQ: list = lista(InfQ, "infQ")


@dataclass
class InfDocCTe:
    infNFe: list = lista(InfNFe, "infNFe")


@dataclass
class RodoCTe:
    RNTRC: str = tag("RNTRC")


@dataclass
class InfModalCTe:
    versaoModal: str = attr("versaoModal")
    rodo: Optional[RodoCTe] = opcional(RodoCTe, "rodo")


@dataclass
class InfCTeNorm:
    infCarga: InfCarga = filho(InfCarga, "infCarga")
    infDoc: InfDocCTe = filho(InfDocCTe, "infDoc")
    infModal: InfModalCTe = filho(InfModalCTe, "infModal")


@dataclass
class InfCte:
    Id: str = attr("Id")
    versao: str = attr("versao")
    ide: IdeCTe = filho(IdeCTe, "ide")
    compl: ComplCTe = filho(ComplCTe, "compl")
    emit: Emit = filho(Emit, "emit")
    rem: Participante = filho(Participante, "rem")
    dest: Participante = filho(Participante, "dest")
    vPrest: VPrest = filho(VPrest, "vPrest")
    infCTeNorm: InfCTeNorm = filho(InfCTeNorm, "infCTeNorm")


@dataclass
class CTe:
    infCte: InfCte = filho(InfCte, "infCte")


@dataclass
class CTeProc:
    __raiz__: ClassVar[str] = "cteProc"

    versao: str = attr("versao")
    CTe: CTe = filho(CTe, "CTe")
    protCTe: Prot = filho(Prot, "protCTe")


# ---------------------------------------------------------------------------
# MDF-e
# ---------------------------------------------------------------------------

@dataclass
class InfMunCarrega:
    cMunCarrega: str = tag("cMunCarrega")
    xMunCarrega: str = tag("xMunCarrega")


@dataclass
class IdeMDFe:
    cUF: str = tag("cUF")
    tpAmb: str = tag("tpAmb")
    tpEmit: str = tag("tpEmit")
    mod: str = tag("mod")
    serie: str = tag("serie")
    nMDF: str = tag("nMDF")
    modal: str = tag("modal")
    dhEmi: str = tag("dhEmi")
    UFIni: str = tag("UFIni")
    UFFim: str = tag("UFFim")
    infMunCarrega: list = lista(InfMunCarrega, "infMunCarrega")


@dataclass
class Condutor:
    xNome: str = tag("xNome")
    CPF: str = tag("CPF")


@dataclass
class VeicTracao:
    placa: str = tag("placa")
    RENAVAM: str = tag("RENAVAM")
    tara: str = tag("tara")
    capKG: str = tag("capKG")
    tpRod: str = tag("tpRod")
    tpCar: str = tag("tpCar")
    UF: str = tag("UF")
    condutor: list = lista(Condutor, "condutor")


@dataclass
class InfANTT:
    RNTRC: str = tag("RNTRC")


@dataclass
class Rodo:
    infANTT: InfANTT = filho(InfANTT, "infANTT")
    veicTracao: VeicTracao = filho(VeicTracao, "veicTracao")


@dataclass
class InfModalMDFe:
    versaoModal: str = attr("versaoModal")
    rodo: Rodo = filho(Rodo, "rodo")


@dataclass
class InfCTeVinculado:
    chCTe: str = tag("chCTe")


@dataclass
class InfMunDescarga:
    cMunDescarga: str = tag("cMunDescarga")
    xMunDescarga: str = tag("xMunDescarga")
    infCTe: list = lista(InfCTeVinculado, "infCTe")
    infNFe: list = lista(InfNFe, "infNFe")


@dataclass
class InfDocMDFe:
    infMunDescarga: list = lista(InfMunDescarga, "infMunDescarga")


@dataclass
class InfResp:
    respSeg: str = tag("respSeg")
    CNPJ: str = tag("CNPJ")
    CPF: str = tag("CPF")


@dataclass
class InfSeg:
    xSeg: str = tag("xSeg")
    CNPJ: str = tag("CNPJ")


@dataclass
class Seg:
    infResp: InfResp = filho(InfResp, "infResp")
    infSeg: InfSeg = filho(InfSeg, "infSeg")
    nApol: str = tag("nApol")
    nAver: list = lista(str, "nAver")


@dataclass
class ProdPred:
    tpCarga: str = tag("tpCarga")
    xProd: str = tag("xProd")


@dataclass
class TotMDFe:
    qCTe: str = tag("qCTe")
    qNFe: str = tag("qNFe")
    vCarga: str = tag("vCarga")
    cUnid: str = tag("cUnid")
    qCarga: str = tag("qCarga")


@dataclass
class InfAdic:
    infCpl: str = tag("infCpl")


@dataclass
class InfMDFe:
    Id: str = attr("Id")
    versao: str = attr("versao")
    ide: IdeMDFe = filho(IdeMDFe, "ide")
    emit: Emit = filho(Emit, "emit")
    infModal: InfModalMDFe = filho(InfModalMDFe, "infModal")
    infDoc: InfDocMDFe = filho(InfDocMDFe, "infDoc")
    seg: list = lista(Seg, "seg")
    prodPred: ProdPred = filho(ProdPred, "prodPred")
    tot: TotMDFe = filho(TotMDFe, "tot")
    infAdic: InfAdic = filho(InfAdic, "infAdic")


@dataclass
class MDFe:
    infMDFe: InfMDFe = filho(InfMDFe, "infMDFe")


@dataclass
class MDFeProc:
    __raiz__: ClassVar[str] = "mdfeProc"

    versao: str = attr("versao")
    MDFe: MDFe = filho(MDFe, "MDFe")
    protMDFe: Prot = filho(Prot, "protMDFe")


# ---------------------------------------------------------------------------
# Eventos
# ---------------------------------------------------------------------------

@dataclass
class EvCanc:
    """
    evCancCTe / evCancMDFe
    """

    descEvento: str = tag("descEvento")
    nProt: str = tag("nProt")
    xJust: str = tag("xJust")


@dataclass
class EvEncMDFe:
    descEvento: str = tag("descEvento")
    nProt: str = tag("nProt")
    dtEnc: str = tag("dtEnc")
    cUF: str = tag("cUF")
    cMun: str = tag("cMun")


@dataclass
class DetEvento:
    versaoEvento: str = attr("versaoEvento")
    evCancCTe: Optional[EvCanc] = opcional(EvCanc, "evCancCTe")
    evCancMDFe: Optional[EvCanc] = opcional(EvCanc, "evCancMDFe")
    evEncMDFe: Optional[EvEncMDFe] = opcional(EvEncMDFe, "evEncMDFe")


@dataclass
class InfEvento:
    Id: str = attr("Id")
    cOrgao: str = tag("cOrgao")
    tpAmb: str = tag("tpAmb")
    CNPJ: str = tag("CNPJ")
    CPF: str = tag("CPF")
    chCTe: str = tag("chCTe")
    chMDFe: str = tag("chMDFe")
    dhEvento: str = tag("dhEvento")
    tpEvento: str = tag("tpEvento")
    nSeqEvento: str = tag("nSeqEvento")
    detEvento: DetEvento = filho(DetEvento, "detEvento")


@dataclass
class Evento:
    versao: str = attr("versao")
    infEvento: InfEvento = filho(InfEvento, "infEvento")


@dataclass
class InfEventoRet:
    cStat: str = tag("cStat")
    xMotivo: str = tag("xMotivo")
    tpEvento: str = tag("tpEvento")
    xEvento: str = tag("xEvento")
    nSeqEvento: str = tag("nSeqEvento")
    dhRegEvento: str = tag("dhRegEvento")
    nProt: str = tag("nProt")


@dataclass
class RetEvento:
    infEvento: InfEventoRet = filho(InfEventoRet, "infEvento")


@dataclass
class ProcEventoCTe:
    __raiz__: ClassVar[str] = "procEventoCTe"

    versao: str = attr("versao")
    eventoCTe: Evento = filho(Evento, "eventoCTe")
    retEventoCTe: RetEvento = filho(RetEvento, "retEventoCTe")


@dataclass
class ProcEventoMDFe:
    __raiz__: ClassVar[str] = "procEventoMDFe"

    versao: str = attr("versao")
    eventoMDFe: Evento = filho(Evento, "eventoMDFe")
    retEventoMDFe: RetEvento = filho(RetEvento, "retEventoMDFe")
