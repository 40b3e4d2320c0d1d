# parsers/xml_binding.py
"""
Binding de XML (lxml) para dataclasses espelho do schema.

Cada campo da dataclass declara, via metadata, de onde vem o valor:

    tag("nCT")              -> texto do primeiro filho <nCT>
    attr("Id")              -> atributo Id do elemento
    filho(Ide, "ide")       -> dataclass aninhada (instância vazia se ausente)
    opcional(Rodo, "rodo")  -> dataclass aninhada ou None se ausente
    lista(InfQ, "infQ")     -> todos os filhos <infQ> (lista vazia se nenhum)
    lista(str, "chCTe")     -> textos de todos os filhos <chCTe>

A comparação é pelo nome local, ignorando namespace (os XMLs da SEFAZ
usam namespace default, e às vezes prefixado).
"""

from __future__ import annotations

import dataclasses
from typing import Any, Optional, Type, TypeVar

from lxml import etree

from ingestao.exceptions import XmlMalformado

T = TypeVar("T")


def tag(nome: str):
    return dataclasses.field(default="", metadata={"tag": nome})


def attr(nome: str):
    return dataclasses.field(default="", metadata={"attr": nome})


def filho(tipo: type, nome: str):
    return dataclasses.field(default_factory=tipo, metadata={"tag": nome, "tipo": tipo})


def opcional(tipo: type, nome: str):
    return dataclasses.field(default=None, metadata={"tag": nome, "tipo": tipo, "opcional": True})


def lista(tipo: type, nome: str):
    return dataclasses.field(default_factory=list, metadata={"tag": nome, "tipo": tipo, "lista": True})


def nome_local(el) -> str:
    return etree.QName(el).localname


def _filhos(el, nome: str):
    for child in el:
        # ignora comentários / processing instructions
        if not isinstance(child.tag, str):
            continue
        if nome_local(child) == nome:
            yield child


def _texto(el) -> str:
    return (el.text or "").strip()


def vincular(cls: Type[T], el) -> T:
    """
    Preenche uma instância de `cls` a partir do elemento `el`.
    """
    valores: dict[str, Any] = {}

    for f in dataclasses.fields(cls):
        meta = f.metadata
        if "attr" in meta:
            valores[f.name] = (el.get(meta["attr"]) or "").strip()
            continue

        if "tag" not in meta:
            continue

        nome = meta["tag"]
        tipo = meta.get("tipo")

        if meta.get("lista"):
            if tipo is str:
                valores[f.name] = [_texto(c) for c in _filhos(el, nome)]
            else:
                valores[f.name] = [vincular(tipo, c) for c in _filhos(el, nome)]
            continue

        child = next(_filhos(el, nome), None)

        if tipo is None:
            valores[f.name] = _texto(child) if child is not None else ""
        elif child is not None:
            valores[f.name] = vincular(tipo, child)
        elif meta.get("opcional"):
            valores[f.name] = None
        else:
            valores[f.name] = tipo()

    return cls(**valores)


def parse_xml(conteudo: bytes):
    """
    Faz o parse seguro do XML (sem rede, sem entidades externas, sem recover).
    """
    if not conteudo or not conteudo.strip():
        raise XmlMalformado("Conteúdo XML vazio.")

    parser = etree.XMLParser(
        no_network=True,
        resolve_entities=False,
        recover=False,
        remove_comments=True,
    )
    try:
        return etree.fromstring(conteudo, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise XmlMalformado(f"Erro ao fazer parse do XML: {exc}") from exc


def vincular_raiz(cls: Type[T], raiz, *, aceitas: Optional[dict[str, str]] = None) -> T:
    """
    Vincula o elemento raiz a `cls`, cujo nome esperado está em `cls.__raiz__`.

    `aceitas` mapeia raízes alternativas para o campo de `cls` que elas
    preenchem diretamente (ex.: um <CTe> sem o envelope <cteProc>).
    """
    raiz_nome = nome_local(raiz)
    esperado = getattr(cls, "__raiz__")

    if raiz_nome == esperado:
        return vincular(cls, raiz)

    if aceitas and raiz_nome in aceitas:
        campo = aceitas[raiz_nome]
        tipo = next(f.metadata["tipo"] for f in dataclasses.fields(cls) if f.name == campo)
        return cls(**{campo: vincular(tipo, raiz)})

    raise XmlMalformado(
        f"Elemento raiz inesperado: <{raiz_nome}> (esperado <{esperado}>).",
        campo=esperado,
    )
