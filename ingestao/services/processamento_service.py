# ingestao/services/processamento_service.py

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from documentos.models import (
    STATUS_CANCELADO,
    CteInfo,
    DocumentoFiscal,
    MdfeInfo,
    TipoDocumento,
)
from documentos.validators import somente_digitos, validar_documento_para_persistencia
from ingestao.exceptions import ChaveAcessoInvalida, ErroDecodificacao, ErroIngestao, TipoDocumentoNaoReconhecido
from ingestao.services.evento_service import aplicar_evento
from ingestao.services.resolver_service import resolver_empresa, resolver_veiculo
from ingestao.services.retentativa import executar_com_retentativas
from parsers.cte_parser import parse_cte
from parsers.detector import TipoXml, detectar_tipo
from parsers.dto import CteParsed, EmpresaParsed, MdfeParsed
from parsers.evento_parser import parse_evento_cte, parse_evento_mdfe
from parsers.mdfe_parser import parse_mdfe
from uploads.models import Upload, UploadStatus

logger = logging.getLogger("transporte.ingestao")

STATUS_PROCESSADO = "PROCESSADO"

MENSAGEM_FALHA_ARMAZENAMENTO = "Falha de armazenamento ao processar o documento."

_DECODIFICADORES = {
    TipoXml.CTE: parse_cte,
    TipoXml.MDFE: parse_mdfe,
    TipoXml.EVENTO_CTE: parse_evento_cte,
    TipoXml.EVENTO_MDFE: parse_evento_mdfe,
}


@dataclass
class DocumentoProcessado:
    chave: str
    tipo: str
    status: str
    mensagem: str
    # True quando a chave foi inserida agora; False em reingestão / evento
    criado: bool = False


# ---------------------------------------------------------------------------
# Resolução + upsert
# ---------------------------------------------------------------------------

def _resolver_partes(partes: list[tuple[str, EmpresaParsed]]) -> dict:
    """
    Resolve cada parte distinta uma única vez (emitente e remetente
    costumam ser a mesma empresa).
    """
    por_documento = {}
    resolvidas = {}
    for papel, dados in partes:
        documento = somente_digitos(dados.cnpj) or somente_digitos(dados.cpf)
        if documento and documento in por_documento:
            resolvidas[papel] = por_documento[documento]
            continue
        empresa = resolver_empresa(dados, papel=papel)
        por_documento[documento] = empresa
        resolvidas[papel] = empresa
    return resolvidas


def _upsert_documento(parsed, *, emitente, xml_original: str, upload_id) -> tuple[DocumentoFiscal, bool]:
    """
    Upsert pela chave de acesso.

    - Inexistente: INSERT (savepoint; IntegrityError com a chave já gravada
      = outra ingestão venceu, então segue como atualização; sem a chave,
      o IntegrityError sobe).
    - Existente: atualiza campos mutáveis. status/protocolo só quando o XML
      traz valor. cancelado nunca volta para False.
    """
    campos = {
        "numero": parsed.numero,
        "serie": parsed.serie,
        "data_emissao": parsed.data_emissao,
        "valor_total": parsed.valor_total if parsed.tipo == TipoDocumento.CTE else parsed.valor_total_carga,
        "emitente": emitente,
        "uf_inicio": parsed.uf_inicio.strip().upper(),
        "uf_fim": parsed.uf_fim.strip().upper(),
        "municipio_inicio": parsed.municipio_inicio,
        "municipio_fim": parsed.municipio_fim,
        "xml_original": xml_original,
        "upload_id": upload_id,
        "data_processamento": timezone.now(),
    }

    doc = DocumentoFiscal.objects.select_for_update().filter(chave_acesso=parsed.chave).first()

    if doc is None:
        try:
            with transaction.atomic():
                doc = DocumentoFiscal.objects.create(
                    chave_acesso=parsed.chave,
                    tipo=parsed.tipo,
                    status=parsed.status or "000",
                    protocolo=parsed.protocolo or "",
                    data_autorizacao=parsed.data_autorizacao,
                    cancelado=parsed.status == STATUS_CANCELADO,
                    **campos,
                )
            return doc, True
        except IntegrityError:
            doc = DocumentoFiscal.objects.select_for_update().filter(chave_acesso=parsed.chave).first()
            if doc is None:
                # Não foi colisão de chave (ex.: CHECK violado): erro real de gravação
                raise
            logger.info(
                "Chave inserida por outra ingestão; seguindo como atualização",
                extra={"event": "documento_upsert_contencao", "chave": parsed.chave},
            )

    if doc.tipo != parsed.tipo:
        raise ChaveAcessoInvalida(
            f"Chave já registrada para outro tipo de documento ({doc.tipo}): {parsed.chave}",
            chave=parsed.chave,
        )

    for campo, valor in campos.items():
        setattr(doc, campo, valor)

    if parsed.status == STATUS_CANCELADO:
        doc.cancelado = True

    if doc.cancelado:
        doc.status = STATUS_CANCELADO
    elif parsed.status:
        doc.status = parsed.status

    if parsed.protocolo:
        doc.protocolo = parsed.protocolo
    if parsed.data_autorizacao:
        doc.data_autorizacao = parsed.data_autorizacao

    doc.save()
    return doc, False


def _persistir_cte(parsed: CteParsed, *, xml_original: str, upload_id) -> tuple[DocumentoFiscal, bool]:
    partes = [
        ("emitente", parsed.emitente),
        ("remetente", parsed.remetente),
        ("destinatario", parsed.destinatario),
    ]
    resolvidas = _resolver_partes(partes)

    tomador = None
    if parsed.tomador is parsed.remetente:
        tomador = resolvidas["remetente"]
    elif parsed.tomador is parsed.destinatario:
        tomador = resolvidas["destinatario"]

    doc, criado = _upsert_documento(
        parsed,
        emitente=resolvidas["emitente"],
        xml_original=xml_original,
        upload_id=upload_id,
    )

    CteInfo.objects.update_or_create(
        documento=doc,
        defaults={
            "remetente": resolvidas["remetente"],
            "destinatario": resolvidas["destinatario"],
            "tomador": tomador,
            "cfop": parsed.cfop,
            "modalidade_frete": parsed.modalidade_frete,
            "valor_carga": parsed.valor_carga,
            "placa_veiculo": parsed.placa_veiculo,
            "rntrc": parsed.rntrc,
            "observacoes": parsed.observacoes,
            "chaves_nfe": parsed.chaves_nfe,
        },
    )
    return doc, criado


def _persistir_mdfe(parsed: MdfeParsed, *, xml_original: str, upload_id) -> tuple[DocumentoFiscal, bool]:
    emitente = resolver_empresa(parsed.emitente, papel="emitente")
    veiculo = resolver_veiculo(
        parsed.placa_veiculo,
        uf=parsed.uf_veiculo,
        renavam=parsed.renavam,
        tara_kg=parsed.tara_kg,
        capacidade_kg=parsed.capacidade_kg,
    )

    doc, criado = _upsert_documento(
        parsed,
        emitente=emitente,
        xml_original=xml_original,
        upload_id=upload_id,
    )

    defaults = {
        "veiculo_tracao": veiculo,
        "nome_motorista": parsed.nome_motorista.strip(),
        "cpf_motorista": somente_digitos(parsed.cpf_motorista),
        "qtd_cte": parsed.qtd_cte,
        "qtd_nfe": parsed.qtd_nfe,
        "peso_bruto_total": parsed.peso_bruto_total,
        "produto_predominante": parsed.produto_predominante,
        "tipo_carga": parsed.tipo_carga,
        "chaves_nfe": parsed.chaves_nfe,
        "seguradora_nome": "",
        "seguradora_cnpj": "",
        "numero_apolice": "",
        "numero_averbacao": "",
    }
    # Só a primeira seguradora é gravada
    if parsed.seguradoras:
        seg = parsed.seguradoras[0]
        defaults.update(
            seguradora_nome=seg.nome,
            seguradora_cnpj=somente_digitos(seg.cnpj),
            numero_apolice=seg.apolice,
            numero_averbacao=seg.averbacao,
        )

    info, _ = MdfeInfo.objects.update_or_create(documento=doc, defaults=defaults)

    # Vincula apenas CT-es já presentes na base; os demais são ignorados
    if parsed.chaves_cte:
        ctes = list(
            DocumentoFiscal.objects.filter(
                chave_acesso__in=parsed.chaves_cte,
                tipo=TipoDocumento.CTE,
            )
        )
        if ctes:
            info.ctes.add(*ctes)
        if len(ctes) < len(parsed.chaves_cte):
            logger.debug(
                "CT-es vinculados ao MDF-e ainda não presentes na base",
                extra={
                    "event": "mdfe_ctes_nao_encontrados",
                    "chave": parsed.chave,
                    "encontrados": len(ctes),
                    "informados": len(parsed.chaves_cte),
                },
            )

    return doc, criado


_PERSISTENCIA = {
    TipoDocumento.CTE.value: _persistir_cte,
    TipoDocumento.MDFE.value: _persistir_mdfe,
}

_ROTULO = {
    TipoDocumento.CTE.value: "CT-e",
    TipoDocumento.MDFE.value: "MDF-e",
}


def _commit_documento(parsed, *, xml_original: str, upload_id) -> tuple[DocumentoFiscal, bool]:
    persistir = _PERSISTENCIA[parsed.tipo]
    with transaction.atomic():
        return persistir(parsed, xml_original=xml_original, upload_id=upload_id)


# ---------------------------------------------------------------------------
# Coordenação
# ---------------------------------------------------------------------------

def processar_xml(conteudo: bytes, *, upload_id=None) -> DocumentoProcessado:
    """
    Detectando -> Decodificando -> Resolvendo -> Gravando.

    Erros de domínio (ErroIngestao) são terminais. Falhas transitórias de
    banco são repetidas com backoff em torno da transação inteira.
    """
    log_ctx = {"upload_id": str(upload_id) if upload_id else None}

    # 1) Detecção
    tipo = detectar_tipo(conteudo)
    logger.info(
        "Tipo de XML detectado",
        extra={"event": "ingestao_detectado", "tipo": tipo.value, **log_ctx},
    )
    if tipo == TipoXml.DESCONHECIDO:
        raise TipoDocumentoNaoReconhecido()

    # 2) Decodificação (pura, sem banco)
    parsed = _DECODIFICADORES[tipo](conteudo)
    logger.info(
        "XML decodificado",
        extra={"event": "ingestao_decodificado", "tipo": tipo.value, "chave": parsed.chave, **log_ctx},
    )

    # Eventos: sem resolução de entidades, só transição de estado
    if tipo.is_evento:
        aplicado = executar_com_retentativas(
            lambda: aplicar_evento(parsed),
            descricao=f"aplicar_evento:{parsed.chave}",
        )
        return DocumentoProcessado(
            chave=aplicado.chave,
            tipo=tipo.value,
            status=STATUS_PROCESSADO,
            mensagem=aplicado.mensagem,
        )

    # 3) Validação explícita antes de qualquer gravação
    validar_documento_para_persistencia(parsed)

    # 4) Resolução + upsert em uma única transação
    xml_original = conteudo.decode("utf-8", errors="replace") if isinstance(conteudo, bytes) else conteudo
    doc, criado = executar_com_retentativas(
        lambda: _commit_documento(parsed, xml_original=xml_original, upload_id=upload_id),
        descricao=f"gravar_documento:{parsed.chave}",
    )

    logger.info(
        "Documento gravado",
        extra={
            "event": "ingestao_gravado",
            "tipo": tipo.value,
            "chave": doc.chave_acesso,
            "criado": criado,
            **log_ctx,
        },
    )

    return DocumentoProcessado(
        chave=doc.chave_acesso,
        tipo=tipo.value,
        status=STATUS_PROCESSADO,
        mensagem=f"{_ROTULO[parsed.tipo]} {parsed.numero} processado com sucesso",
        criado=criado,
    )


# ---------------------------------------------------------------------------
# Tarefa por upload
# ---------------------------------------------------------------------------

def _detalhe_erro(exc: ErroIngestao) -> str:
    campo = getattr(exc, "campo", None) if isinstance(exc, ErroDecodificacao) else None
    if campo and campo not in exc.mensagem:
        return f"{exc.mensagem} (campo: {campo})"
    return exc.mensagem


def finalizar_upload(
    upload_id,
    *,
    status: str,
    tipo_documento: str = "",
    chave: Optional[str] = None,
    detalhes_erro: Optional[str] = None,
) -> bool:
    """
    Transição terminal PENDING -> PROCESSED|FAILED, condicional ao status
    atual. Retorna False se o upload já estava finalizado (ou não existe).
    """
    def _atualizar() -> int:
        return Upload.objects.filter(id=upload_id, status=UploadStatus.PENDENTE).update(
            status=status,
            tipo_documento=tipo_documento,
            chave_documento=chave if status == UploadStatus.PROCESSADO else None,
            detalhes_erro=detalhes_erro if status == UploadStatus.FALHOU else None,
            processado_em=timezone.now(),
        )

    atualizados = executar_com_retentativas(_atualizar, descricao=f"finalizar_upload:{upload_id}")
    if not atualizados:
        logger.warning(
            "Upload já finalizado ou inexistente; transição ignorada",
            extra={"event": "upload_finalizacao_ignorada", "upload_id": str(upload_id), "status": status},
        )
        return False
    return True


def processar_upload(upload_id, conteudo: bytes) -> Optional[DocumentoProcessado]:
    """
    Corpo da tarefa agendada para um Upload: processa o XML e grava o
    resultado (PROCESSED/FAILED) no registro exatamente uma vez.
    """
    tipo = detectar_tipo(conteudo)

    try:
        resultado = processar_xml(conteudo, upload_id=upload_id)
    except ErroIngestao as exc:
        logger.warning(
            "Falha de ingestão",
            extra={
                "event": "ingestao_falhou",
                "upload_id": str(upload_id),
                "tipo": tipo.value,
                "code": exc.code,
                "erro": exc.mensagem,
            },
        )
        finalizar_upload(
            upload_id,
            status=UploadStatus.FALHOU,
            tipo_documento=tipo.value,
            detalhes_erro=_detalhe_erro(exc),
        )
        return None
    except DatabaseError:
        logger.exception(
            "Falha de armazenamento na ingestão",
            extra={"event": "ingestao_falha_armazenamento", "upload_id": str(upload_id), "tipo": tipo.value},
        )
        finalizar_upload(
            upload_id,
            status=UploadStatus.FALHOU,
            tipo_documento=tipo.value,
            detalhes_erro=MENSAGEM_FALHA_ARMAZENAMENTO,
        )
        return None
    except Exception:
        # Erro inesperado: registra a falha no upload e propaga para o dispatcher
        finalizar_upload(
            upload_id,
            status=UploadStatus.FALHOU,
            tipo_documento=tipo.value,
            detalhes_erro="Erro interno ao processar o documento.",
        )
        raise

    finalizar_upload(
        upload_id,
        status=UploadStatus.PROCESSADO,
        tipo_documento=tipo.value,
        chave=resultado.chave,
    )
    logger.info(
        "Upload processado",
        extra={"event": "upload_processado", "upload_id": str(upload_id), "chave": resultado.chave},
    )
    return resultado
