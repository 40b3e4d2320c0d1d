# ingestao/services/resolver_service.py
"""
Busca-ou-cria de entidades referenciadas pelos documentos (Empresa, Veiculo).

Deve rodar DENTRO da transação do documento que depende da entidade:
  - lookup pela chave natural (CNPJ/CPF ou placa normalizada);
  - se não existe, INSERT em savepoint;
  - IntegrityError no INSERT = outra ingestão criou a mesma chave primeiro:
    relê e devolve a existente (não é falha de ingestão). Se a releitura
    não acha nada, o erro era outro e sobe como está.

Linhas já existentes não são alteradas.
"""

import logging

from django.db import IntegrityError, transaction

from documentos.models import Empresa, TipoVeiculo, Veiculo, normalizar_placa
from documentos.validators import somente_digitos
from ingestao.exceptions import EntidadeSemIdentificador, VeiculoSemPlaca
from parsers.dto import EmpresaParsed

logger = logging.getLogger("transporte.ingestao")

IE_ISENTO = "ISENTO"


def _chave_natural_empresa(dados: EmpresaParsed, papel: str) -> dict:
    cnpj = somente_digitos(dados.cnpj)
    if cnpj:
        return {"cnpj": cnpj}
    cpf = somente_digitos(dados.cpf)
    if cpf:
        return {"cpf": cpf}
    raise EntidadeSemIdentificador(papel)


def resolver_empresa(dados: EmpresaParsed, *, papel: str = "empresa") -> Empresa:
    filtro = _chave_natural_empresa(dados, papel)

    existente = Empresa.objects.filter(**filtro).first()
    if existente is not None:
        return existente

    ie = (dados.ie or "").strip()
    if not ie or ie.upper() == IE_ISENTO:
        ie = None

    try:
        with transaction.atomic():
            empresa = Empresa.objects.create(
                cnpj=filtro.get("cnpj"),
                cpf=filtro.get("cpf"),
                razao_social=(dados.razao_social or "").strip(),
                nome_fantasia=(dados.nome_fantasia or "").strip() or None,
                ie=ie,
                uf=(dados.uf or "").strip().upper(),
                municipio=(dados.municipio or "").strip(),
                cep=somente_digitos(dados.cep),
            )
    except IntegrityError as exc:
        # Outra transação inseriu a mesma chave natural; o savepoint desfez só o nosso INSERT.
        try:
            empresa = Empresa.objects.get(**filtro)
        except Empresa.DoesNotExist:
            raise exc
        logger.info(
            "Contenção na criação de empresa; usando registro existente",
            extra={"event": "resolver_empresa_contencao", "papel": papel, **filtro},
        )
        return empresa

    logger.debug(
        "Empresa criada",
        extra={"event": "resolver_empresa_criada", "papel": papel, "empresa_id": str(empresa.id)},
    )
    return empresa


def resolver_veiculo(
    placa: str,
    *,
    uf: str = "",
    renavam: str = "",
    tara_kg: int = 0,
    capacidade_kg: int = 0,
) -> Veiculo:
    placa_norm = normalizar_placa(placa)
    if not placa_norm:
        raise VeiculoSemPlaca()

    existente = Veiculo.objects.filter(placa=placa_norm).first()
    if existente is not None:
        return existente

    try:
        with transaction.atomic():
            veiculo = Veiculo.objects.create(
                placa=placa_norm,
                uf=(uf or "").strip().upper(),
                renavam=(renavam or "").strip() or None,
                tipo=TipoVeiculo.PROPRIO,
                tara_kg=max(tara_kg or 0, 0),
                capacidade_kg=max(capacidade_kg or 0, 0),
            )
    except IntegrityError as exc:
        try:
            veiculo = Veiculo.objects.get(placa=placa_norm)
        except Veiculo.DoesNotExist:
            raise exc
        logger.info(
            "Contenção na criação de veículo; usando registro existente",
            extra={"event": "resolver_veiculo_contencao", "placa": placa_norm},
        )
        return veiculo

    logger.debug(
        "Veículo criado",
        extra={"event": "resolver_veiculo_criado", "placa": placa_norm},
    )
    return veiculo
