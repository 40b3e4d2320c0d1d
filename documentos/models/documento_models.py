from decimal import Decimal

from django.db import models

from commons.models import BaseModel


class TipoDocumento(models.TextChoices):
    CTE = "CTE", "CT-e"
    MDFE = "MDFE", "MDF-e"


class ModalidadeFrete(models.TextChoices):
    CIF = "CIF", "CIF (tomador paga)"
    FOB = "FOB", "FOB (destinatário paga)"


STATUS_AUTORIZADO = "100"
STATUS_CANCELADO = "101"
STATUS_NAO_PROCESSADO = "000"

DESCRICAO_STATUS = {
    "100": "Autorizado",
    "101": "Cancelado",
    "102": "Inutilizado",
    "103": "Denegado",
    "104": "Recusado",
    "000": "Não processado",
}


class DocumentoFiscal(BaseModel):
    """
    Documento fiscal de transporte (CT-e ou MDF-e).

    - Uma linha por chave de acesso, única entre todos os tipos.
    - `tipo` diz qual payload específico acompanha a linha:
        CTE  -> cte_info  (CteInfo)
        MDFE -> mdfe_info (MdfeInfo)
    - Reingestão da mesma chave atualiza a linha (upsert), nunca duplica.
    """

    chave_acesso = models.CharField(max_length=44, unique=True)
    tipo = models.CharField(max_length=10, choices=TipoDocumento.choices, db_index=True)

    numero = models.PositiveIntegerField()
    serie = models.CharField(max_length=3)
    data_emissao = models.DateTimeField(db_index=True)

    # cStat do protocolo de autorização
    status = models.CharField(max_length=3, default=STATUS_NAO_PROCESSADO, db_index=True)
    protocolo = models.CharField(max_length=20, blank=True, default="")
    data_autorizacao = models.DateTimeField(null=True, blank=True)

    cancelado = models.BooleanField(default=False, db_index=True)

    valor_total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))

    emitente = models.ForeignKey(
        "documentos.Empresa",
        on_delete=models.PROTECT,
        related_name="documentos_emitidos",
    )

    uf_inicio = models.CharField(max_length=2, db_index=True)
    uf_fim = models.CharField(max_length=2, db_index=True)
    municipio_inicio = models.CharField(max_length=100, blank=True, default="")
    municipio_fim = models.CharField(max_length=100, blank=True, default="")

    data_processamento = models.DateTimeField(null=True, blank=True)

    # XML completo, para auditoria e reexibição
    xml_original = models.TextField(blank=True, default="")

    upload = models.ForeignKey(
        "uploads.Upload",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="documentos",
    )

    class Meta:
        db_table = "documentos_fiscais"
        indexes = [
            models.Index(fields=["tipo", "data_emissao"]),
        ]

    @property
    def esta_autorizado(self) -> bool:
        return self.status == STATUS_AUTORIZADO and bool(self.protocolo)

    @property
    def descricao_status(self) -> str:
        return DESCRICAO_STATUS.get(self.status, "Status desconhecido")

    def __str__(self) -> str:
        return f"{self.get_tipo_display()} {self.numero}/{self.serie} - {self.chave_acesso}"


class CteInfo(models.Model):
    """
    Campos específicos de CT-e (conhecimento de transporte).
    """

    documento = models.OneToOneField(
        DocumentoFiscal,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="cte_info",
    )

    remetente = models.ForeignKey(
        "documentos.Empresa", on_delete=models.PROTECT, related_name="ctes_remetidos"
    )
    destinatario = models.ForeignKey(
        "documentos.Empresa", on_delete=models.PROTECT, related_name="ctes_recebidos"
    )
    # Pode ser nulo quando o indicador do tomador é desconhecido
    tomador = models.ForeignKey(
        "documentos.Empresa",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ctes_tomados",
    )

    cfop = models.CharField(max_length=4, blank=True, default="")
    modalidade_frete = models.CharField(
        max_length=3,
        choices=ModalidadeFrete.choices,
        default=ModalidadeFrete.CIF,
        db_index=True,
    )
    valor_carga = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0.00"))

    # Texto livre (vem de ObsCont), não é FK para Veiculo
    placa_veiculo = models.CharField(max_length=10, blank=True, default="")
    rntrc = models.CharField(max_length=8, blank=True, default="")
    observacoes = models.TextField(blank=True, default="")

    chaves_nfe = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "cte_info"


class MdfeInfo(models.Model):
    """
    Campos específicos de MDF-e (manifesto de carga).
    """

    documento = models.OneToOneField(
        DocumentoFiscal,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="mdfe_info",
    )

    veiculo_tracao = models.ForeignKey(
        "documentos.Veiculo",
        on_delete=models.PROTECT,
        related_name="manifestos",
    )
    # CT-es transportados (apenas os já presentes na base)
    ctes = models.ManyToManyField(
        DocumentoFiscal,
        related_name="manifestos",
        blank=True,
        limit_choices_to={"tipo": TipoDocumento.CTE},
    )

    nome_motorista = models.CharField(max_length=100)
    cpf_motorista = models.CharField(max_length=11, db_index=True)

    qtd_cte = models.PositiveIntegerField(default=0)
    qtd_nfe = models.PositiveIntegerField(default=0)
    peso_bruto_total = models.DecimalField(max_digits=15, decimal_places=4, default=Decimal("0"))

    produto_predominante = models.CharField(max_length=120, blank=True, default="")
    tipo_carga = models.CharField(max_length=2, blank=True, default="")

    encerrado = models.BooleanField(default=False, db_index=True)
    data_encerramento = models.DateTimeField(null=True, blank=True)
    local_encerramento = models.CharField(max_length=100, blank=True, default="")

    # Seguro (opcional)
    seguradora_nome = models.CharField(max_length=100, blank=True, default="")
    seguradora_cnpj = models.CharField(max_length=14, blank=True, default="")
    numero_apolice = models.CharField(max_length=50, blank=True, default="")
    numero_averbacao = models.CharField(max_length=50, blank=True, default="")

    chaves_nfe = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "mdfe_info"
