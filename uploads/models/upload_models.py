from django.db import models
from django.utils import timezone

from commons.models import BaseModel


class UploadStatus(models.TextChoices):
    PENDENTE = "PENDING", "Pendente"
    PROCESSADO = "PROCESSED", "Processado"
    FALHOU = "FAILED", "Falhou"


class Upload(BaseModel):
    """
    Registro de acompanhamento de um arquivo enviado.

    Ciclo de vida:
        PENDING -> PROCESSED | FAILED

    - Criado de forma síncrona na recepção do arquivo.
    - Alterado uma única vez, pela tarefa de ingestão agendada para ele.
    - chave_documento só é preenchida em sucesso; detalhes_erro só em falha.
    """

    nome_arquivo = models.CharField(max_length=255)
    data_upload = models.DateTimeField(default=timezone.now, db_index=True)

    status = models.CharField(
        max_length=10,
        choices=UploadStatus.choices,
        default=UploadStatus.PENDENTE,
        db_index=True,
    )

    # CTE / MDFE / EVENTO_CTE / EVENTO_MDFE / DESCONHECIDO
    tipo_documento = models.CharField(max_length=20, blank=True, default="")

    chave_documento = models.CharField(max_length=44, null=True, blank=True, db_index=True)
    detalhes_erro = models.TextField(null=True, blank=True)

    processado_em = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "uploads"
        ordering = ["-data_upload"]

    @property
    def finalizado(self) -> bool:
        return self.status != UploadStatus.PENDENTE

    def __str__(self) -> str:
        return f"{self.nome_arquivo} [{self.status}]"
