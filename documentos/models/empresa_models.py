from django.db import models
from django.db.models import Q

from commons.models import BaseModel


class Empresa(BaseModel):
    """
    Parte referenciada por documentos (emitente, remetente, destinatário, tomador).

    Chave natural: CNPJ (pessoa jurídica) OU CPF (pessoa física).
    Unicidade garantida pelo banco; a resolução na ingestão depende disso
    para deduplicar sob concorrência.
    """

    cnpj = models.CharField(max_length=14, unique=True, null=True, blank=True)
    cpf = models.CharField(max_length=11, unique=True, null=True, blank=True)

    razao_social = models.CharField(max_length=255)
    nome_fantasia = models.CharField(max_length=255, null=True, blank=True)

    # Inscrição estadual ("ISENTO" é gravado como nulo)
    ie = models.CharField(max_length=20, null=True, blank=True, db_index=True)

    uf = models.CharField(max_length=2, blank=True, default="", db_index=True)
    municipio = models.CharField(max_length=100, blank=True, default="")
    cep = models.CharField(max_length=8, blank=True, default="")

    ativo = models.BooleanField(default=True)

    class Meta:
        db_table = "empresas"
        constraints = [
            models.CheckConstraint(
                condition=Q(cnpj__isnull=False) | Q(cpf__isnull=False),
                name="empresa_cnpj_ou_cpf_obrigatorio",
            ),
        ]

    @property
    def documento(self) -> str:
        return self.cnpj or self.cpf or ""

    def __str__(self) -> str:
        return f"{self.razao_social} ({self.documento})"
