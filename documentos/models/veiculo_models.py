import re

from django.db import models

from commons.models import BaseModel


def normalizar_placa(placa: str | None) -> str:
    """
    Placa em caixa alta, apenas letras e dígitos ("abc-1d23" -> "ABC1D23").
    """
    return re.sub(r"[^A-Z0-9]", "", (placa or "").upper())


class TipoVeiculo(models.TextChoices):
    PROPRIO = "PROPRIO", "Próprio"
    AGREGADO = "AGREGADO", "Agregado"
    TERCEIRO = "TERCEIRO", "Terceiro"


class Veiculo(BaseModel):
    """
    Veículo de tração referenciado por MDF-e. Chave natural: placa normalizada.
    """

    placa = models.CharField(max_length=10, unique=True)
    uf = models.CharField(max_length=2, blank=True, default="")
    renavam = models.CharField(max_length=11, null=True, blank=True)

    # Quando o XML não informa, fica com a classe genérica (PROPRIO)
    tipo = models.CharField(
        max_length=10,
        choices=TipoVeiculo.choices,
        default=TipoVeiculo.PROPRIO,
        db_index=True,
    )

    tara_kg = models.PositiveIntegerField(default=0)
    capacidade_kg = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "veiculos"

    def __str__(self) -> str:
        return self.placa
