from .empresa_models import Empresa
from .veiculo_models import Veiculo, TipoVeiculo, normalizar_placa
from .documento_models import (
    DocumentoFiscal,
    CteInfo,
    MdfeInfo,
    TipoDocumento,
    ModalidadeFrete,
    STATUS_AUTORIZADO,
    STATUS_CANCELADO,
)


__all__ = [
    "Empresa",
    "Veiculo",
    "TipoVeiculo",
    "normalizar_placa",
    "DocumentoFiscal",
    "CteInfo",
    "MdfeInfo",
    "TipoDocumento",
    "ModalidadeFrete",
    "STATUS_AUTORIZADO",
    "STATUS_CANCELADO",
]
