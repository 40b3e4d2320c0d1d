# ingestao/exceptions.py
"""
Taxonomia de erros da ingestão de XML.

  - Classificação: o conteúdo não corresponde a nenhum documento conhecido.
  - Decodificação: XML bem formado (ou não), mas sem campo obrigatório,
    com identificador/número/data inválidos ou valor maior que a coluna.
  - Referência/resolução: evento aponta para documento inexistente, parte
    sem CNPJ/CPF, veículo sem placa.

Todos são terminais para o arquivo/evento: não há retentativa automática.
Falhas de banco (OperationalError/InterfaceError) não estão aqui: são
tratadas em ingestao.services.retentativa.
"""


class ErroIngestao(Exception):
    """
    Base de todos os erros de domínio da ingestão.
    """

    code = "INGESTAO_0000"

    def __init__(self, mensagem: str, *, code: str | None = None):
        self.mensagem = mensagem
        if code is not None:
            self.code = code
        super().__init__(mensagem)


# ---------------------------------------------------------------------------
# (a) Classificação
# ---------------------------------------------------------------------------

class TipoDocumentoNaoReconhecido(ErroIngestao):
    code = "INGESTAO_1001"

    def __init__(self, mensagem: str = "Tipo de documento não identificado."):
        super().__init__(mensagem)


# ---------------------------------------------------------------------------
# (b) Decodificação estrutural
# ---------------------------------------------------------------------------

class ErroDecodificacao(ErroIngestao):
    """
    Erro ao decodificar o XML. `campo` indica qual campo falhou (quando
    aplicável), para ser registrado no Upload.
    """

    code = "INGESTAO_2000"

    def __init__(self, mensagem: str, *, campo: str | None = None):
        self.campo = campo
        super().__init__(mensagem)


class XmlMalformado(ErroDecodificacao):
    code = "INGESTAO_2001"


class IdentificadorAusente(ErroDecodificacao):
    code = "INGESTAO_2002"


class ChaveAcessoInvalida(ErroDecodificacao):
    code = "INGESTAO_2003"

    def __init__(self, mensagem: str, *, chave: str | None = None, campo: str | None = "chave_acesso"):
        self.chave = chave
        super().__init__(mensagem, campo=campo)


class NumeroInvalido(ErroDecodificacao):
    code = "INGESTAO_2004"

    def __init__(self, campo: str, valor: str):
        self.valor = valor
        super().__init__(f"Valor numérico inválido em '{campo}': {valor!r}", campo=campo)


class DataInvalida(ErroDecodificacao):
    code = "INGESTAO_2005"

    def __init__(self, campo: str, valor: str):
        self.valor = valor
        super().__init__(f"Data/hora inválida em '{campo}': {valor!r}", campo=campo)


class CampoObrigatorioAusente(ErroDecodificacao):
    code = "INGESTAO_2006"

    def __init__(self, campo: str, mensagem: str | None = None):
        super().__init__(mensagem or f"Campo obrigatório ausente: '{campo}'", campo=campo)


class CampoInvalido(ErroDecodificacao):
    """
    Campo presente, mas fora do formato ou do tamanho aceito.
    """

    code = "INGESTAO_2007"

    def __init__(self, campo: str, mensagem: str | None = None):
        super().__init__(mensagem or f"Campo inválido: '{campo}'", campo=campo)


# ---------------------------------------------------------------------------
# (c) Referência / resolução de entidades
# ---------------------------------------------------------------------------

class DocumentoNaoEncontrado(ErroIngestao):
    code = "INGESTAO_3001"

    def __init__(self, chave: str, tipo: str | None = None):
        self.chave = chave
        self.tipo = tipo
        rotulo = tipo or "Documento"
        super().__init__(f"{rotulo} não encontrado para o evento: {chave}")


class EventoNaoSuportado(ErroIngestao):
    code = "INGESTAO_3002"

    def __init__(self, tipo_evento: str, tipo_documento: str):
        self.tipo_evento = tipo_evento
        self.tipo_documento = tipo_documento
        super().__init__(
            f"Tipo de evento não suportado para {tipo_documento}: {tipo_evento}"
        )


class EntidadeSemIdentificador(ErroIngestao):
    code = "INGESTAO_3003"

    def __init__(self, papel: str):
        self.papel = papel
        super().__init__(f"Empresa sem CNPJ ou CPF ({papel}).")


class VeiculoSemPlaca(ErroIngestao):
    code = "INGESTAO_3004"

    def __init__(self):
        super().__init__("Placa do veículo não informada.")
