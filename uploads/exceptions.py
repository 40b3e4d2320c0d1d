# uploads/exceptions.py


class ErroUpload(Exception):
    code = "UPLOAD_0000"

    def __init__(self, mensagem: str):
        self.mensagem = mensagem
        super().__init__(mensagem)


class ArquivoNaoXml(ErroUpload):
    code = "UPLOAD_1001"

    def __init__(self, nome_arquivo: str):
        self.nome_arquivo = nome_arquivo
        super().__init__(f"Arquivo deve ser XML: {nome_arquivo}")


class LimiteLoteExcedido(ErroUpload):
    code = "UPLOAD_1002"

    def __init__(self, quantidade: int, limite: int):
        self.quantidade = quantidade
        self.limite = limite
        super().__init__(f"Máximo de {limite} arquivos por vez (recebidos {quantidade}).")


class FilaIngestaoCheia(ErroUpload):
    """
    Backpressure: não há capacidade para agendar mais tarefas agora.
    Nenhum Upload é criado quando esta exceção é levantada.
    """

    code = "UPLOAD_1003"

    def __init__(self, solicitadas: int, disponiveis: int):
        self.solicitadas = solicitadas
        self.disponiveis = disponiveis
        super().__init__(
            f"Fila de ingestão cheia: {solicitadas} tarefa(s) solicitada(s), {disponiveis} vaga(s) disponível(is)."
        )


class UploadNaoEncontrado(ErroUpload):
    code = "UPLOAD_2001"

    def __init__(self, upload_id):
        self.upload_id = upload_id
        super().__init__(f"Upload não encontrado: {upload_id}")
