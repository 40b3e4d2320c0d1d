# uploads/dispatcher.py
"""
Agendamento das tarefas de ingestão fora do ciclo de request.

- Pool fixo de threads (INGESTAO_MAX_WORKERS).
- Limite de tarefas em voo (INGESTAO_MAX_PENDENTES = executando + na fila).
  A capacidade é reservada ANTES de criar os Uploads; sem vaga, a chamada
  falha com FilaIngestaoCheia e nada é gravado.
- Cada tarefa fecha as conexões de banco da sua thread ao terminar.
"""

import atexit
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from django.conf import settings
from django.db import connections

from uploads.exceptions import FilaIngestaoCheia

logger = logging.getLogger("transporte.uploads")


class ExecutorSincrono:
    """
    Executa a tarefa na própria thread de quem chama, devolvendo um Future
    já resolvido. Usado pelo comando importar_xml --sincrono e nos testes.
    """

    def submit(self, fn, *args, **kwargs) -> Future:
        futuro: Future = Future()
        try:
            futuro.set_result(fn(*args, **kwargs))
        except Exception as exc:
            futuro.set_exception(exc)
        return futuro

    def shutdown(self, wait: bool = True) -> None:
        return None


class Reserva:
    """
    Vagas reservadas no dispatcher. Cada despachar() consome uma vaga; as
    não usadas são devolvidas ao sair do bloco `with` (ou em liberar()).
    """

    def __init__(self, dispatcher: "IngestaoDispatcher", quantidade: int):
        self._dispatcher = dispatcher
        self._restantes = quantidade

    @property
    def restantes(self) -> int:
        return self._restantes

    def despachar(self, func: Callable, *args) -> Future:
        if self._restantes <= 0:
            raise RuntimeError("Reserva esgotada: nenhuma vaga restante para despachar.")
        self._restantes -= 1
        return self._dispatcher._submeter(func, *args)

    def liberar(self) -> None:
        if self._restantes > 0:
            self._dispatcher._devolver(self._restantes)
            self._restantes = 0

    def __enter__(self) -> "Reserva":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.liberar()


class IngestaoDispatcher:
    def __init__(
        self,
        *,
        max_workers: Optional[int] = None,
        max_pendentes: Optional[int] = None,
        executor=None,
        fechar_conexoes: bool = True,
    ):
        self.max_workers = max_workers or getattr(settings, "INGESTAO_MAX_WORKERS", 4)
        self.max_pendentes = max_pendentes or getattr(settings, "INGESTAO_MAX_PENDENTES", 500)
        self.fechar_conexoes = fechar_conexoes

        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="ingestao",
        )
        self._lock = threading.Lock()
        self._ocioso = threading.Condition(self._lock)
        self._em_voo = 0

    @property
    def em_voo(self) -> int:
        with self._lock:
            return self._em_voo

    @property
    def disponiveis(self) -> int:
        with self._lock:
            return max(self.max_pendentes - self._em_voo, 0)

    def pode_aceitar(self, quantidade: int = 1) -> bool:
        return quantidade <= self.disponiveis

    def reservar(self, quantidade: int = 1) -> Reserva:
        """
        Reserva `quantidade` vagas de uma vez, sem bloquear. Tudo ou nada.
        """
        with self._lock:
            livres = self.max_pendentes - self._em_voo
            if quantidade > livres:
                logger.warning(
                    "Backpressure: fila de ingestão cheia",
                    extra={
                        "event": "ingestao_backpressure",
                        "solicitadas": quantidade,
                        "disponiveis": max(livres, 0),
                        "max_pendentes": self.max_pendentes,
                    },
                )
                raise FilaIngestaoCheia(quantidade, max(livres, 0))
            self._em_voo += quantidade
        return Reserva(self, quantidade)

    def _devolver(self, quantidade: int) -> None:
        with self._lock:
            self._em_voo = max(self._em_voo - quantidade, 0)
            if self._em_voo == 0:
                self._ocioso.notify_all()

    def _submeter(self, func: Callable, *args) -> Future:
        try:
            return self._executor.submit(self._executar, func, *args)
        except RuntimeError:
            # executor já encerrado
            self._devolver(1)
            raise

    def _executar(self, func: Callable, *args):
        try:
            return func(*args)
        except Exception:
            logger.exception(
                "Tarefa de ingestão terminou com erro",
                extra={"event": "ingestao_tarefa_erro", "tarefa": getattr(func, "__name__", repr(func))},
            )
            raise
        finally:
            self._devolver(1)
            if self.fechar_conexoes:
                connections.close_all()

    def aguardar(self, timeout: Optional[float] = None) -> bool:
        """
        Bloqueia até não haver tarefa em voo. Retorna False se o timeout expirar.
        """
        with self._ocioso:
            return self._ocioso.wait_for(lambda: self._em_voo == 0, timeout=timeout)

    def encerrar(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


_dispatcher_padrao: Optional[IngestaoDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher_padrao() -> IngestaoDispatcher:
    """
    Dispatcher do processo, criado na primeira chamada e encerrado no exit.
    """
    global _dispatcher_padrao
    with _dispatcher_lock:
        if _dispatcher_padrao is None:
            _dispatcher_padrao = IngestaoDispatcher()
            atexit.register(_dispatcher_padrao.encerrar)
        return _dispatcher_padrao
