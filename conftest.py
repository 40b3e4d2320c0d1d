# conftest.py (na raiz do projeto)
import logging

import pytest

from uploads.dispatcher import ExecutorSincrono, IngestaoDispatcher

logger = logging.getLogger(__name__)


@pytest.fixture
def dispatcher():
    """
    Dispatcher que executa a ingestão na thread do teste.

    As conexões não são fechadas ao fim da tarefa: o teste roda dentro da
    transação do pytest-django e precisa continuar usando a mesma conexão.
    """
    d = IngestaoDispatcher(executor=ExecutorSincrono(), fechar_conexoes=False)
    yield d
    d.encerrar()


@pytest.fixture
def sem_dv_chave(settings):
    """
    Desliga a conferência do dígito verificador da chave de acesso
    (chaves de exemplo nem sempre trazem DV correto).
    """
    settings.INGESTAO_VALIDAR_DV_CHAVE = False
    logger.debug("Conferência de DV da chave desligada para o teste.")
    return settings


@pytest.fixture
def sem_espera(settings):
    """Retentativas sem backoff real."""
    settings.INGESTAO_BACKOFF_BASE = 0
    return settings
