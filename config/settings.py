from pathlib import Path
import os
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

ALLOWED_HOSTS = ["*", "localhost", "127.0.0.1"]


INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",

    "rest_framework",

    "commons",
    "documentos",  # DocumentoFiscal, Empresa, Veiculo
    "uploads",     # Upload + intake + command importar_xml
]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================
# Banco de dados
# =============================
# DB_ENGINE=postgresql em produção; SQLite para execução local e testes.
DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")

if DB_ENGINE == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("PGDATABASE", "transporte"),
            "USER": os.getenv("PGUSER", "postgres"),
            "PASSWORD": os.getenv("PGPASSWORD", ""),
            "HOST": os.getenv("PGHOST", "127.0.0.1"),
            "PORT": os.getenv("PGPORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "0")),
            "TEST": {
                "NAME": "test_transporte",
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "transporte.sqlite3")),
            # BEGIN IMMEDIATE: escritores concorrentes aguardam o lock até o timeout
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": int(os.getenv("SQLITE_TIMEOUT", "20")),
            },
            # Banco de teste em arquivo: threads do pool abrem conexões próprias
            "TEST": {
                "NAME": str(BASE_DIR / "test_transporte.sqlite3"),
            },
        }
    }

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
}

# =============================
# Ingestão de XML
# =============================
# Pool de workers que processa uploads fora do ciclo request/response.
INGESTAO_MAX_WORKERS = int(os.getenv("INGESTAO_MAX_WORKERS", "4"))
# Máximo de tarefas em voo (fila + execução). Acima disso, rejeita.
INGESTAO_MAX_PENDENTES = int(os.getenv("INGESTAO_MAX_PENDENTES", "500"))
# Retentativas de falha de banco (conexão/commit) na fronteira da transação.
INGESTAO_MAX_TENTATIVAS = int(os.getenv("INGESTAO_MAX_TENTATIVAS", "3"))
INGESTAO_BACKOFF_BASE = float(os.getenv("INGESTAO_BACKOFF_BASE", "0.5"))
# Exige DV correto da chave de acesso antes de persistir.
INGESTAO_VALIDAR_DV_CHAVE = os.getenv("INGESTAO_VALIDAR_DV_CHAVE", "1") == "1"

UPLOAD_MAX_ARQUIVOS_LOTE = int(os.getenv("UPLOAD_MAX_ARQUIVOS_LOTE", "100"))

sentry_sdk.init(
    dsn=os.getenv("SENTRY_DSN", ""),
    integrations=[DjangoIntegration()],
    traces_sample_rate=0.1,
    send_default_pii=False,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "class": "pythonjsonlogger.json.JsonFormatter",
        },
        "simple": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "level": "INFO",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
        "transporte": {
            "handlers": ["console"],
            "level": os.getenv("TRANSPORTE_LOG_LEVEL", "DEBUG"),
            "propagate": True,
        },
    },
}
