"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Configuracion de desarrollo vs produccion:
    - ENVIRONMENT: 'development' o 'production'
    - En desarrollo se permite omitir CLICKUP_WEBHOOK_SECRET (firma no verificada)
    - DATABASE_URL se puede especificar completa o por componentes
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="ClickUp Task Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="tasksync_user")
    DATABASE_PASSWORD: str = Field(default="tasksync_pass")
    DATABASE_NAME: str = Field(default="tasksync_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # ClickUp - API
    CLICKUP_API_TOKEN: str = Field(default="")
    CLICKUP_BASE_URL: str = Field(default="https://api.clickup.com/api/v2")
    # Opcional: solo se envia al crear webhooks si esta definido
    CLICKUP_CLIENT_ID: str = Field(default="")
    HTTP_TIMEOUT_S: float = Field(default=30.0)

    # ClickUp - Webhooks
    CLICKUP_WEBHOOK_SECRET: str = Field(default="")
    CLICKUP_WEBHOOK_CALLBACK_URL: str = Field(default="")
    CLICKUP_WEBHOOK_SIGNATURE_ALGORITHM: str = Field(default="sha256")

    # Rate limiting (ClickUp: 100 requests por minuto por workspace)
    CLICKUP_RATE_LIMIT_PER_MINUTE: int = Field(default=100)
    CLICKUP_SHORT_WINDOW_MAX_REQUESTS: int = Field(default=10)
    CLICKUP_SHORT_WINDOW_MS: int = Field(default=1000)
    RATE_LIMIT_POLL_INTERVAL_S: float = Field(default=0.1)

    # Sync
    CLICKUP_TASKS_PAGE_SIZE: int = Field(default=100)
    SYNC_UPSERT_BATCH_SIZE: int = Field(default=100)
    # Backfill de comentarios en full sync: 1 llamada remota por tarea (caro)
    SYNC_COMMENTS_ON_FULL_SYNC: bool = Field(default=False)
    FOLDER_SYNC_CONCURRENCY: int = Field(default=1)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
