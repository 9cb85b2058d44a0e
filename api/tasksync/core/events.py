"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from tasksync.application.use_cases.webhook_use_cases import WebhookDispatcher, WebhookEventProcessor
from tasksync.core.config import settings
from tasksync.infrastructure.database.session import AsyncSessionLocal, init_db, close_db
from tasksync.infrastructure.external.clickup.client import build_clickup_client


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            # Validar configuracion critica
            _validate_config()

            # Inicializar base de datos (crea tablas si no existen)
            await init_db()
            logger.info("Base de datos inicializada")

            # Cliente unico de ClickUp: full sync y webhooks comparten rate limiters
            client = build_clickup_client(settings)
            app.state.clickup_client = client
            app.state.webhook_dispatcher = WebhookDispatcher(
                WebhookEventProcessor(client, AsyncSessionLocal)
            )
            logger.info(
                f"Cliente ClickUp listo ({settings.CLICKUP_RATE_LIMIT_PER_MINUTE} req/min, "
                f"{settings.CLICKUP_SHORT_WINDOW_MAX_REQUESTS} req/{settings.CLICKUP_SHORT_WINDOW_MS}ms)"
            )

            # Configurar logging adicional
            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            logger.success("Aplicacion iniciada correctamente")

            # Mostrar URLs disponibles
            _print_available_urls()

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.CLICKUP_API_TOKEN:
        warnings.append("CLICKUP_API_TOKEN no configurado - la sync con ClickUp no funcionara")
    if not settings.CLICKUP_WEBHOOK_CALLBACK_URL:
        warnings.append("CLICKUP_WEBHOOK_CALLBACK_URL no configurado - no se registraran webhooks")
    if not settings.CLICKUP_WEBHOOK_SECRET:
        if settings.is_development:
            warnings.append("CLICKUP_WEBHOOK_SECRET no configurado - firmas de webhook sin verificar")
        else:
            warnings.append("CLICKUP_WEBHOOK_SECRET no configurado en produccion - cualquiera puede enviar eventos")

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    # Determinar la URL base de acceso
    if settings.HOST == "0.0.0.0":
        access_host = "localhost"
    else:
        access_host = settings.HOST

    base_url = f"http://{access_host}:{settings.PORT}"

    # Mostrar las URLs disponibles
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Webhook:     {base_url}/api/v1/webhooks/clickup</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        # Esperar eventos de webhook en curso
        dispatcher = getattr(app.state, "webhook_dispatcher", None)
        if dispatcher is not None:
            await dispatcher.drain(timeout=30)
            logger.info("Cola de webhooks vaciada")

        client = getattr(app.state, "clickup_client", None)
        if client is not None:
            await client.aclose()
            logger.info("Cliente ClickUp cerrado")

        # Cerrar conexiones de base de datos
        await close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Ciclo de vida de la aplicacion (startup y shutdown)."""
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
