"""
CLI: ClickUp -> base local (full sync).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) para reconciliar todas las listas.
  - Los webhooks mantienen la base al dia entre corridas; este job corrige
    eventos perdidos y borra tareas que ya no existen en ClickUp.

Variables de entorno requeridas:
  - CLICKUP_API_TOKEN
  - DATABASE_URL (o DATABASE_* por componentes)

Ejecucion:
  python scripts/sync_lists.py                      # todas las listas guardadas
  python scripts/sync_lists.py --url <url o id>     # agrega/sincroniza una lista o carpeta
  python scripts/sync_lists.py --with-comments      # incluye backfill de comentarios
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from tasksync.application.use_cases.list_sync_use_cases import FolderSyncResult, ListSyncUseCases
from tasksync.core.config import settings
from tasksync.infrastructure.database.session import AsyncSessionLocal, close_db, init_db
from tasksync.infrastructure.external.clickup.client import build_clickup_client


async def _run(url: str | None, with_comments: bool) -> int:
    app_settings = settings.model_copy(update={"SYNC_COMMENTS_ON_FULL_SYNC": True}) if with_comments else settings

    await init_db()
    client = build_clickup_client(app_settings)
    try:
        async with AsyncSessionLocal() as session:
            use_cases = ListSyncUseCases(session, client, app_settings=app_settings)
            if url:
                result = await use_cases.add_from_url(url)
            else:
                result = await use_cases.sync_all_lists()
    finally:
        await client.aclose()
        await close_db()

    if isinstance(result, FolderSyncResult):
        for list_id, error in result.failed.items():
            logger.error(f"Lista {list_id} fallo: {error}")
        logger.info(f"Sync terminada: {len(result.synced)} listas OK, {len(result.failed)} con error")
        return 0 if result.ok else 1

    logger.info(
        f"Sync OK: lista={result.clickup_list_id}, tareas={result.tasks_upserted}, "
        f"eliminadas={result.tasks_deleted}"
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Full sync de listas de ClickUp")
    parser.add_argument(
        "--url",
        default=None,
        help="URL de lista/vista/carpeta de ClickUp o ID de lista. Sin este flag se re-sincronizan todas.",
    )
    parser.add_argument(
        "--with-comments",
        action="store_true",
        help="Backfill de comentarios (1 llamada extra por tarea).",
    )
    args = parser.parse_args()

    if not settings.CLICKUP_API_TOKEN:
        raise SystemExit("Falta variable de entorno obligatoria: CLICKUP_API_TOKEN")

    logger.info("Iniciando ClickUp -> base local sync...")
    return asyncio.run(_run(args.url, args.with_comments))


if __name__ == "__main__":
    raise SystemExit(main())
