"""Точка входу price-window рушія: warm-up у фоні + HTTP API."""

from __future__ import annotations

import asyncio
import logging
import sys

from api.profit_http_server import ProfitHttpServer
from app.settings import Settings, settings
from core.errors import DataNotFound
from profit_core.service import PriceEngineService

logger = logging.getLogger("app.main")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    logger.addHandler(logging.StreamHandler())
    # Під pytest caplog навішує handler на root logger; щоб він бачив записи,
    # вмикаємо propagate лише у тестовому середовищі.
    logger.propagate = "pytest" in sys.modules


def build_service(cfg: Settings) -> PriceEngineService:
    """Відкриває файл цін і будує фасад із лімітами з налаштувань."""

    service = PriceEngineService.from_path(cfg.prices_file, config=cfg.engine_config())
    logger.info(
        "[Main] Джерело цін: %s (формат=%s)",
        service.source.path,
        service.source.format.value,
    )
    return service


def build_server(cfg: Settings, service: PriceEngineService) -> ProfitHttpServer:
    return ProfitHttpServer(
        service=service,
        host=cfg.http_host,
        port=cfg.http_port,
        api_key=cfg.api_key,
    )


async def run_app(cfg: Settings = settings) -> None:
    """Запускає warm-up (статистика + індекс) і HTTP-сервер до скасування."""

    logging.getLogger().setLevel(cfg.log_level)
    logger.setLevel(cfg.log_level)

    service = build_service(cfg)
    server = build_server(cfg, service)

    warm_up_task = asyncio.create_task(service.warm_up(), name="price-engine-warm-up")
    try:
        await server.run()
    finally:
        if not warm_up_task.done():
            warm_up_task.cancel()
            try:
                await warm_up_task
            except asyncio.CancelledError:
                pass
        await server.stop()


if __name__ == "__main__":
    try:
        asyncio.run(run_app())
    except KeyboardInterrupt:
        logger.info("Price-window рушій зупинено користувачем")
        sys.exit(0)
    except DataNotFound as exc:
        logger.error("Файл цін недоступний: %s", exc.message)
        sys.exit(2)
    except Exception as exc:
        logger.error("Помилка виконання: %s", exc, exc_info=True)
        sys.exit(1)
