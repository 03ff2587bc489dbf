from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bakery.config import settings
from bakery.core.database import engine, Base
from bakery.core.logging_config import setup_logging, get_logger
from bakery.api.auth import router as auth_router
from bakery.api.products import router as products_router
from bakery.api.prepared import router as prepared_router
from bakery.api.staff_orders import router as staff_orders_router
from bakery.api.fifo import router as fifo_router
from bakery.api.events import router as events_router
import bakery.models  # noqa: F401  регистрация таблиц в Base.metadata

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Таблицы БД проверены/созданы")
    yield
    await engine.dispose()


app = FastAPI(title="Bakery fulfillment", version="1.0.0", lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Необработанная ошибка: %s", exc)
    detail = "Внутренняя ошибка сервера"
    err_str = str(exc).lower()
    if "duplicate key" in err_str or "unique constraint" in err_str:
        detail = "Конфликт данных (дубликат). Обновите страницу и повторите."
    elif "foreign key" in err_str:
        detail = "Ошибка связи с данными (например, продукт удалён). Обновите страницу."
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth_router)
app.include_router(products_router)
app.include_router(prepared_router)
app.include_router(staff_orders_router)
app.include_router(fifo_router)
app.include_router(events_router)


@app.get("/health")
def health():
    return {"status": "ok"}
