import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.database import init_db
from core.errors import register_exception_handlers
from core.settings import get_settings
from modules.clients.router import router as clients_router
from modules.costing.router import router as costing_router
from modules.orders.router import router as orders_router
from modules.products.router import labor_router, processes_router
from modules.products.router import router as products_router
from modules.quotes.router import router as quotes_router


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(products_router)
    app.include_router(processes_router)
    app.include_router(labor_router)
    app.include_router(costing_router)
    app.include_router(clients_router)
    app.include_router(orders_router)
    app.include_router(quotes_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


@app.on_event("startup")
def on_startup():
    init_db()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000)
