from prometheus_fastapi_instrumentator import Instrumentator

from inventario import create_app
from inventario.core.config import settings
from inventario.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
app = create_app(settings)
Instrumentator().instrument(app).expose(app)


def run() -> None:
    import uvicorn

    uvicorn.run("inventario.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
