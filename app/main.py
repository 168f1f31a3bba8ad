# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.core.metrics import export_metrics
from app.api.error_handlers import register_exception_handlers
from app.api.routers import cart, orders
from app.db.session_async import dispose_engine, run_in_transaction
from app.middleware import ObservabilityMiddleware
from app.services.order_sequencer import ensure_counter

# --- Models registration (necesario para que Alembic los detecte) ---
import app.models.cart   # noqa: F401
import app.models.order  # noqa: F401

setup_logging()
logger = get_logger("app.main")

# --- Metadatos de la API para la documentación ---
TAGS_METADATA = [
    {"name": "cart", "description": "Carrito del usuario autenticado."},
    {"name": "orders", "description": "Checkout, historial de pedidos y estados (administracion)."},
    {"name": "system", "description": "Salud del servicio y metricas."},
]


@asynccontextmanager
async def lifespan(_: FastAPI):
    # El contador se siembra en el primer checkout si aquí falla
    try:
        current = await run_in_transaction(ensure_counter)
        logger.info("Order counter ready", extra={"value": current})
    except SQLAlchemyError:
        logger.warning("Order counter could not be prepared at startup", exc_info=True)
    yield
    await dispose_engine()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    description=(
        "API de la tienda de la pastelería.\n\n"
        "- **Cart**: Carrito por usuario, fusionado con el carrito anónimo al iniciar sesión.\n"
        "- **Orders**: Checkout con numeración secuencial `order-00001` y seguimiento de estados.\n\n"
        "Los tokens los emite el proveedor de identidad; usa el botón **Authorize** para probar."
    ),
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "tryItOutEnabled": True,
    },
)

# --- Middlewares ---
app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- Routers ---
app.include_router(cart.router, prefix=settings.API_V1_STR)
app.include_router(orders.router, prefix=settings.API_V1_STR)


# --- Configuración personalizada de OpenAPI ---
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=TAGS_METADATA,
    )

    comps = openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})
    comps["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
        "description": "Pega tu access token aquí. Formato: `Bearer <token>`",
    }

    # Define que los endpoints usarán BearerAuth por defecto
    openapi_schema["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


@app.get("/health", tags=["system"])
async def health():
    return {"status": "ok"}


@app.get("/metrics", tags=["system"], include_in_schema=False)
async def metrics():
    payload, content_type = export_metrics()
    return Response(content=payload, media_type=content_type)


# --- Endpoint raíz ---
@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "docs_url": "/docs", "redoc_url": "/redoc"}
