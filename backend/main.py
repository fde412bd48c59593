from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from typing import Optional
import logging

from api.orders import router as orders_router
from api.products import router as products_router
from api.websocket import router as websocket_router
from config import Settings, settings
from core.errors import KioskError, ValidationError
from core.record_store import RecordStore
from services.assets import AssetStore
from services.catalog import ProductCatalog
from services.notifier import ChangeNotifier
from services.orders import OrderLedger
from utils.broadcast import Broadcaster

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title="Self Order Kiosk API",
        description="Menu and order management for a self-service kiosk",
        version="1.0.0",
        debug=app_settings.debug,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    products_store = RecordStore(app_settings.products_path)
    orders_store = RecordStore(app_settings.orders_path)
    assets = AssetStore(app_settings.images_dir, app_settings.images_url_prefix)
    broadcaster = Broadcaster(app_settings.subscriber_queue_size)
    notifier = ChangeNotifier(broadcaster)

    app.state.settings = app_settings
    app.state.broadcaster = broadcaster
    app.state.catalog = ProductCatalog(products_store, assets, notifier)
    app.state.ledger = OrderLedger(orders_store, notifier)

    @app.on_event("startup")
    async def prepare_data_dir():
        assets.ensure_exists()
        products_store.ensure_exists()
        orders_store.ensure_exists()
        logger.info("Serving data from %s", app_settings.data_dir.resolve())

    @app.exception_handler(KioskError)
    async def kiosk_error_handler(request: Request, exc: KioskError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Same 400 body as errors raised by the services, naming the first bad field
        errors = exc.errors()
        first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
        loc = first.get("loc") or ()
        field = str(loc[-1]) if loc else None
        error = ValidationError(field, first.get("msg", "Invalid request"))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    # Include routers
    app.include_router(products_router, prefix="/api", tags=["products"])
    app.include_router(orders_router, prefix="/api", tags=["orders"])
    app.include_router(websocket_router, tags=["websocket"])

    # Uploaded product images
    app.mount(
        app_settings.images_url_prefix,
        StaticFiles(directory=app_settings.images_dir, check_dir=False),
        name="images",
    )

    @app.get("/")
    async def root():
        return {"message": "Self Order Kiosk Backend Running ✅"}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "observers": broadcaster.subscriber_count,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
