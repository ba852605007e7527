# app/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .checkout import CheckoutCoordinator
from .config import Settings, get_settings
from .core import CheckoutRequest, ProductOut, parse_product_form, product_out, receipt_dict
from .database import Database
from .errors import StoreError
from .images import ImageStore
from .repository import ProductRepository

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.sqlalchemy_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_schema()
        logger.info("Store ready (%s)", database.engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            database.dispose()
            logger.info("Store connections released")

    app = FastAPI(title="api-catalog", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    images = ImageStore(settings.upload_dir, settings.max_upload_bytes, settings.allowed_image_types)
    app.state.settings = settings
    app.state.database = database
    app.state.images = images
    app.state.repository = ProductRepository(database)
    app.state.checkout = CheckoutCoordinator(database, timeout=settings.checkout_timeout)

    app.mount("/uploads", StaticFiles(directory=str(images.upload_dir)), name="uploads")

    # ---------------------------
    # Error mapping
    # ---------------------------
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return JSONResponse(status_code=400, content={"error": "; ".join(problems), "code": "validation_error"})

    @app.get("/health")
    def healthcheck():
        return {"status": "ok"}

    # ---------------------------
    # Product endpoints
    # ---------------------------
    @app.post("/api/upload", status_code=201)
    def upload_product(
        request: Request,
        prod_name: Optional[str] = Form(None),
        prod_price: Optional[str] = Form(None),
        prod_quan: Optional[str] = Form(None),
        prod_code: Optional[str] = Form(None),
        prod_img: Optional[UploadFile] = File(None),
    ):
        product = parse_product_form(prod_name, prod_price, prod_quan, prod_code)
        state = request.app.state
        with state.images.capture(prod_img) as image:
            pid = state.repository.create(product, image)
        return {"message": "Image uploaded and product added successfully", "prod_id": pid}

    @app.get("/api/products", response_model=list[ProductOut])
    def list_products(request: Request):
        return [product_out(p) for p in request.app.state.repository.list()]

    @app.get("/api/products/{product_id}", response_model=ProductOut)
    def get_product(request: Request, product_id: int):
        return product_out(request.app.state.repository.get(product_id))

    @app.put("/api/products/{product_id}")
    def update_product(
        request: Request,
        product_id: int,
        prod_name: Optional[str] = Form(None),
        prod_price: Optional[str] = Form(None),
        prod_quan: Optional[str] = Form(None),
        prod_code: Optional[str] = Form(None),
        prod_img: Optional[UploadFile] = File(None),
    ):
        product = parse_product_form(prod_name, prod_price, prod_quan, prod_code)
        state = request.app.state
        with state.images.capture(prod_img) as image:
            updated = state.repository.update(product_id, product, image)
        return {"message": "Product updated successfully", "updatedProduct": product_out(updated)}

    @app.delete("/api/products/{product_id}")
    def delete_product(request: Request, product_id: int):
        request.app.state.repository.delete(product_id)
        return {"message": "Product deleted successfully"}

    # ---------------------------
    # Checkout (atomic multi-item)
    # ---------------------------
    @app.post("/api/checkout")
    def checkout(request: Request, payload: CheckoutRequest):
        receipt = request.app.state.checkout.checkout(payload.products)
        return receipt_dict(receipt)

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
