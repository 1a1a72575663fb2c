from fastapi import FastAPI
from storefront.version import VERSION
from storefront.api import products, categories, payments, orders
from storefront.core.logging import get_logger
from prometheus_fastapi_instrumentator import Instrumentator
import uvicorn

logger = get_logger(__name__)

# Create instrumentator first
instrumentator = Instrumentator()

app = FastAPI(title="Storefront", version=VERSION)

# Instrument the app BEFORE adding routes or middleware
instrumentator.instrument(app).expose(
    app,
    include_in_schema=False,
    endpoint="/metrics",
    should_gzip=True,
)

@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/v1/_info")
def info():
    return {"service": "storefront", "version": VERSION}

@app.on_event("startup")
async def startup_event():
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            logger.debug("%s %s", sorted(route.methods), route.path)

app.include_router(categories.router, prefix='/catalog/v1/categories', tags=['categories'])
app.include_router(products.router,   prefix='/catalog/v1/products',   tags=['products'])
app.include_router(payments.router,   prefix='/payment', tags=['payments'])
app.include_router(orders.router,     prefix='/order',   tags=['orders'])


def run():
    uvicorn.run(app, host="0.0.0.0", port=8000)

if __name__ == "__main__":
    run()
