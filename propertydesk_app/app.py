import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from core.catch_error_middleware import ErrorHandlerMiddleware
from core.exception_handler import AppErrorHandler, ValidationErrorHandler
from core.exceptions import AppError
from core.lifespan import lifespan
from core.settings import settings
from routes.building_routes import router as building_router
from routes.maintenance_routes import router as maintenance_router
from routes.notification_routes import router as notification_router
from routes.payment_link_routes import router as payment_link_router
from routes.payment_routes import router as payment_router
from routes.tenancy_routes import router as tenancy_router
from routes.unit_routes import router as unit_router

logging.basicConfig(level=logging.INFO)
app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="1.0.0",
)

app.include_router(building_router, prefix="/v1/buildings")
app.include_router(tenancy_router, prefix="/v1/tenancies")
app.include_router(payment_router, prefix="/v1/payments")
app.include_router(payment_link_router, prefix="/v1/payment-links")
app.include_router(unit_router, prefix="/v1/units")
app.include_router(maintenance_router, prefix="/v1/maintenance")
app.include_router(notification_router, prefix="/v1/notifications")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


app.add_exception_handler(
    RequestValidationError,
    ValidationErrorHandler(),
)
app.add_exception_handler(AppError, AppErrorHandler())

app.add_middleware(ErrorHandlerMiddleware)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
