from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from aquadesk.core.config import settings
from aquadesk.common.error_handlers import register_error_handlers
from aquadesk.api.v1 import customer, rider, order, daily_closing, dashboard

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Register API routers
app.include_router(
    customer.router, prefix="/api/v1/customers", tags=["customers"])
app.include_router(rider.router, prefix="/api/v1/riders", tags=["riders"])
app.include_router(order.router, prefix="/api/v1/orders", tags=["orders"])
app.include_router(
    daily_closing.router, prefix="/api/v1/daily-closings", tags=["daily-closings"])
app.include_router(
    dashboard.router, prefix="/api/v1/dashboard", tags=["dashboard"])


@app.get("/")
def read_root():
    return {"message": f"Welcome to the {settings.APP_NAME} APIs!"}
