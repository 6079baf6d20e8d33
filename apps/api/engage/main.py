from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engage.core.config import settings
from engage.core.logging import configure_logging
from engage.routers.automation import router as automation_router
from engage.routers.employee_events import router as employee_events_router
from engage.routers.employees import router as employees_router

configure_logging(settings.log_level)

app = FastAPI(title="Engage API")

# CORS_ORIGINS="http://localhost:8081,https://engage-web.onrender.com"
allow_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

# Safe fallback for local dev if env var not set
if not allow_origins:
  allow_origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
  ]

app.add_middleware(
  CORSMiddleware,
  allow_origins=allow_origins,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)

app.include_router(automation_router, prefix="/automation", tags=["automation"])
app.include_router(employee_events_router, prefix="/employee-events", tags=["employee-events"])
app.include_router(employees_router, prefix="/employees", tags=["employees"])

@app.get("/health")
def health():
  return {"status": "ok"}
