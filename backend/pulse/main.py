# backend/pulse/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Config
from .db import Base, engine
from .deps import shutdown_reconciler
from .residents import router as residents_router
from .visits import router as visits_router
from .risk import router as risk_router
from .settings import router as settings_router
from . import models  # noqa: F401  (register tables on Base)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    # let in-flight score write-backs finish
    shutdown_reconciler()


app = FastAPI(title="Pulse", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/status")
def status():
    return {"ok": True}


# Routers
app.include_router(residents_router)
app.include_router(visits_router)
app.include_router(risk_router)
app.include_router(settings_router)
