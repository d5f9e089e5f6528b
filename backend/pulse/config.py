# backend/pulse/config.py
import os
from pathlib import Path
from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=ENV_PATH)


class Config:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pulse.db")
    CORS_ORIGINS = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    ]

    # Write-back pool for score reconciliation
    RECONCILE_WORKERS = int(os.getenv("RECONCILE_WORKERS", "2"))

    # How many reported symptoms are carried on a resident
    RECENT_SYMPTOM_LIMIT = int(os.getenv("RECENT_SYMPTOM_LIMIT", "20"))

    # Organization defaults used when the settings record is first created
    BARANGAY_NAME = os.getenv("BARANGAY_NAME", "Brgy. Santa Rosa")
    MUNICIPALITY = os.getenv("MUNICIPALITY", "Santa Rosa City")
    HEALTH_STATION_ID = os.getenv("HEALTH_STATION_ID", "BHS-001")
