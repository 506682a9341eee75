import os
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.db import Base, engine

from app.routers import games as games_router
from app.routers import play as play_router
from app.routers import history as history_router

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = FastAPI(title="Quiz Game API")

# ==== CORS ====
origins = os.getenv("CORS_ORIGINS", "")
origins_list = [o.strip() for o in origins.split(",")] if origins else ["http://localhost:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# En local sin Alembic: crea las tablas al arrancar
if os.getenv("DEV_AUTO_CREATE", "0") == "1":
    Base.metadata.create_all(bind=engine)

# ==== Routers ====
app.include_router(games_router.router)
app.include_router(play_router.router)
app.include_router(history_router.router)

@app.get("/health")
def health():
    return {"status": "ok"}
