from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from twi_map.api.routes import map
from twi_map.db.sqlite_db import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="TWI Map", version="0.1.0", lifespan=lifespan)

# Local tool: the map front-end may be served from anywhere
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(map.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
