from fastapi import FastAPI

from sklad_sync import config
from sklad_sync.routers import sync
from sklad_sync.utils.log import setup_logging

setup_logging(config.LOG_LEVEL)

app = FastAPI(title="MoySklad Sheets Sync")

app.include_router(sync.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
