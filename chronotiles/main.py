from fastapi import FastAPI
import logging

from chronotiles.api.routes import router
from chronotiles.session_store import shutdown_sessions

app = FastAPI(title="chronotiles", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@app.on_event("shutdown")
async def _shutdown() -> None:
    await shutdown_sessions()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "chronotiles", "version": "0.1.0"}
