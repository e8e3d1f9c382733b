import logging

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from PlayLog import VERSION
from PlayLog.api.endpoints import playtime as playtime_router
from PlayLog.config import Settings

logger = logging.getLogger(__name__)

settings = Settings()

app = FastAPI(
    title="PlayLog API",
    description="Daily and range playtime totals built from segmented Steam play sessions.",
    version=VERSION,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

api_v1_router = APIRouter(prefix=settings.api_prefix)
api_v1_router.include_router(playtime_router.router, prefix="/playtime", tags=["Playtime"])
app.include_router(api_v1_router)


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to the PlayLog API. See {settings.api_prefix}/docs for documentation."}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        format="%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-25s | %(message)s",
        level=logging.INFO,
    )
    logger.info("Starting Uvicorn server for development...")
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level="info")
