from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware

import anisocial.utils.logger  # noqa: F401  configures the "anisocial" logger
from anisocial.api import social
from anisocial.api.metrics_api import router as metrics_api_router
from anisocial.services.anilist_client import AniListClient
from anisocial.services.media_service import MediaService
from anisocial.services.social_graph import SocialGraph


def create_app(service: Optional[MediaService] = None) -> FastAPI:
    app = FastAPI(title="AniSocial API", version="1.0.0")

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One social graph per app instance; the API works on a single root user at a time
    app.state.social_graph = SocialGraph(service or AniListClient())

    app.include_router(social.router, prefix="/api/social", tags=["Social"])
    app.include_router(metrics_api_router, prefix="/api", tags=["Metrics"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
