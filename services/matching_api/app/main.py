from fastapi import FastAPI

from services.matching_api.app.routers import matching


def create_app() -> FastAPI:
    app = FastAPI(title="Cluster Matching API", version="0.1.0")
    app.include_router(matching.router, prefix="/v1", tags=["cluster-matching"])
    return app


app = create_app()
