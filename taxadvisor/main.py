from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request

from .advisor import TaxAdvisorAgent
from .audit import TaxAuditAgent
from .config import AppSettings, load_settings
from .db import Database
from .dispatcher import ToolDispatcher
from .illustration import TaxGraphicAgent
from .imagegen import ImageClient
from .llm import GeminiClient
from .orchestrator import AdvicePipeline
from .portfolio import PortfolioQueryService
from .schemas import AdviceRequest, AdviceResponse
from .tax import TaxCalculationService
from .tools import as_json_spec


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_pipeline(request: Request) -> AdvicePipeline:
    return request.app.state.pipeline


def get_gemini_client(request: Request) -> GeminiClient:
    return request.app.state.gemini_client


def get_image_client(request: Request) -> ImageClient:
    return request.app.state.image_client


def build_pipeline(
    settings: AppSettings,
    db: Database,
    gemini_client: GeminiClient,
    image_client: ImageClient,
) -> AdvicePipeline:
    portfolio = PortfolioQueryService(db)
    advisor = TaxAdvisorAgent(
        gemini_client,
        ToolDispatcher(portfolio),
        portfolio,
        TaxCalculationService(portfolio),
        max_iterations=settings.gemini.max_iterations,
    )
    return AdvicePipeline(advisor, TaxAuditAgent(gemini_client), TaxGraphicAgent(image_client))


router = APIRouter()


@router.get("/health")
async def health(
    gemini_client: GeminiClient = Depends(get_gemini_client),
    image_client: ImageClient = Depends(get_image_client),
):
    return {
        "ok": True,
        "model_configured": gemini_client.is_configured(),
        "image_configured": image_client.is_configured(),
    }


@router.get("/settings")
async def get_settings_route(settings: AppSettings = Depends(get_settings)):
    return {"settings": settings.to_safe_dict()}


@router.get("/api/tools")
async def get_tools() -> List[Dict[str, Any]]:
    return as_json_spec()


@router.post("/api/advice", response_model=AdviceResponse)
async def get_advice(
    payload: AdviceRequest,
    settings: AppSettings = Depends(get_settings),
    pipeline: AdvicePipeline = Depends(get_pipeline),
):
    user_id = settings.default_user_id
    result = await pipeline.run_pipeline(payload.question, user_id)
    return AdviceResponse.from_pipeline(user_id, payload.question, result)


def create_app(
    settings: AppSettings,
    *,
    db: Optional[Database] = None,
    gemini_client: Optional[GeminiClient] = None,
    image_client: Optional[ImageClient] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.db.init(seed_demo_data=app.state.settings.seed_demo_data)
        try:
            yield
        finally:
            await app.state.gemini_client.close()
            await app.state.image_client.close()

    app = FastAPI(title="Tax-loss Harvesting Advisor", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db or Database(settings.database_path)
    app.state.gemini_client = gemini_client or GeminiClient(settings.gemini)
    app.state.image_client = image_client or ImageClient(settings.image)
    app.state.pipeline = build_pipeline(
        settings,
        app.state.db,
        app.state.gemini_client,
        app.state.image_client,
    )
    app.include_router(router)
    return app


app = create_app(load_settings())


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    try:
        uvicorn.run("taxadvisor.main:app", host=settings.host, port=settings.port)
    except KeyboardInterrupt:
        pass
