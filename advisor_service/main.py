from fastapi import FastAPI
from .config import Settings, settings as default_settings
from .logging import setup_logging
from .api.routes import router as api_router
from .services.advisor import AdvisoryService

def create_app(service: AdvisoryService | None = None, settings: Settings | None = None) -> FastAPI:
    app = FastAPI(title="advisor-service")
    app.state.advisory_service = service or AdvisoryService(settings or default_settings)
    app.include_router(api_router)
    return app

setup_logging()
app = create_app()
