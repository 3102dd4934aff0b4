import json
import uuid
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from ..services.advisor import AdvisoryService
from ..services.errors import AdvisoryError
from ..utils import caller_identifier

log = structlog.get_logger()

router = APIRouter()

def get_advisory_service(request: Request) -> AdvisoryService:
    return request.app.state.advisory_service

def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={'error': message})

@router.get(
    '/health',
    summary="Health check",
    description="Returns the configured completion provider and whether its credential is present.",
    tags=["Health"],
)
def health(service: AdvisoryService = Depends(get_advisory_service)):
    settings = service.settings
    return {
        'ok': True,
        'provider': settings.provider,
        'configured': settings.api_key() is not None,
    }

@router.post(
    '/copilot',
    summary="Structured advisory answer",
    description=(
        "Answers the last user message against the supplied portfolio, analytics, news and profile. "
        "Returns {structured, timestamp} or {error} with 400/429/503/500."
    ),
    tags=["Copilot"],
)
async def copilot(request: Request, service: AdvisoryService = Depends(get_advisory_service)):
    caller_id = caller_identifier(
        request.headers.get('x-forwarded-for'),
        request.client.host if request.client else None,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=uuid.uuid4().hex[:12], caller_id=caller_id)
    try:
        try:
            payload = json.loads(await request.body() or b'null')
        except ValueError:
            # Still routed through the handler so the rate limit applies first.
            payload = None
        result = await service.handle(payload, caller_id)
        return result.to_dict()
    except AdvisoryError as e:
        log.info("copilot_error", kind=e.kind, status=e.status_code)
        return _error(e.status_code, e.message)
    except Exception:
        log.exception("copilot_unexpected_error")
        return _error(500, 'Unexpected error')
    finally:
        structlog.contextvars.clear_contextvars()
