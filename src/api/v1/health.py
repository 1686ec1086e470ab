from fastapi import APIRouter

from core.config import Settings, get_settings
from schemas.api import ApiResponse


router = APIRouter()


def _provider_credentials_present(settings: Settings) -> bool:
    if settings.LLM_PROVIDER == "azure_openai":
        return bool(settings.AZURE_OPENAI_ENDPOINT and settings.AZURE_OPENAI_API_KEY)
    return bool(settings.GEMINI_API_KEY)


@router.get("/health", response_model=ApiResponse[dict[str, str]])
def health_check() -> ApiResponse[dict[str, str]]:
    """Liveness probe; also tells whether the drafting model can be reached.

    Missing credentials do not make the service unhealthy: the form still
    works and generation reports the failure to the user.
    """
    settings = get_settings()
    return ApiResponse(
        success=True,
        data={
            "status": "healthy",
            "message": f"{settings.APP_NAME} API is running",
            "llm_provider": settings.LLM_PROVIDER,
            "report_model": settings.REPORT_MODEL,
            "credentials": (
                "configured" if _provider_credentials_present(settings) else "missing"
            ),
        },
        message="Health check successful",
    )
