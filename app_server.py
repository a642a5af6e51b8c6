from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, field_validator

from document_composer import DocumentComposer, Language, delivery_filename, language_profile
from errors import ComposerError
from fonts import FontCatalog
from logging_setup import configure_logging, get_logger
from settings import Settings

logger = get_logger(__name__)

app = FastAPI(title="Presentation Composer API")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return settings


@lru_cache(maxsize=1)
def get_composer() -> DocumentComposer:
    settings = get_settings()
    logger.info(
        "Fetch config: timeout=%sms retries=%s backoff=%sms",
        settings.fetch_timeout_ms,
        settings.fetch_retries,
        settings.fetch_backoff_ms,
    )
    return DocumentComposer(settings, FontCatalog.load(settings.font_dir))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": "Request validation failed.",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


class PersonalizeRequest(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    language: Language = Language.ENGLISH

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/personalize")
def personalize(
    request: PersonalizeRequest,
    composer: DocumentComposer = Depends(get_composer),
) -> Response:
    try:
        pdf_bytes = composer.compose(request.name, request.language)
    except ComposerError as exc:
        logger.error(
            "Presentation generation failed for %s (%s): %s",
            request.name,
            request.language.value,
            exc,
            exc_info=exc,
        )
        notice = language_profile(request.language, composer.settings).fallback_notice
        return JSONResponse(
            status_code=503,
            content={"message": notice},
        )

    filename = delivery_filename(request.name)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
