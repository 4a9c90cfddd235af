"""
HTTP service exposing README generation and bundling.

Routes:
  GET  /health    → service health check
  POST /generate  → bundle a directory or GitHub repository and generate its README
  POST /bundle    → return the content bundle itself as text/plain

Run with:
    techdocs serve --port 3000
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from techdocs import __version__
from techdocs.exceptions import (
    DirectoryValidationError,
    LocationResolutionError,
    PatternError,
    TechDocsError,
)
from techdocs.generation import ReadmeGenerator, load_system_prompt
from techdocs.logging import logger
from techdocs.settings import Settings
from techdocs.workflows import build_prompt_bundle, generate_readme

CLIENT_ERRORS = (LocationResolutionError, DirectoryValidationError, PatternError)


class GenerateReadmeRequest(BaseModel):
    path_or_url: str = Field(..., description="Local directory or GitHub repository URL.")
    exclude_patterns: list[str] | None = Field(default=None, description="Patterns in .gitignore format.")


class BundleRequest(GenerateReadmeRequest):
    max_file_size_kb: int | None = Field(default=None, ge=0)
    max_total_size_mb: int | None = Field(default=None, ge=0)


class GenerateReadmeResponse(BaseModel):
    readme: str


class ErrorResponse(BaseModel):
    error: str


def _request_settings(base: Settings, body: GenerateReadmeRequest) -> Settings:
    update: dict[str, Any] = {}
    if body.exclude_patterns is not None:
        update["exclude"] = [*base.exclude, *body.exclude_patterns]
    if isinstance(body, BundleRequest):
        if body.max_file_size_kb is not None:
            update["max_file_size_kb"] = body.max_file_size_kb
        if body.max_total_size_mb is not None:
            update["max_total_size_mb"] = body.max_total_size_mb
    return base.model_copy(update=update)


def create_app(settings: Settings | None = None, generator: ReadmeGenerator | None = None) -> FastAPI:
    """Application factory.

    Args:
        settings: service-wide settings; defaults are used when None.
        generator: text-generation client; built lazily from ``settings`` when None.

    Returns:
        FastAPI: the configured application
    """
    app_settings = settings or Settings()
    application = FastAPI(
        title="TechDocs API",
        description="Generate technical documentation from codebases.",
        version=__version__,
    )
    application.state.settings = app_settings
    application.state.generator = generator

    @application.exception_handler(TechDocsError)
    async def techdocs_error_handler(request: Request, exc: TechDocsError) -> JSONResponse:
        status = 400 if isinstance(exc, CLIENT_ERRORS) else 500
        logger.error("request_failed", path=request.url.path, phase=exc.phase, error=str(exc), status=status)
        return JSONResponse(status_code=status, content=ErrorResponse(error=str(exc)).model_dump())

    @application.get("/health")
    def health_check() -> dict[str, str]:
        logger.info("health_check")
        return {"status": "ok"}

    @application.post(
        "/generate",
        response_model=GenerateReadmeResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def generate(body: GenerateReadmeRequest) -> GenerateReadmeResponse:
        logger.info("generate_requested", path_or_url=body.path_or_url)
        req_settings = _request_settings(app_settings, body)
        if application.state.generator is None:
            application.state.generator = ReadmeGenerator.from_settings(app_settings)
        readme = generate_readme(
            body.path_or_url,
            req_settings,
            application.state.generator,
            system_prompt=load_system_prompt(app_settings.prompt_file),
        )
        logger.info("readme_generated", path_or_url=body.path_or_url)
        return GenerateReadmeResponse(readme=readme)

    @application.post(
        "/bundle",
        response_class=PlainTextResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def bundle(body: BundleRequest) -> PlainTextResponse:
        logger.info("bundle_requested", path_or_url=body.path_or_url)
        text = build_prompt_bundle(body.path_or_url, _request_settings(app_settings, body))
        return PlainTextResponse(text)

    return application
