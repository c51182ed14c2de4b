"""Entry point for the FastAPI-powered recommendation catalog."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError

from .auth import check_password, grant_admin, is_admin, require_admin, revoke_admin
from .config import Settings, settings
from .database import Database
from .models import CatalogQuery, CommentForm, ContentForm
from .services.catalog import CatalogService
from .services.genres import GenreResolver
from .services.tmdb import (
    MalformedResponseError,
    MissingCredentialError,
    ProviderUnavailableError,
    TMDBClient,
)
from .web import (
    render_admin_login,
    render_content_detail,
    render_content_form,
    render_home,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    app_settings = get_app_settings(fastapi_app)
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(app_settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    database = Database(app_settings.database_url)
    await database.create_all()

    tmdb = TMDBClient(app_settings, tmdb_http_client)
    if not tmdb.has_credentials:
        logger.warning("TMDB_API_KEY is not set; search and genre names are disabled")
    genre_resolver = GenreResolver(tmdb, ttl=app_settings.genre_cache_ttl)
    catalog_service = CatalogService(database.session_factory, genre_resolver)

    fastapi_app.state.tmdb_client = tmdb
    fastapi_app.state.catalog_service = catalog_service
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings
    fastapi_app = FastAPI(
        title=app_settings.app_name,
        description="A curated catalog of personal film and series picks",
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = app_settings

    register_routes(fastapi_app)
    return fastapi_app


def get_app_settings(fastapi_app: FastAPI) -> Settings:
    app_settings = getattr(fastapi_app.state, "settings", None)
    if isinstance(app_settings, Settings):
        return app_settings
    return settings


def get_catalog_service(fastapi_app: FastAPI) -> CatalogService:
    service = getattr(fastapi_app.state, "catalog_service", None)
    if not isinstance(service, CatalogService):
        raise RuntimeError("Catalog service not initialised")
    return service


def get_tmdb_client(fastapi_app: FastAPI) -> TMDBClient:
    client = getattr(fastapi_app.state, "tmdb_client", None)
    if not isinstance(client, TMDBClient):
        raise RuntimeError("TMDB client not initialised")
    return client


def register_routes(fastapi_app: FastAPI) -> None:
    def _settings() -> Settings:
        return get_app_settings(fastapi_app)

    def _redirect(url: str) -> RedirectResponse:
        return RedirectResponse(url, status_code=303)

    async def _form_payload(request: Request) -> dict[str, str]:
        form = await request.form()
        return {
            key: value for key, value in form.items() if isinstance(value, str)
        }

    def _first_error(exc: ValidationError) -> str:
        errors = exc.errors()
        if not errors:
            return "Invalid input."
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid value")
        return f"{location}: {message}" if location else str(message)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/", response_class=HTMLResponse)
    async def home(request: Request) -> HTMLResponse:
        service = get_catalog_service(fastapi_app)
        try:
            query = CatalogQuery.from_query(request.query_params)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        contents = await service.list_contents(query)
        tags = await service.available_tags()
        return HTMLResponse(
            render_home(
                _settings(),
                contents,
                query,
                tags,
                is_admin=is_admin(request, _settings()),
            )
        )

    @fastapi_app.get("/api/contents")
    async def list_contents(request: Request) -> JSONResponse:
        service = get_catalog_service(fastapi_app)
        try:
            query = CatalogQuery.from_query(request.query_params)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        contents = await service.list_contents(query)
        return JSONResponse(
            [content.model_dump(by_alias=True, mode="json") for content in contents]
        )

    @fastapi_app.get("/content/{content_id}", response_class=HTMLResponse)
    async def content_detail(request: Request, content_id: str) -> HTMLResponse:
        service = get_catalog_service(fastapi_app)
        content = await service.get_content(content_id)
        if content is None:
            raise HTTPException(status_code=404, detail="Content not found")
        comments = await service.list_comments(content_id)
        return HTMLResponse(
            render_content_detail(
                _settings(),
                content,
                comments,
                is_admin=is_admin(request, _settings()),
            )
        )

    @fastapi_app.post("/content/{content_id}/comments")
    async def add_comment(request: Request, content_id: str):
        service = get_catalog_service(fastapi_app)
        payload = await _form_payload(request)
        try:
            form = CommentForm.model_validate(payload)
        except ValidationError:
            content = await service.get_content(content_id)
            if content is None:
                raise HTTPException(status_code=404, detail="Content not found")
            comments = await service.list_comments(content_id)
            return HTMLResponse(
                render_content_detail(
                    _settings(),
                    content,
                    comments,
                    is_admin=is_admin(request, _settings()),
                    error="Nickname and comment text are required.",
                ),
                status_code=400,
            )
        try:
            await service.add_comment(content_id, form)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Content not found") from exc
        return _redirect(f"/content/{content_id}")

    @fastapi_app.get("/admin/login", response_class=HTMLResponse)
    async def admin_login_page(request: Request):
        if is_admin(request, _settings()):
            return _redirect("/admin/new")
        return HTMLResponse(render_admin_login(_settings()))

    @fastapi_app.post("/admin/login")
    async def admin_login(request: Request):
        app_settings = _settings()
        if not app_settings.admin_password:
            raise HTTPException(
                status_code=500,
                detail="ADMIN_PASSWORD must be configured to enable admin sign in.",
            )
        payload = await _form_payload(request)
        if not check_password(app_settings, payload.get("password")):
            logger.warning("Rejected admin sign in attempt")
            return HTMLResponse(
                render_admin_login(app_settings, error="Incorrect password."),
                status_code=401,
            )
        response = _redirect("/admin/new")
        grant_admin(response, app_settings)
        return response

    @fastapi_app.post("/admin/logout")
    async def admin_logout() -> RedirectResponse:
        response = _redirect("/")
        revoke_admin(response)
        return response

    @fastapi_app.get("/admin/new", response_class=HTMLResponse)
    async def admin_new(request: Request) -> HTMLResponse:
        require_admin(request, _settings())
        return HTMLResponse(render_content_form(_settings()))

    @fastapi_app.get("/api/tmdb/search")
    async def tmdb_search(request: Request, q: str | None = None) -> JSONResponse:
        require_admin(request, _settings())
        query = (q or "").strip()
        if not query:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "missing_query",
                    "description": "The q query parameter is required.",
                },
            )
        client = get_tmdb_client(fastapi_app)
        try:
            results = await client.search(query)
        except MissingCredentialError as exc:
            raise HTTPException(
                status_code=503,
                detail={
                    "error": "tmdb_credentials_missing",
                    "description": str(exc),
                },
            ) from exc
        except ProviderUnavailableError as exc:
            logger.warning("TMDB search for %r failed: %s", query, exc)
            raise HTTPException(
                status_code=502,
                detail={
                    "error": "tmdb_unavailable",
                    "description": exc.provider_message
                    or "TMDB rejected the search request. Check the server logs.",
                    "status": exc.status_code,
                },
            ) from exc
        except MalformedResponseError as exc:
            logger.warning("TMDB search for %r returned an unexpected body: %s", query, exc)
            raise HTTPException(
                status_code=502,
                detail={
                    "error": "tmdb_malformed_response",
                    "description": "TMDB returned an unexpected response.",
                },
            ) from exc
        return JSONResponse(
            [result.model_dump(by_alias=True, mode="json") for result in results]
        )

    @fastapi_app.post("/admin/content")
    async def create_content(request: Request):
        require_admin(request, _settings())
        service = get_catalog_service(fastapi_app)
        payload = await _form_payload(request)
        try:
            form = ContentForm.from_form(payload)
        except ValidationError as exc:
            return HTMLResponse(
                render_content_form(
                    _settings(), values=payload, error=_first_error(exc)
                ),
                status_code=400,
            )
        content = await service.create_content(form)
        logger.info("Created entry %s for %s", content.id, content.display_title())
        return _redirect("/")

    @fastapi_app.get("/admin/content/{content_id}/edit", response_class=HTMLResponse)
    async def edit_content_page(request: Request, content_id: str) -> HTMLResponse:
        require_admin(request, _settings())
        service = get_catalog_service(fastapi_app)
        content = await service.get_content(content_id)
        if content is None:
            raise HTTPException(status_code=404, detail="Content not found")
        return HTMLResponse(render_content_form(_settings(), content=content))

    @fastapi_app.post("/admin/content/{content_id}")
    async def update_content(request: Request, content_id: str):
        require_admin(request, _settings())
        service = get_catalog_service(fastapi_app)
        existing = await service.get_content(content_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Content not found")
        payload = await _form_payload(request)
        try:
            form = ContentForm.from_form(payload)
        except ValidationError as exc:
            return HTMLResponse(
                render_content_form(
                    _settings(),
                    content=existing,
                    values=payload,
                    error=_first_error(exc),
                ),
                status_code=400,
            )
        await service.update_content(content_id, form)
        return _redirect(f"/content/{content_id}")

    @fastapi_app.post("/admin/content/{content_id}/delete")
    async def delete_content(request: Request, content_id: str) -> RedirectResponse:
        require_admin(request, _settings())
        service = get_catalog_service(fastapi_app)
        if not await service.delete_content(content_id):
            raise HTTPException(status_code=404, detail="Content not found")
        return _redirect("/")

    @fastapi_app.post("/admin/comments/{comment_id}/delete")
    async def delete_comment(request: Request, comment_id: str) -> RedirectResponse:
        require_admin(request, _settings())
        service = get_catalog_service(fastapi_app)
        content_id = await service.delete_comment(comment_id)
        if content_id is None:
            raise HTTPException(status_code=404, detail="Comment not found")
        return _redirect(f"/content/{content_id}")


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
