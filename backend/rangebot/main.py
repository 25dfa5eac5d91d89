import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rangebot.config import settings
from rangebot.exceptions import AppError
from rangebot.routers import system_router, trading_router
from rangebot.trading_context import get_trading_context

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Range Accumulation Trading Bot")

    app.include_router(system_router.router)  # Health (no auth)
    app.include_router(trading_router.router)  # Admin control surface

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg', 'invalid request')}" if field else first.get("msg", "invalid request")
        logger.warning(f"Invalid request on {request.method} {request.url.path}: {message}")
        return JSONResponse(status_code=422, content={"error": message, "type": "RequestValidationError"})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.on_event("startup")
    async def startup_event():
        context = get_trading_context()
        logger.info(
            f"🚀 Starting (paper={context.settings.paper_trading}, "
            f"strategy_enabled={context.toggle.enabled}, symbol={context.settings.strat_currency})"
        )
        await context.monitor.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        await get_trading_context().monitor.stop()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("rangebot.main:app", host="0.0.0.0", port=settings.port)
