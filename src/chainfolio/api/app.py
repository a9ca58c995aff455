"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from chainfolio import __version__
from chainfolio.aggregator import PortfolioAggregator
from chainfolio.config import get_settings
from chainfolio.http import create_http_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    settings = get_settings()
    http = create_http_client(settings)
    app.state.http = http
    app.state.aggregator = PortfolioAggregator(http, settings)
    yield
    # Shutdown
    await http.aclose()


def get_aggregator(request: Request) -> PortfolioAggregator:
    """Dependency returning the aggregator built at startup."""
    return request.app.state.aggregator


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Chainfolio API",
        description="Multi-chain balance and transaction aggregation",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from chainfolio.api.routes import health, portfolio

    app.include_router(health.router, tags=["Health"])
    app.include_router(portfolio.router, prefix="/api/v1", tags=["Portfolio"])

    return app
