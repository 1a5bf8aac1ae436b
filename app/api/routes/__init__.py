# API routes module
from app.api.routes.health import router as health_router
from app.api.routes.import_sessions import router as import_sessions_router
from app.api.routes.plants import router as plants_router
from app.api.routes.research import router as research_router

__all__ = ["health_router", "import_sessions_router", "plants_router", "research_router"]
