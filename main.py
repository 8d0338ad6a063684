"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from articulate.api import app
from articulate.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Debug mode: {settings.debug}")
    print(f"Catalog API: {settings.assist.base_url} (academic year {settings.assist.academic_year_id})")
    print(f"Auto-reload: {'Enabled' if settings.debug else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "articulate.api:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        reload_dirs=["articulate"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
