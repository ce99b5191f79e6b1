import logging

from scalpsim import create_app
from scalpsim.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()

if __name__ == "__main__":
    import uvicorn

    print(f"🚀 Starting scalp simulation backend on {settings.host}:{settings.port}")
    print(f"📚 API docs: http://localhost:{settings.port}/docs")

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
