"""
FastAPI Production Application

Main entry point for the Laundry Dashboard API.
"""

from src.config import get_settings
from src.serving.api.main import create_api_app

settings = get_settings()

app = create_api_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
