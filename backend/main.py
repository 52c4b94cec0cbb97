"""
FastAPI application entry point for the Remittance Broker API.

    uvicorn main:app --reload
    python main.py
"""

from dotenv import load_dotenv
load_dotenv()

from remittance_broker.api import create_app
from remittance_broker.core.config import load_settings

settings = load_settings()
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
