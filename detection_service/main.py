"""
PPE Detection Service
Main application entry point
"""
import uvicorn

from ppe_api.core.config import settings

if __name__ == "__main__":
    # Run the application
    uvicorn.run(
        "ppe_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG_MODE
    )
