from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from api.routes import router
from core.config import settings
from core.logger import get_logger

app = FastAPI(title="WebMind AI Slides")
logger = get_logger()

@app.on_event("startup")
async def startup_event():
    if settings.offline_mode:
        logger.info("Offline mode enabled: outlines are built locally")
    elif not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail")
    logger.info(f"Default theme: {settings.default_theme}, images enabled: {settings.enable_images}")

# CORS for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.allowed_origins == "*" else [settings.allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routes
app.include_router(router)

@app.get("/health")
def health_check():
    logger.info("Health check called")
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
