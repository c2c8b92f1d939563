"""
School Assessment Engine — scoring, ratings and recommendations for school
inspection reports.
FastAPI backend entry point.
"""

import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.ai_insights import ai_mode
from core.recommendations import planner_options
from core.rubrics import MODEL_TOTAL_MAX
from core.settings import get_settings
from routes.analyze import router as analyze_router
from routes.recommendations import router as recommendations_router
from routes.reports import router as reports_router
from routes.scoring import router as scoring_router
from routes.terms import router as terms_router

# Load environment
load_dotenv()

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="School Assessment API",
    description=(
        "Category scores, ratings and improvement recommendations for school "
        "assessment reports, with term submission windows."
    ),
    version="1.0.0",
)

# CORS — allow the dashboard dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route modules
app.include_router(scoring_router, prefix="/api/scoring", tags=["Scoring"])
app.include_router(recommendations_router, prefix="/api/recommendations", tags=["Recommendations"])
app.include_router(terms_router, prefix="/api/terms", tags=["Terms"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])
app.include_router(analyze_router, prefix="/api/analyze", tags=["Analytics"])


@app.get("/api/health")
async def health_check():
    return {
        "status": "ok",
        "school_system": get_settings().SCHOOL_SYSTEM_NAME,
    }


@app.get("/api/config")
async def get_config():
    """Return server configuration to the frontend."""
    current = get_settings()
    options = planner_options(current)
    return {
        "school_system": current.SCHOOL_SYSTEM_NAME,
        "total_max": {model.value: total for model, total in MODEL_TOTAL_MAX.items()},
        "recommendations": {
            "top_k": options["top_k"],
            "min_concern_shortfall": float(options["min_shortfall"]),
            "high_priority_shortfall": float(options["high"]),
            "medium_priority_shortfall": float(options["medium"]),
            "text_mode": ai_mode(),
        },
    }
