from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academics.api.v1.academic_years.router import router as academic_years_router
from academics.api.v1.enrollments.router import router as enrollments_router
from academics.api.v1.exam_analysis.router import router as exam_analysis_router
from academics.api.v1.grading.router import router as grading_router
from academics.api.v1.merit_lists.router import router as merit_lists_router
from academics.api.v1.promotions.router import router as promotions_router
from academics.core.config import settings
from academics.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level, settings.json_logs)
    app = FastAPI(title="Academic Analytics & Promotion Engine")

    # CORS: allow the desktop/web UI to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(academic_years_router)
    app.include_router(enrollments_router)
    app.include_router(grading_router)
    app.include_router(exam_analysis_router)
    app.include_router(merit_lists_router)
    app.include_router(promotions_router)

    return app


app = create_app()
