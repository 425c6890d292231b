"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pensive.database import SessionLocal
from pensive.exceptions import AuthenticationError
from pensive.services.jobs.store import JobStore

app = FastAPI(
    title="Pensive API",
    description="Background processing API for Pensive - content analysis, concept graph and digests",
    version="0.1.0",
)

logger = logging.getLogger(__name__)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],  # Frontend URL
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"success": False, "error": "Unauthorized"})


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Pensive API", "version": "0.1.0"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.on_event("startup")
def recover_stale_jobs() -> None:
    """Return jobs left running by a crashed process to the queue."""
    db = SessionLocal()
    try:
        recovered = JobStore(db).recover_stale()
    finally:
        db.close()
    if recovered:
        logger.warning("Recovered %s stale jobs on startup.", recovered)


# Import and include routers
from pensive.routers import concepts, content, cron, digests, jobs, sources

app.include_router(cron.router, prefix="/api/cron", tags=["cron"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(content.router, prefix="/api/content", tags=["content"])
app.include_router(sources.router, prefix="/api/sources", tags=["sources"])
app.include_router(concepts.router, prefix="/api/concepts", tags=["concepts"])
app.include_router(digests.router, prefix="/api/digests", tags=["digests"])
