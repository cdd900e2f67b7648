# teamspace/main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import os
import logging

from teamspace.api.activity import router as activity_router
from teamspace.api.auth import router as auth_router
from teamspace.api.comment import router as comment_router
from teamspace.api.invitation import router as invitation_router
from teamspace.api.project import router as project_router
from teamspace.api.task import router as task_router
from teamspace.api.team import router as team_router, company_router
from teamspace.api.user import router as user_router

from teamspace.core.settings import settings
from teamspace.core.exceptions import (
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

# Логирование
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn.error")

app = FastAPI(
    title="Teamspace API",
    version="1.0.0",
    description="Projects, tasks with subtasks, comments and activity feed for teams",
)

# Middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Роутеры
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(company_router)
app.include_router(team_router)
app.include_router(invitation_router)
app.include_router(project_router)
app.include_router(task_router)
app.include_router(comment_router)
app.include_router(activity_router)

# Health check & root
@app.get("/", tags=["Health"])
def root():
    return {"status": "Teamspace API is running!"}

@app.get("/health", tags=["Health"])
def health():
    return {"ok": True}

@app.on_event("startup")
async def startup_event():
    logger.info("Starting Teamspace API")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Stopping Teamspace API")

# Доменные исключения → HTTP
@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_exception_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )

@app.exception_handler(PermissionDeniedError)
async def permission_denied_exception_handler(request: Request, exc: PermissionDeniedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "teamspace.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=settings.DEBUG,
    )
