import json
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.routers import auth, webhooks, public, member
from app.routers import admin_buyers, admin_courses, admin_homepage, admin_announcements
from app.config import settings
from app.exceptions import PortalError, PartialFailure
from app.auth.member import SESSION_HEADER


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


if settings.log_format == "json":
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.root.handlers = [handler]

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger("course_portal")


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


app = FastAPI(
    title="Course Portal API",
    description="Content-gated course storefront: public catalog, member portal and admin back-office",
    version="1.0.0",
    debug=settings.debug,
)

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[SESSION_HEADER, "X-Request-ID"],
)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, PartialFailure):
        body["failed_ids"] = exc.failed_ids
        body["refetch"] = True
        logger.warning("Partial failure on %s: %s", request.url.path, exc.failed_ids)
    elif exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(auth.router)
app.include_router(webhooks.router)
app.include_router(public.router)
app.include_router(member.router)
app.include_router(admin_buyers.router)
app.include_router(admin_courses.router)
app.include_router(admin_homepage.router)
app.include_router(admin_announcements.router)


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=settings.debug)
