# PantryPlan API Main Entry Point
import logging
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .errors import PantryPlanError
from .rate_limit import limiter
from .settings import settings
from .routers.ready import router as ready_router
from .routers.family import router as family_router
from .routers.inventory import router as inventory_router
from .routers.recipes import router as recipes_router
from .routers.menus import router as menus_router
from .routers.shopping import router as shopping_router
from .routers.notifications import router as notifications_router

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("pantryplan")

app = FastAPI(title="PantryPlan API", version="0.1.0")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PantryPlanError)
async def pantryplan_error_handler(request: Request, exc: PantryPlanError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(ready_router, prefix="/api", tags=["status"])
app.include_router(family_router, prefix="/api", tags=["family"])
app.include_router(inventory_router, prefix="/api", tags=["inventory"])
app.include_router(recipes_router, prefix="/api", tags=["recipes"])
app.include_router(menus_router, prefix="/api", tags=["menus"])
app.include_router(shopping_router, prefix="/api", tags=["shopping"])
app.include_router(notifications_router, prefix="/api", tags=["notifications"])
