import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from cartdrop.config import settings
from cartdrop.middleware.exceptions import register_exception_handlers
from cartdrop.routers import auth, health, orders, profile, wizard
from cartdrop.services.lifespan import lifespan

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="CartDrop",
    description="Order submission with greyscale cart photos and webhook relay",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
app.include_router(wizard.router, prefix="/api/wizard", tags=["wizard"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])

# ── Public media (uploaded photos) ───────────────────────────
# The directory is created in the lifespan, hence check_dir=False.
app.mount(
    settings.media_url_path,
    StaticFiles(directory=settings.media_root, check_dir=False),
    name="media",
)
