from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crowdstack.core.config import settings
from crowdstack.core.logging_config import setup_logging
from crowdstack.routers import admin, auth, checkin, closeout, events, me, organizers, promoters, registrations, venues

setup_logging()

app = FastAPI(title="CrowdStack API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth.router)
app.include_router(me.router)
app.include_router(organizers.router)
app.include_router(venues.router)
app.include_router(events.router)
app.include_router(registrations.router)
app.include_router(checkin.router)
app.include_router(promoters.router)
app.include_router(closeout.router)
app.include_router(admin.router)


@app.get("/health")
def health():
    return {"status": "ok"}
