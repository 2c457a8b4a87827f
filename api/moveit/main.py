import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import LOG_LEVEL
from .db import init_db
from .errors import FormStoreError
from .routers import checklists, disclosures, properties, shares

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Move-it Disclosures API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
def on_startup():
    init_db()

@app.exception_handler(FormStoreError)
async def form_store_error_handler(request: Request, exc: FormStoreError):
    if exc.status_code >= 409:
        logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

app.include_router(properties.router, prefix="/api/properties", tags=["properties"])
app.include_router(disclosures.router, prefix="/api/disclosures", tags=["disclosures"])
app.include_router(checklists.router, prefix="/api/fsbo-checklists", tags=["fsbo-checklists"])
app.include_router(shares.router, prefix="/api", tags=["shares"])  # share lives under /disclosures

@app.get("/")
def root():
    return {"ok": True, "service": "moveit-disclosures-api"}
