# server/main.py
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from analytics.engine import AnalyticsEngine, InsightsReport, resolve_tz
from analytics.ranking import MINIMUM_SESSIONS_FOR_ML, ProductRecommendation, remaining_sessions
from db.repository import Repository, create_repository
from journal.errors import ConstraintViolationError, NotFoundError, StorageFailureError
from journal.export import ExportData, export_data, import_document
from journal.scan import ScanResult, extract_label_data, product_from_scan
from journal.schema import CheckIn, ConsumptionRoute, Product, ProductType, Session
from journal.terpenes import TERPENES, find_terpene

app = FastAPI(title="VapeLog API", version="0.1.0")

# --- CORS (configurable) ---
def _parse_cors_origins(env_val: str | None):
    """
    Parse comma-separated origins. If env is None or '*', return ['*'] (dev).
    Otherwise, return a cleaned list like ['https://app.example.com', 'https://example.com'].
    """
    if not env_val or env_val.strip() == "*":
        return ["*"]
    parts = [p.strip() for p in env_val.split(",")]
    return [p for p in parts if p] or ["*"]

_CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=False,   # using Bearer token; no cookies needed
    allow_methods=["*"],
    allow_headers=["*"],       # includes 'Authorization'
)

logger = logging.getLogger(__name__)
if _CORS_ORIGINS == ["*"]:
    logger.warning("CORS is permissive ('*'). This is fine for dev but restrict in production via CORS_ORIGINS.")
else:
    logger.info("CORS allowed origins: %s", _CORS_ORIGINS)

# --- Simple Bearer token auth ---
security = HTTPBearer(auto_error=False)
API_TOKEN = os.getenv("API_TOKEN")

def auth_guard(creds: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """
    Enforce optional Bearer token authentication based on the configured API_TOKEN.

    If API_TOKEN is not set, allows access. If API_TOKEN is set, requires an
    incoming Bearer token that matches API_TOKEN and raises HTTP 401 otherwise.
    """
    if not API_TOKEN:
        return True
    if creds is None or creds.scheme.lower() != "bearer" or creds.credentials != API_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return True

# --- Time zone (validated at startup) ---
# raises ConfigurationError for an unknown VAPELOG_TZ so the app refuses to start
TIME_ZONE = resolve_tz(os.getenv("VAPELOG_TZ"))
logger.info("Time-of-day bucketing zone: %s", TIME_ZONE or "host local")

# --- Dependencies ---
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """Repository bound to ``VAPELOG_DB_PATH``; overridden in tests."""
    return create_repository()

def get_analytics(repo: Repository = Depends(get_repository)) -> AnalyticsEngine:
    return AnalyticsEngine(repo, tz=TIME_ZONE)

# --- Error mapping ---
@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

@app.exception_handler(ConstraintViolationError)
async def _constraint_violation(request: Request, exc: ConstraintViolationError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

@app.exception_handler(StorageFailureError)
async def _storage_failure(request: Request, exc: StorageFailureError):
    logger.error("Storage failure while handling %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage unavailable, please retry"},
    )

# --- Helpers ---
def _ensure_aware(dt: datetime) -> datetime:
    """Assign UTC to a naive datetime; aware datetimes pass through."""
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

def _parse_since(since_str: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp string into a timezone-aware datetime, or return None when no input is provided.

    Raises:
        HTTPException: 400 Bad Request if `since_str` cannot be parsed as an ISO 8601 datetime.
    """
    if not since_str:
        return None
    try:
        # Accept ISO 8601; assume UTC if no tzinfo present
        dt = datetime.fromisoformat(since_str.replace("Z", "+00:00"))
        return _ensure_aware(dt)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid 'since' datetime format. Use ISO 8601.")

# --- Request bodies ---
class ProductFromScanRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    scan: ScanResult
    name: str
    type: ProductType
    route: ConsumptionRoute
    brand: Optional[str] = None
    notes: Optional[str] = None

class LabelText(BaseModel):
    text: str

class RecommendationsResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ready: bool
    total_sessions: int
    sessions_until_ready: int
    minimum_sessions: int = MINIMUM_SESSIONS_FOR_ML
    recommendations: List[ProductRecommendation] = []

# --- Routes ---
@app.get("/health")
def health():
    return {"ok": True}

api = APIRouter(dependencies=[Depends(auth_guard)])

# products
@api.post("/products", status_code=status.HTTP_201_CREATED)
def create_product(product: Product, repo: Repository = Depends(get_repository)) -> Product:
    return repo.add_product(product)

@api.post("/products/from-scan", status_code=status.HTTP_201_CREATED)
def create_product_from_scan(
    payload: ProductFromScanRequest, repo: Repository = Depends(get_repository)
) -> Product:
    product = product_from_scan(
        payload.scan,
        name=payload.name,
        type=payload.type,
        route=payload.route,
        brand=payload.brand,
        notes=payload.notes,
    )
    return repo.add_product(product)

@api.get("/products")
def list_products(repo: Repository = Depends(get_repository)) -> List[Product]:
    return repo.list_products()

@api.get("/products/{product_id}")
def get_product(product_id: int, repo: Repository = Depends(get_repository)) -> Product:
    return repo.get_product(product_id)

@api.put("/products/{product_id}")
def update_product(product_id: int, product: Product, repo: Repository = Depends(get_repository)) -> Product:
    return repo.update_product(product.model_copy(update={"id": product_id}))

@api.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, repo: Repository = Depends(get_repository)):
    repo.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@api.get("/products/{product_id}/sessions")
def list_product_sessions(product_id: int, repo: Repository = Depends(get_repository)) -> List[Session]:
    repo.get_product(product_id)
    return repo.list_sessions(product_id=product_id)

# label scanning
@api.post("/scan/extract")
def extract_scan(payload: LabelText) -> ScanResult:
    return extract_label_data(payload.text)

# sessions
@api.post("/sessions", status_code=status.HTTP_201_CREATED)
def create_session(session: Session, repo: Repository = Depends(get_repository)) -> Session:
    return repo.add_session(session)

@api.get("/sessions")
def list_sessions(
    product_id: Optional[int] = Query(default=None),
    product_id_camel: Optional[int] = Query(default=None, alias="productId"),
    since: Optional[str] = Query(default=None, description="ISO8601 datetime, UTC assumed if tz missing"),
    repo: Repository = Depends(get_repository),
) -> List[Session]:
    """Filter by `product_id` (or `productId`, as the clients send it) and `since`."""
    if product_id is None:
        product_id = product_id_camel
    return repo.list_sessions(product_id=product_id, since=_parse_since(since))

@api.get("/sessions/{session_id}")
def get_session(session_id: int, repo: Repository = Depends(get_repository)) -> Session:
    return repo.get_session(session_id)

@api.put("/sessions/{session_id}")
def update_session(session_id: int, session: Session, repo: Repository = Depends(get_repository)) -> Session:
    return repo.update_session(session.model_copy(update={"id": session_id}))

@api.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: int, repo: Repository = Depends(get_repository)):
    repo.delete_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@api.get("/sessions/{session_id}/check-ins")
def list_session_check_ins(session_id: int, repo: Repository = Depends(get_repository)) -> List[CheckIn]:
    repo.get_session(session_id)
    return repo.list_check_ins(session_id=session_id)

# check-ins
@api.post("/check-ins", status_code=status.HTTP_201_CREATED)
def create_check_in(check_in: CheckIn, repo: Repository = Depends(get_repository)) -> CheckIn:
    return repo.add_check_in(check_in)

@api.get("/check-ins/{check_in_id}")
def get_check_in(check_in_id: int, repo: Repository = Depends(get_repository)) -> CheckIn:
    return repo.get_check_in(check_in_id)

@api.put("/check-ins/{check_in_id}")
def update_check_in(check_in_id: int, check_in: CheckIn, repo: Repository = Depends(get_repository)) -> CheckIn:
    return repo.update_check_in(check_in.model_copy(update={"id": check_in_id}))

@api.delete("/check-ins/{check_in_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_check_in(check_in_id: int, repo: Repository = Depends(get_repository)):
    repo.delete_check_in(check_in_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# insights
@api.get("/insights")
def insights(
    limit: int = Query(default=3, ge=0, le=50),
    engine: AnalyticsEngine = Depends(get_analytics),
) -> InsightsReport:
    return engine.insights(limit=limit)

@api.get("/recommendations")
def recommendations(
    limit: int = Query(default=3, ge=0, le=50),
    engine: AnalyticsEngine = Depends(get_analytics),
) -> RecommendationsResponse:
    """Top products, or the remaining session count while below the readiness threshold."""
    total = engine.total_sessions()
    ready = total >= MINIMUM_SESSIONS_FOR_ML
    return RecommendationsResponse(
        ready=ready,
        total_sessions=total,
        sessions_until_ready=remaining_sessions(total),
        recommendations=engine.get_top_products(limit) if ready else [],
    )

# reference content
@api.get("/terpenes")
def list_terpenes() -> List[Dict[str, Any]]:
    return [t._asdict() for t in TERPENES]

@api.get("/terpenes/{name}")
def get_terpene(name: str) -> Dict[str, Any]:
    terpene = find_terpene(name)
    if terpene is None:
        raise HTTPException(status_code=404, detail=f"Unknown terpene {name!r}")
    return terpene._asdict()

# export / import
@api.get("/export")
def export_journal(repo: Repository = Depends(get_repository)):
    return Response(content=export_data(repo), media_type="application/json")

@api.post("/import")
def import_journal(document: ExportData, repo: Repository = Depends(get_repository)):
    return {"imported": import_document(repo, document)}

app.include_router(api)
