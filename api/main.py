from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardCustomizationModel, DashboardLayoutModel, ReportCatalogResponse, ReportModel
from core.config import load_settings
from core.layout_store import LayoutStore, layout_frame, user_id_for_token
from core.widgets import REPORT_CATALOG


settings = load_settings()
app = FastAPI(title="Dashboard Layout API", version="0.1.0")
logger = logging.getLogger(__name__)
store = LayoutStore()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def current_user(authorization: Optional[str] = Header(default=None)) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="User not authenticated")
    return user_id_for_token(token.strip())


def _json(data: object, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(data))


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/health")
def health():
    return _json({"status": "healthy", "storedLayouts": len(store)})


@app.get("/api/meta/reports", response_model=ReportCatalogResponse)
def meta_reports():
    return ReportCatalogResponse(reports=[ReportModel(**r.to_dict()) for r in REPORT_CATALOG])


@app.get("/api/user/dashboard", response_model=DashboardCustomizationModel)
def get_dashboard(user_id: str = Depends(current_user)):
    try:
        item = store.get(user_id)
    except Exception as exc:
        logger.exception("get_dashboard failed")
        return _error(exc)
    if item is None:
        return _json({"error": "No dashboard configuration saved"}, status_code=404)
    return _json(item.to_dict())


@app.put("/api/user/dashboard", response_model=DashboardCustomizationModel)
def put_dashboard(layout: DashboardLayoutModel, user_id: str = Depends(current_user)):
    try:
        reports = [r.model_dump() for r in layout.selectedDynamicReports]
        item = store.put(user_id, layout.visualOrder, reports)
        logger.info("Saved dashboard layout for %s (%d visuals)", user_id, len(item.visual_order))
        return _json(item.to_dict())
    except Exception as exc:
        logger.exception("put_dashboard failed")
        return _error(exc)


@app.get("/api/user/dashboard/export")
def export_dashboard(user_id: str = Depends(current_user)):
    item = store.get(user_id)
    if item is None:
        return _json({"error": "No dashboard configuration saved"}, status_code=404)
    csv_bytes = layout_frame(item).to_csv(index=False).encode("utf-8")
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=dashboard_layout.csv"},
    )


def main():
    """Run the layout API with uvicorn."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("api.main:app", host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
