from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Dashboard refresh interval; polling stops once the analysis is terminal
POLL_INTERVAL_MS = 5000

router = APIRouter(tags=["pages"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    """Submission form."""
    return templates.TemplateResponse(request, "index.html", {})


@router.get("/dashboard/{analysis_id}", response_class=HTMLResponse)
def dashboard(request: Request, analysis_id: int):
    """Dashboard that polls GET /api/analyze until the analysis finishes."""
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"analysis_id": analysis_id, "poll_interval_ms": POLL_INTERVAL_MS},
    )
