from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from guestbook.template_utils import get_templates

router = APIRouter(tags=["pages"])
templates = get_templates()


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    return templates.TemplateResponse(request, "index.html")
