from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from kernelpanel.core.config import get_settings
from kernelpanel.db.session import get_db

router = APIRouter(tags=["health"])
settings = get_settings()


@router.get("/health")
def health(db: Session = Depends(get_db)) -> dict:
    db.execute(text("SELECT 1"))
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env}
