from fastapi import APIRouter, Depends

from kernelpanel.services.auth import get_current_admin
from kernelpanel.services.catalog import AVAILABLE_COUNTRIES

router = APIRouter(prefix="/countries", tags=["countries"], dependencies=[Depends(get_current_admin)])


@router.get("")
def list_countries() -> dict:
    return {"items": AVAILABLE_COUNTRIES}
