"""Utility API routes: postal code lookup and address geocoding."""

from typing import Optional

from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.infrastructure.geocoding import Geocoder, lookup_cep
from app.interfaces.api.deps import require_active_principal
from app.interfaces.deps import get_geocoder

router = APIRouter(prefix="/api/v1/utils", tags=["Utils"], dependencies=[Depends(require_active_principal)])


@router.get("/cep")
def cep(cep: str, settings: Settings = Depends(get_settings)):
    return lookup_cep(cep, settings)


@router.get("/coordinates")
def coordinates(
    street: Optional[str] = None,
    number: Optional[int] = None,
    neighborhood: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zipcode: Optional[str] = None,
    geocoder: Geocoder = Depends(get_geocoder),
):
    return geocoder.geocode(
        {
            "street": street,
            "number": number,
            "neighborhood": neighborhood,
            "city": city,
            "state": state,
            "zipcode": zipcode,
        }
    )
