"""Address to coordinates (Google Geocoding, cached) and postal code lookup (BrasilAPI)."""

import re
from typing import Any, Dict, Mapping, Optional

import httpx
import structlog

from app.config import Settings
from app.core.dates import utcnow
from app.core.exceptions import ServiceError, ValidationError
from app.core.localization import localize
from app.domain.models.known_location import KnownLocation
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = ("street", "number", "neighborhood", "city", "state", "zipcode")
CEP_PATTERN = re.compile(r"^[0-9]{8}$")


def _coordinates_error(cause: Any = None) -> ServiceError:
    return ServiceError(
        message=localize("error.utils.coordinates.service"),
        action=localize("error.utils.coordinates.action"),
        cause=cause or localize("error.utils.coordinates.cause"),
    )


class Geocoder:
    """Resolves addresses to coordinates, caching results by (zipcode, number)."""

    def __init__(
        self,
        settings: Settings,
        locations: SQLAlchemyRepository[KnownLocation],
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = settings.GOOGLE_MAPS_API_KEY
        self.url = settings.GOOGLE_GEOCODE_URL
        self.locations = locations
        self.transport = transport

    @staticmethod
    def format_address(address: Mapping[str, Any]) -> str:
        return (
            f"{address['street']}, {address['number']} - {address['neighborhood']}, "
            f"{address['city']} - {address['state']}, {address['zipcode']}"
        )

    def geocode(self, address: Mapping[str, Any]) -> Dict[str, Any]:
        for field in ADDRESS_FIELDS:
            if address.get(field) in (None, ""):
                raise ValidationError(message=localize("error.generic.required", field=field))

        zipcode = re.sub(r"\D", "", str(address["zipcode"]))
        number = int(address["number"])

        known = self.locations.read({"zipcode": zipcode, "number": number})
        if known is not None:
            return {"latitude": known.latitude, "longitude": known.longitude, "cached": True}

        try:
            with httpx.Client(timeout=10, transport=self.transport) as client:
                response = client.get(self.url, params={"address": self.format_address(address), "key": self.api_key})
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning("Geocoding request failed", zipcode=zipcode, error=str(e))
            raise _coordinates_error(e) from e

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            logger.info("Geocoding returned no result", zipcode=zipcode, status=data.get("status"))
            raise _coordinates_error()

        location = results[0]["geometry"]["location"]
        self.locations.create(
            {
                "zipcode": zipcode,
                "number": number,
                "street": address["street"],
                "neighborhood": address["neighborhood"],
                "city": address["city"],
                "state": address["state"],
                "latitude": location["lat"],
                "longitude": location["lng"],
            }
        )
        return {"latitude": location["lat"], "longitude": location["lng"], "cached": False}


def lookup_cep(cep: str, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> Dict[str, Any]:
    """Fetch the address registered for a Brazilian postal code."""
    cep = re.sub(r"\D", "", cep or "")
    if not CEP_PATTERN.match(cep):
        raise ValidationError(message=localize("error.generic.invalidFormat", field="cep"))

    try:
        with httpx.Client(timeout=10, transport=transport) as client:
            response = client.get(f"{settings.CEP_API_URL.rstrip('/')}/{cep}")
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        logger.info("CEP lookup failed", cep=cep, status_code=e.response.status_code)
        raise ServiceError(
            message=localize("error.utils.cep.service"),
            action=localize("error.utils.cep.action"),
            cause=localize("error.utils.cep.cause"),
        ) from e
    except httpx.HTTPError as e:
        logger.warning("CEP service unreachable", cep=cep, error=str(e))
        raise ServiceError(
            message=localize("error.utils.cep.service"),
            action=localize("error.utils.cep.action"),
            cause=e,
        ) from e

    data.pop("location", None)
    data["updated_at"] = utcnow().isoformat()
    return data
