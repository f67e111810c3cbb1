"""Best-effort IP geolocation for incident capture."""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"


@dataclass
class GeoInfo:
    city: str = UNKNOWN
    isp: str = UNKNOWN
    lat: Optional[float] = None
    lon: Optional[float] = None

    @classmethod
    def unknown(cls) -> "GeoInfo":
        return cls()

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "GeoInfo":
        """Parse an ipapi.co-style payload (city/region/country_name/org)."""
        place = ", ".join(
            part for part in (data.get("city"), data.get("region"), data.get("country_name"))
            if part
        )
        return cls(
            city=place or UNKNOWN,
            isp=data.get("org") or data.get("isp") or UNKNOWN,
            lat=_as_float(data.get("latitude", data.get("lat"))),
            lon=_as_float(data.get("longitude", data.get("lon"))),
        )


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def is_routable(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return addr.is_global


class GeoLocator:
    """Looks up an IP with a short timeout; never raises."""

    def __init__(self, url_template: str, timeout: float = 3.0, transport: httpx.AsyncBaseTransport | None = None):
        self.url_template = url_template
        self.timeout = timeout
        self._transport = transport

    async def lookup(self, ip: str) -> GeoInfo:
        if not is_routable(ip):
            return GeoInfo.unknown()
        url = self.url_template.format(ip=ip)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geo lookup for %s failed: %s", ip, exc)
            return GeoInfo.unknown()
        if not isinstance(data, dict) or data.get("error"):
            logger.warning("Geo lookup for %s returned no location", ip)
            return GeoInfo.unknown()
        return GeoInfo.from_payload(data)
