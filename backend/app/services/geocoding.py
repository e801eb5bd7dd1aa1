"""Module: geocoding.

Decides when an organisation needs fresh coordinates and talks to the
geocoding service. The decision only looks at the pending unit of work:

    address changed           -> geocode
    address unchanged, coords -> skip
    address unchanged, none   -> geocode (only if there is an address)
    no address                -> skip
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from sqlalchemy import inspect

from app.core.config import settings
from app.db.models.organisation import Organisation

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, query: str) -> tuple[float, float] | None:
        ...


class HttpGeocoder:
    """Blocking client for the geocoding service (see services/mock_geocoder)."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.transport = transport

    def geocode(self, query: str) -> tuple[float, float] | None:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                r = client.get(f"{self.base_url}/geocode", params={"address": query})
                if r.status_code == 404:
                    return None
                r.raise_for_status()
                payload = r.json()
        except httpx.HTTPError as exc:
            logger.warning("Geocoding request for %r failed: %s", query, exc)
            return None
        except ValueError as exc:
            logger.warning("Geocoder sent a non-JSON body for %r: %s", query, exc)
            return None

        try:
            lat = payload.get("latitude")
            lon = payload.get("longitude")
            if lat is None or lon is None:
                return None
            return float(lat), float(lon)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Unusable geocoder payload for %r: %s", query, exc)
            return None


def get_geocoder() -> Geocoder | None:
    if not settings.geocoding_enabled:
        return None
    return HttpGeocoder()


def has_address(org: Organisation) -> bool:
    return bool((org.address or "").strip())


def address_changed(org: Organisation) -> bool:
    # New objects report their initial address as an added value.
    return inspect(org).attrs.address.history.has_changes()


def not_geocoded(org: Organisation) -> bool:
    return org.not_geocoded


def run_geocode(org: Organisation) -> bool:
    if not has_address(org):
        return False
    return address_changed(org) or not_geocoded(org)


def geocode_query(org: Organisation) -> str:
    return ", ".join(part.strip() for part in (org.address, org.postcode) if part and part.strip())


def apply_geocoding(org: Organisation, geocoder: Geocoder) -> bool:
    """Refresh coordinates when the policy asks for it. Returns True if the geocoder was called."""
    if not has_address(org):
        if address_changed(org):
            org.latitude = None
            org.longitude = None
        return False
    if not run_geocode(org):
        return False

    result = geocoder.geocode(geocode_query(org))
    if result is None:
        logger.info("No coordinates found for %r", org.name)
        org.latitude = None
        org.longitude = None
    else:
        org.latitude, org.longitude = result
    return True
