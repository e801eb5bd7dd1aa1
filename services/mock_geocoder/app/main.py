from fastapi import FastAPI, HTTPException, Query
from datetime import datetime, UTC
import hashlib
import re

app = FastAPI(title="Mock Geocoder Service", version="0.1.0")

# Approximate outward-code centroids around Harrow.
OUTWARD_CODE_COORDS = {
    "HA0": (51.5530, -0.3020),
    "HA1": (51.5836, -0.3464),
    "HA2": (51.5740, -0.3570),
    "HA3": (51.5960, -0.3230),
    "HA5": (51.5930, -0.3810),
    "HA7": (51.6140, -0.3050),
    "HA8": (51.6130, -0.2750),
}

POSTCODE_RE = re.compile(r"\b([A-Z]{1,2}\d[A-Z\d]?)\s*\d[A-Z]{2}\b", re.IGNORECASE)


def _jitter(address: str) -> tuple[float, float]:
    # Deterministic small offset so addresses in one outward code don't stack.
    digest = hashlib.sha256(address.lower().encode("utf-8")).digest()
    return (digest[0] / 255.0 - 0.5) * 0.01, (digest[1] / 255.0 - 0.5) * 0.01


@app.get("/ping")
def ping():
    return {"status": "ok", "service": "mock-geocoder", "time": datetime.now(UTC).isoformat()}


@app.get("/geocode")
def geocode(address: str = Query(..., min_length=1)):
    match = POSTCODE_RE.search(address)
    if not match or match.group(1).upper() not in OUTWARD_CODE_COORDS:
        raise HTTPException(status_code=404, detail="Address not found")
    base_lat, base_lon = OUTWARD_CODE_COORDS[match.group(1).upper()]
    d_lat, d_lon = _jitter(address)
    return {
        "latitude": round(base_lat + d_lat, 6),
        "longitude": round(base_lon + d_lon, 6),
        "query": address,
    }
