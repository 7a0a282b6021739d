from __future__ import annotations

from fastapi import Request

from ..services.geocoder import GeocodeGateway, NominatimGateway


def get_gateway(request: Request) -> GeocodeGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = NominatimGateway()
        request.app.state.gateway = gateway
    return gateway
