"""FastAPI dependency returning the service graph stored on the app."""

from fastapi import Request

from tailorhub.bootstrap import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
