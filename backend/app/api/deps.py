# backend/app/api/deps.py
from fastapi import Request

from app.services.runtime import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
