"""FastAPI dependency helpers."""
from __future__ import annotations

import requests
from fastapi import Request

from backend.reference.store import ReferenceStore
from backend.settings import Settings


def get_store(request: Request) -> ReferenceStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_session(request: Request) -> requests.Session:
    return request.app.state.http_session


__all__ = ["get_http_session", "get_settings", "get_store"]
