"""Shared router every tool module registers its routes on."""

from __future__ import annotations

from fastapi import APIRouter

tool_router = APIRouter()
