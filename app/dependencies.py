# app/dependencies.py
"""FastAPI dependencies resolving the services wired by create_app."""
from __future__ import annotations

from fastapi import Request

from app.config import AppConfig
from auth.roles import RoleAdministration
from auth.service import AuthenticationService
from persistence.users import CredentialStore


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_auth_service(request: Request) -> AuthenticationService:
    return request.app.state.auth_service


def get_role_admin(request: Request) -> RoleAdministration:
    return request.app.state.role_admin


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials
