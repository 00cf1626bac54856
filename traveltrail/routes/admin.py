from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from traveltrail.auth import AdminPrincipal
from traveltrail.dependencies import AppContext, get_context, require_admin
from traveltrail.schemas import AdminUser, CheckAuthResponse, LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, context: AppContext = Depends(get_context)):
    username = context.credentials.check(payload.username, payload.password)
    token = context.tokens.issue(username)
    logger.info("Admin %s logged in", username)
    return LoginResponse(token=token, user=AdminUser(username=username))


@router.get("/check-auth", response_model=CheckAuthResponse)
def check_auth(admin: AdminPrincipal = Depends(require_admin)):
    return CheckAuthResponse(authenticated=True)
