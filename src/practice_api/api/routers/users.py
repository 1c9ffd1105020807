from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from practice_api.api.deps import (
    TOKEN_COOKIE,
    get_auth_service,
    get_current_user,
    get_settings,
    get_user_service,
    restrict_to,
)
from practice_api.api.schemas import (
    AuthResponse,
    DocumentResponse,
    ForgotPasswordRequest,
    ListResponse,
    LoginRequest,
    PasswordResetRequest,
    PasswordUpdateRequest,
)
from practice_api.domain.query import parse_query_params
from practice_api.infra.repositories.document_repository import Document
from practice_api.services.auth_service import AuthService
from practice_api.services.user_service import UserService
from practice_api.settings import Settings

router = APIRouter(prefix="/users", tags=["users"])

SECONDS_PER_DAY = 24 * 60 * 60


def _send_token(response: Response, user: Document, token: str, settings: Settings) -> AuthResponse:
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.jwt_cookie_expires_in * SECONDS_PER_DAY,
        httponly=True,
        secure=settings.is_production,
    )
    return AuthResponse(token=token, data={"user": user})


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    response: Response,
    body: dict[str, Any] = Body(...),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    user, token = auth.signup(body)
    return _send_token(response, user, token, settings)


@router.post("/login", response_model=AuthResponse)
def login(
    response: Response,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    user, token = auth.login(body.email, body.password)
    return _send_token(response, user, token, settings)


@router.post("/forgot-password")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> dict[str, str]:
    auth.forgot_password(body.email, lambda token: str(request.url_for("reset_password", token=token)))
    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/reset-password/{token}", response_model=AuthResponse)
def reset_password(
    token: str,
    response: Response,
    body: PasswordResetRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    user, jwt_token = auth.reset_password(token, password=body.password, password_confirm=body.password_confirm)
    return _send_token(response, user, jwt_token, settings)


@router.get("", response_model=ListResponse)
def list_users(
    request: Request,
    _: Document = Depends(restrict_to("admin")),
    service: UserService = Depends(get_user_service),
) -> ListResponse:
    users = service.list_documents(parse_query_params(request.query_params.multi_items()))
    return ListResponse(requested_at=request.state.requested_at, results=len(users), data={"users": users})


@router.get("/me", response_model=DocumentResponse)
def get_me(
    user: Document = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> DocumentResponse:
    return DocumentResponse(data={"user": service.get_document(user["id"])})


@router.patch("/update-me", response_model=DocumentResponse)
def update_me(
    body: dict[str, Any] = Body(...),
    user: Document = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> DocumentResponse:
    return DocumentResponse(data={"user": service.update_me(user["id"], body)})


@router.delete("/delete-me", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(
    user: Document = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> Response:
    service.delete_me(user["id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/update-password", response_model=AuthResponse)
def update_password(
    response: Response,
    body: PasswordUpdateRequest,
    user: Document = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    updated, token = auth.update_password(
        user["id"],
        current_password=body.password_current,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return _send_token(response, updated, token, settings)


@router.get("/{user_id}", response_model=DocumentResponse)
def get_user(
    user_id: str,
    _: Document = Depends(restrict_to("admin")),
    service: UserService = Depends(get_user_service),
) -> DocumentResponse:
    return DocumentResponse(data={"user": service.get_document(user_id)})
