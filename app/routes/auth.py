from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.auth_utils import auth_service, clear_session_cookie, get_current_user, set_session_cookie
from app.security import get_client_ip
from core.errors import Unauthorized

router = APIRouter(prefix="/api/auth")


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_Body):
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=128)
    confirm_password: str = Field(..., alias="confirmPassword", max_length=128)


class LoginRequest(_Body):
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=128)


class TwoFactorCodeRequest(_Body):
    code: str = Field(..., max_length=10)


class TwoFactorVerifyRequest(_Body):
    code: str = Field(..., max_length=10)
    user_id: int = Field(..., alias="userId")


class PasswordResetRequest(_Body):
    email: str = Field(..., max_length=254)


class PasswordResetConfirmRequest(_Body):
    token: str = Field(..., max_length=128)
    password: str = Field(..., max_length=128)
    confirm_password: str = Field(..., alias="confirmPassword", max_length=128)


def _require_user(request: Request):
    user, _ = get_current_user(request)
    if not user:
        raise Unauthorized()
    return user


@router.post("/register", status_code=201)
def register(payload: RegisterRequest):
    user = auth_service.register(payload.email, payload.password, payload.confirm_password)
    return {"message": "User created successfully", "userId": user["id"]}


@router.post("/login")
def login(request: Request, payload: LoginRequest):
    result = auth_service.login(payload.email, payload.password, get_client_ip(request))
    if result.requires_two_factor:
        # No cookie until the second factor is proven.
        return {"requiresTwoFactor": True, "userId": result.user_id, "message": "2FA required"}

    response = JSONResponse({"message": "Login successful"})
    set_session_cookie(response, result.session_id)
    return response


@router.post("/logout")
def logout(request: Request):
    _, session_id = get_current_user(request)
    auth_service.logout(session_id)
    response = JSONResponse({"message": "Logged out"})
    clear_session_cookie(response)
    return response


@router.get("/me")
def me(request: Request):
    user = _require_user(request)
    return auth_service.profile(user)


@router.post("/2fa/setup")
def two_factor_setup_begin(request: Request):
    user = _require_user(request)
    return auth_service.begin_two_factor_setup(user)


@router.put("/2fa/setup")
def two_factor_setup_confirm(request: Request, payload: TwoFactorCodeRequest):
    user = _require_user(request)
    auth_service.confirm_two_factor_setup(user["id"], payload.code, get_client_ip(request))
    return {"message": "2FA enabled successfully"}


@router.post("/2fa/verify")
def two_factor_verify(request: Request, payload: TwoFactorVerifyRequest):
    session_id = auth_service.verify_two_factor(payload.user_id, payload.code, get_client_ip(request))
    response = JSONResponse({"message": "2FA verification successful"})
    set_session_cookie(response, session_id)
    return response


@router.post("/password-reset")
def password_reset_request(request: Request, payload: PasswordResetRequest, background_tasks: BackgroundTasks):
    message = auth_service.request_password_reset(payload.email, get_client_ip(request))
    # Lookup and delivery run after the response is sent.
    background_tasks.add_task(auth_service.send_password_reset, payload.email)
    return {"message": message}


@router.post("/password-reset/confirm")
def password_reset_confirm(payload: PasswordResetConfirmRequest):
    auth_service.confirm_password_reset(payload.token, payload.password, payload.confirm_password)
    return {"message": "Password reset successful"}


@router.get("/verify-email")
def verify_email(token: Optional[str] = ""):
    auth_service.verify_email(token or "")
    return {"message": "Email verified"}


@router.post("/verify-email/resend")
def verify_email_resend(request: Request, payload: PasswordResetRequest, background_tasks: BackgroundTasks):
    message = auth_service.resend_verification(payload.email, get_client_ip(request))
    background_tasks.add_task(auth_service.send_verification, payload.email)
    return {"message": message}
