"""Phone-number authentication endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from powercrm.core.config import settings
from powercrm.core.deps import get_current_user
from powercrm.core.rate_limit import rate_limit
from powercrm.core.security import create_user_token
from powercrm.db.session import get_db
from powercrm.models.user import User
from powercrm.schemas.auth import AuthResult, CodeSent, PhoneLogin, TokenOut, VerifyCode
from powercrm.schemas.common import ApiResponse
from powercrm.schemas.user import UserOut, UserProfileUpdate
from powercrm.services.auth import login_with_phone, request_login_code, verify_login_code
from powercrm.services.users import update_profile

router = APIRouter()


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.COOKIE_NAME,
        token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthResult | CodeSent],
    dependencies=[Depends(rate_limit("auth"))],
)
def login(payload: PhoneLogin, response: Response, db: Session = Depends(get_db)) -> ApiResponse:
    if settings.OTP_REQUIRED:
        code = request_login_code(db, payload.phone)
        return ApiResponse(
            message="کد تایید ارسال شد",
            data=CodeSent(
                phone=payload.phone,
                expires_in=settings.OTP_EXPIRE_MINUTES * 60,
                code=code if settings.is_development else None,
            ),
        )
    user, token = login_with_phone(db, payload.phone)
    _set_auth_cookie(response, token)
    return ApiResponse(message="ورود با موفقیت انجام شد", data=AuthResult(user=UserOut.model_validate(user), token=token))


@router.post("/verify", response_model=ApiResponse[AuthResult], dependencies=[Depends(rate_limit("auth"))])
def verify(payload: VerifyCode, response: Response, db: Session = Depends(get_db)) -> ApiResponse:
    user, token = verify_login_code(db, payload.phone, payload.code)
    _set_auth_cookie(response, token)
    return ApiResponse(message="ورود با موفقیت انجام شد", data=AuthResult(user=UserOut.model_validate(user), token=token))


@router.get("/profile", response_model=ApiResponse[UserOut])
def profile(current_user: User = Depends(get_current_user)) -> ApiResponse:
    return ApiResponse(message="اطلاعات کاربر دریافت شد", data=UserOut.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserOut])
def edit_profile(
    payload: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    user = update_profile(db, current_user, name=payload.name)
    return ApiResponse(message="پروفایل با موفقیت بروزرسانی شد", data=UserOut.model_validate(user))


@router.get("/me", response_model=ApiResponse[UserOut])
def me(current_user: User = Depends(get_current_user)) -> ApiResponse:
    return ApiResponse(message="اطلاعات کاربر دریافت شد", data=UserOut.model_validate(current_user))


@router.post("/refresh", response_model=ApiResponse[TokenOut])
def refresh(response: Response, current_user: User = Depends(get_current_user)) -> ApiResponse:
    token = create_user_token(current_user)
    _set_auth_cookie(response, token)
    return ApiResponse(message="توکن با موفقیت تمدید شد", data=TokenOut(token=token))


@router.post("/logout", response_model=ApiResponse[None])
def logout(response: Response) -> ApiResponse:
    response.delete_cookie(settings.COOKIE_NAME, path="/")
    return ApiResponse(message="خروج با موفقیت انجام شد")
