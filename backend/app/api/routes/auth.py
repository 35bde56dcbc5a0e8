"""
Auth API Routes

Registration, login and the emailed one-time-code flows.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status

from app.api.dependencies import AuthServiceDep, CurrentUserId
from app.api.responses import success_response
from app.domain.users import (
    DeviceInfo,
    EmailOnlyRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    VerifyDeviceRequest,
    VerifyEmailRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def _with_client_address(device_info: Optional[DeviceInfo], request: Request) -> Optional[DeviceInfo]:
    """Fill in the caller's IP when the client did not send one."""
    if device_info and not device_info.ip_address and request.client:
        return device_info.model_copy(update={"ip_address": request.client.host})
    return device_info


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request, auth: AuthServiceDep):
    result = await auth.register(
        body.email,
        body.password,
        body.name,
        device_info=_with_client_address(body.device_info, request),
    )
    return success_response(result)


@router.post("/login")
async def login(body: LoginRequest, request: Request, auth: AuthServiceDep):
    result = await auth.login(
        body.email,
        body.password,
        device_info=_with_client_address(body.device_info, request),
    )
    return success_response(result)


@router.post("/verify-email")
async def verify_email(body: VerifyEmailRequest, auth: AuthServiceDep):
    result = await auth.verify_email(body.user_id, body.otp)
    return success_response(result, message=result.message)


@router.post("/verify-device")
async def verify_device(body: VerifyDeviceRequest, auth: AuthServiceDep):
    result = await auth.verify_device(body.user_id, body.device_id, body.otp)
    return success_response(result, message=result.message)


@router.post("/resend-verification")
async def resend_verification(body: EmailOnlyRequest, auth: AuthServiceDep):
    message = await auth.resend_verification(body.email)
    return success_response(message=message)


@router.post("/forgot-password")
async def forgot_password(body: EmailOnlyRequest, auth: AuthServiceDep):
    message = await auth.request_password_reset(body.email)
    return success_response(message=message)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, auth: AuthServiceDep):
    await auth.reset_password(body.user_id, body.otp, body.new_password)
    return success_response(message="Password reset successfully!")


@router.get("/me")
async def get_me(user_id: CurrentUserId, auth: AuthServiceDep):
    return success_response(await auth.get_profile(user_id))


@router.patch("/profile")
async def update_profile(body: UpdateProfileRequest, user_id: CurrentUserId, auth: AuthServiceDep):
    return success_response(await auth.update_profile(user_id, name=body.name))


@router.post("/logout")
async def logout(user_id: CurrentUserId):
    # Tokens are stateless; the client discards its copy
    logger.info(f"User {user_id} logged out")
    return success_response(message="Logged out successfully")
