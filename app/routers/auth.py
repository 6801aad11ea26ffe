"""Auth endpoints: signup, email verification, resend."""

from fastapi import APIRouter, Depends, HTTPException, Query

from app.errors import DeliveryError
from app.schemas.signup import (
    ResendRequest,
    ResendResponse,
    SignupRequest,
    SignupResponse,
    VerifyEmailResponse,
)
from app.services.verification import VerificationService, get_verification_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=200,
)
async def signup(
    data: SignupRequest,
    service: VerificationService = Depends(get_verification_service),
) -> SignupResponse:
    """Stage the signup and send a verification email."""
    staged = await service.create_temp_user(data.to_candidate())
    if staged is None:
        raise HTTPException(
            status_code=409,
            detail="This email is already registered or awaiting verification.",
        )
    try:
        await service.send_verification_email(data.email, staged.token)
    except DeliveryError as exc:
        raise HTTPException(
            status_code=502,
            detail="Signup saved but the verification email could not be sent. "
                   "Request a new one via POST /auth/resend-verification.",
        ) from exc
    return SignupResponse()


@router.get(
    "/verify-email",
    response_model=VerifyEmailResponse,
)
async def verify_email(
    token: str = Query(..., max_length=256),
    service: VerificationService = Depends(get_verification_service),
) -> VerifyEmailResponse:
    """Confirm a signup via the emailed token link."""
    user = await service.confirm_temp_user(token)
    if user is None:
        raise HTTPException(status_code=404, detail="Invalid or expired verification token")
    return VerifyEmailResponse(user_id=user.user_id, email=user.identity)


@router.post(
    "/resend-verification",
    response_model=ResendResponse,
)
async def resend_verification(
    data: ResendRequest,
    service: VerificationService = Depends(get_verification_service),
) -> ResendResponse:
    """Issue a new verification link. The previous link stops working."""
    found = await service.resend_verification_email(data.email)
    if not found:
        raise HTTPException(status_code=404, detail="No pending signup for this email")
    return ResendResponse()
