from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.auth import UserLogin, TokenResponse, RefreshTokenRequest, UserResponse
from app.auth.security import verify_password, verify_token, create_token_pair
from app.auth.rate_limiter import admin_login_limiter
from app.auth.dependencies import get_current_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Back-office login; returns an access/refresh token pair"""
    if admin_login_limiter.is_blocked(credentials.email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many failed attempts. Please try again in {admin_login_limiter.window_minutes} minutes."
        )

    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if user is None or not verify_password(credentials.password, user.password_hash):
        attempts = admin_login_limiter.record_failed_attempt(credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"X-Remaining-Attempts": str(admin_login_limiter.remaining(attempts))}
        )

    admin_login_limiter.reset(credentials.email)
    return TokenResponse(**create_token_pair(user.id))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(request: RefreshTokenRequest, db: Session = Depends(get_db)):
    payload = verify_token(request.refresh_token, expected_type="refresh")

    if payload is None or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token"
        )

    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return TokenResponse(**create_token_pair(user.id))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
