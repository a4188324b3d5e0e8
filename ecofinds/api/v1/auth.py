from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ecofinds.api.deps import get_current_user
from ecofinds.core.config import settings
from ecofinds.core.exceptions import ConflictError, InvalidCredentials
from ecofinds.core.rate_limiter import limiter
from ecofinds.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from ecofinds.db.session import get_db
from ecofinds.models.user import User
from ecofinds.schemas.user import UserCreate, UserLogin, UserResponse
from ecofinds.utils.response import success

router = APIRouter()


def _should_use_secure_cookies(request: Request) -> bool:
    if settings.ENVIRONMENT != "production":
        return False
    return request.url.scheme == "https"


def _set_auth_cookies(
    response: JSONResponse,
    access_token: str,
    refresh_token: str,
    request: Request,
) -> None:
    secure = _should_use_secure_cookies(request)
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400,
        path="/",
    )


def _issue_tokens(user: User) -> tuple[str, str]:
    access_token = create_access_token(data={"sub": str(user.id)})
    refresh_token = create_refresh_token(data={"sub": str(user.id)})
    return access_token, refresh_token


@router.post(
    "/register",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register user account",
    responses={
        201: {"description": "Registration successful"},
        400: {"description": "Email already registered"},
        422: {"description": "Validation error"},
    },
)
@limiter.limit("5/minute")
def register(request: Request, user_in: UserCreate, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == user_in.email.lower()).first()
    if existing_user:
        raise ConflictError("Email already registered")

    user = User(
        email=user_in.email.lower(),
        password_hash=hash_password(user_in.password),
        display_name=user_in.display_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    access_token, refresh_token = _issue_tokens(user)
    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success(
            data={
                "user": UserResponse.model_validate(user).model_dump(),
                "access_token": access_token,
            },
            message="User registered successfully",
        ),
    )
    _set_auth_cookies(response, access_token, refresh_token, request)
    return response


@router.post(
    "/login",
    response_model=dict,
    summary="Login user",
    description="""
Authenticates a user and sets `access_token` and `refresh_token` as httpOnly cookies.
The access token is also returned in the body for bearer-style clients.
""",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid credentials"},
        403: {"description": "Account inactive"},
    },
)
@limiter.limit("10/minute")
def login(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise InvalidCredentials()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    access_token, refresh_token = _issue_tokens(user)
    response = JSONResponse(
        content=success(
            data={
                "user": UserResponse.model_validate(user).model_dump(),
                "access_token": access_token,
                "refresh_token": refresh_token,
            },
            message="Login successful",
        )
    )
    _set_auth_cookies(response, access_token, refresh_token, request)
    return response


@router.get("/me", response_model=dict)
def get_me(current_user: User = Depends(get_current_user)):
    return success(
        data=UserResponse.model_validate(current_user).model_dump(),
        message="Profile retrieved",
    )


@router.post("/refresh")
@limiter.limit("20/minute")
def refresh_token(request: Request, db: Session = Depends(get_db)):
    refresh_token_value = request.cookies.get("refresh_token")
    if not refresh_token_value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found",
        )

    payload = decode_token(refresh_token_value)
    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    user_id = payload.get("sub")
    user = db.query(User).filter(User.id == int(user_id)).first() if user_id else None
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    new_access_token = create_access_token(data={"sub": str(user.id)})
    response = JSONResponse(
        content=success(data={"access_token": new_access_token}, message="Token refreshed")
    )
    response.set_cookie(
        key="access_token",
        value=new_access_token,
        httponly=True,
        secure=_should_use_secure_cookies(request),
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return response


@router.post("/logout")
def logout(request: Request):
    response = JSONResponse(content=success(message="Logout successful"))
    secure = _should_use_secure_cookies(request)
    response.delete_cookie(key="access_token", path="/", samesite="lax", secure=secure)
    response.delete_cookie(key="refresh_token", path="/", samesite="lax", secure=secure)
    return response
