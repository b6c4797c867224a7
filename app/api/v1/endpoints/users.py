from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlmodel import Session

from app.core.rate_limit import limiter
from app.core.security import create_access_token, verify_token
from app.db.session import get_session
from app.models.user import User
from app.schemas.token import Token
from app.schemas.user import UserCreateSchema, UserResponseSchema
from app.services.user_service import UserService, UserServiceError

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def get_user_service(db: Session = Depends(get_session)) -> UserService:
    return UserService(db)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    users: UserService = Depends(get_user_service),
) -> User:
    """Resolve the bearer token to an active agent."""
    claims = verify_token(token)
    user = await users.find_by_username(claims["sub"])
    if user is None or not user.is_active:
        raise _unauthorized("User not found")
    # Picked up by the error middleware for error reports
    request.state.user_id = user.id
    return user


@router.post("/register", response_model=UserResponseSchema)
@limiter.limit("5/minute")
async def register_user(
    request: Request,
    user_data: UserCreateSchema,
    users: UserService = Depends(get_user_service),
) -> Any:
    """Create an agent account."""
    try:
        user = await users.register(user_data)
    except UserServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return UserResponseSchema.model_validate(user)


@router.post("/token", response_model=Token)
@limiter.limit("10/minute")  # Slow down password guessing
async def issue_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    users: UserService = Depends(get_user_service),
) -> Any:
    """Exchange username and password for a bearer token."""
    user = await users.authenticate(form_data.username, form_data.password)
    if user is None:
        raise _unauthorized("Incorrect username or password")
    return Token(access_token=create_access_token({"sub": user.username}), token_type="bearer")


@router.get("/me", response_model=UserResponseSchema)
async def read_current_agent(current_user: User = Depends(get_current_user)) -> Any:
    return UserResponseSchema.model_validate(current_user)
