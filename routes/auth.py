# routes/auth.py
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

import config
from models.common import utcnow
from models.user import TEACHER, LoginRequest, User
from services.errors import NotFound, PermissionDenied

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_store(request: Request):
    return request.app.state.store


def create_access_token(user: User) -> str:
    expires = utcnow() + timedelta(minutes=config.JWT_EXPIRE_MINUTES)
    return jwt.encode({"id": user.id, "role": user.role, "exp": expires}, config.JWT_SECRET,
                      algorithm=config.JWT_ALGORITHM)


async def user_from_token(store, token: str) -> User:
    """Resolve a bearer token to the stored user; PermissionDenied when it does not."""
    if not token:
        raise PermissionDenied("Authentication required")
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWTError: {str(e)}")
        raise PermissionDenied("Invalid token")
    user_id = payload.get("id")
    if not user_id:
        logger.error("Invalid token: missing user id")
        raise PermissionDenied("Invalid token")
    try:
        return await store.get_user(user_id)
    except NotFound:
        logger.warning(f"Token for unknown user: {user_id}")
        raise PermissionDenied("User not found")


async def get_current_user(token: str = Depends(oauth2_scheme), store=Depends(get_store)) -> User:
    try:
        return await user_from_token(store, token)
    except PermissionDenied as e:
        raise HTTPException(status_code=401, detail=e.message)


async def require_teacher(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != TEACHER:
        raise HTTPException(status_code=403, detail="Only teachers can access this resource")
    return current_user


@router.post("/login/")
async def login(request: LoginRequest, store=Depends(get_store)):
    logger.info(f"Login attempt for username: {request.username}")
    user = await store.authenticate(request.username, request.password)
    return {"access_token": create_access_token(user), "token_type": "bearer",
            "user": user.model_dump(mode="json")}


@router.get("/current-user")
async def get_current_user_endpoint(current_user: User = Depends(get_current_user)):
    return current_user.model_dump(mode="json")
