import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.errors import DuplicateKeyError

import database
from errors import AuthorizationError, ValidationError
from policy import authorized
from schemas import LoginRequest, RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Security
SECRET_KEY = os.getenv("JWT_SECRET", "change-this-secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def public_user(user: dict) -> dict:
    return {"id": str(user["_id"]), "name": user.get("name"), "email": user.get("email"), "role": user.get("role")}


# Dependency: get current user
async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None or not ObjectId.is_valid(user_id):
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = database.db["user"].find_one({"_id": ObjectId(user_id)}, {"passwordHash": 0})
    if not user:
        raise credentials_exception
    user["id"] = str(user.pop("_id"))
    return user


# Policy guard
def require(action: str):
    async def _guard(user=Depends(get_current_user)):
        if not authorized(user, action):
            raise AuthorizationError(f"Role '{user.get('role')}' is not allowed to perform this action")
        return user
    return _guard


@router.post("/register", status_code=201)
def register(payload: RegisterRequest):
    if database.db["user"].find_one({"email": payload.email}):
        raise ValidationError("Email already registered", field="email")
    user_doc = {
        "name": payload.name,
        "email": payload.email,
        "passwordHash": hash_password(payload.password),
        "role": payload.role,
        "phone": payload.phone,
        "address": payload.address,
        "favorites": [],
    }
    try:
        user_doc = database.create_document("user", user_doc)
    except DuplicateKeyError:
        raise ValidationError("Email already registered", field="email")
    logger.info("Registered user %s with role %s", user_doc["_id"], payload.role)
    return database.serialize_doc(user_doc)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest):
    user = database.db["user"].find_one({"email": payload.email})
    if not user or not user.get("passwordHash") or not verify_password(payload.password, user["passwordHash"]):
        raise ValidationError("Invalid email or password")
    access_token = create_access_token({"sub": str(user["_id"]), "role": user.get("role")})
    return TokenResponse(access_token=access_token, user=public_user(user))
