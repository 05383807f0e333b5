# security.py
"""
Password hashing, JWT issuing and the FastAPI auth dependencies.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext

import config
from models import UserRole
from services.access_service import Requester

# Bcrypt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
     return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
     return pwd_context.verify(password, hashed)


def create_access_token(user_id: int, role: UserRole) -> str:
     expires = datetime.now(timezone.utc) + timedelta(minutes=config.JWT_EXPIRE_MINUTES)
     return jwt.encode(
          {"id": user_id, "role": UserRole(role).value, "exp": expires},
          config.JWT_SECRET,
          algorithm=config.JWT_ALGORITHM,
     )


def _bearer_token(request: Request) -> Optional[str]:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          return None
     return auth.split(" ", 1)[1]


def _decode(token: str) -> Optional[Requester]:
     try:
          payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
          return Requester(id=int(payload["id"]), role=UserRole(payload["role"]))
     except (JWTError, KeyError, TypeError, ValueError):
          return None


# Token Auth Dependency
def verify_token(request: Request) -> Requester:
     token = _bearer_token(request)
     if token is None:
          raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
     requester = _decode(token)
     if requester is None:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")
     return requester


def optional_requester(request: Request) -> Optional[Requester]:
     """
     Like verify_token, but a missing, expired or malformed token yields None
     so verification links answer auth_required instead of an error.
     """
     token = _bearer_token(request)
     if token is None:
          return None
     return _decode(token)


def require_doctor(requester: Requester = Depends(verify_token)) -> Requester:
     if not requester.is_doctor:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Doctors only")
     return requester
