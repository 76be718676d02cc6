"""Bearer JWT 에서 버전 작성자(actor) 참조를 꺼내는 인증 의존성입니다."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from versionable.config import settings
from versionable.refs import ModelRef

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"
# typ 클레임이 없는 토큰은 일반 사용자 테이블의 actor 로 간주한다.
DEFAULT_ACTOR_TYPE = "users"


def create_access_token(actor: ModelRef) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": actor.id, "typ": actor.type, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[ModelRef]:
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    actor_id = payload.get("sub")
    if actor_id is None:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return ModelRef(type=payload.get("typ") or DEFAULT_ACTOR_TYPE, id=str(actor_id))


def require_actor(actor: Optional[ModelRef] = Depends(get_current_actor)) -> ModelRef:
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return actor
