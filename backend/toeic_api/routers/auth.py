import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..settings import settings
from ..db import get_db
from ..models import AuthUser, AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	username: str


def _bcrypt_safe(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
	user_row = db.get(AuthUser, username)
	if user_row and verify_password(password, user_row.password_hash):
		return User(username=username)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> tuple[str, str]:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise credentials_exception
	username: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if username is None or jti is None:
		raise credentials_exception
	return username, jti


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": user.username, "jti": session_id})
	db.add(AuthSession(session_id=session_id, username=user.username))
	db.commit()
	logger.info("login user=%s", user.username)
	return Token(access_token=access_token)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	username, jti = _decode_token(token)
	# The session row must still exist so logout and purges revoke tokens
	try:
		row = db.get(AuthSession, jti)
		if not row or row.username != username:
			raise credentials_exception
		row.last_activity_at = datetime.utcnow()
		db.commit()
	except HTTPException:
		raise
	except Exception:
		# On DB errors, fail closed
		logger.exception("session lookup failed")
		db.rollback()
		raise credentials_exception
	return User(username=username)


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


@router.post("/logout")
async def logout(token: str = Depends(oauth2_scheme), user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	_, jti = _decode_token(token)
	row = db.get(AuthSession, jti)
	if row is not None:
		db.delete(row)
		db.commit()
	return {"ok": True}


class RegisterRequest(BaseModel):
	username: str = Field(min_length=3, max_length=128)
	password: str = Field(min_length=6)
	email: str = Field(min_length=3, max_length=256)


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	username = req.username.strip()
	email = req.email.strip()
	if len(username) < 3:
		raise HTTPException(status_code=400, detail="username must be 3-128 characters")
	if "@" not in email:
		raise HTTPException(status_code=400, detail="a valid email is required")
	if db.get(AuthUser, username) is not None:
		raise HTTPException(status_code=409, detail="username already exists")
	row = AuthUser(
		username=username,
		password_hash=hash_password(req.password),
		email=email,
		requests_limit=settings.default_requests_limit,
	)
	db.add(row)
	db.commit()
	logger.info("registered user=%s", username)
	return {"ok": True}
