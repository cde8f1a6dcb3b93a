"""Rotating session token codec.

Tokens are compact HS256 JWTs binding a session to a moment in time. Minting
and verifying are pure: neither reads nor writes session state, so any
instance holding the shared secret can verify a token minted by another.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from flask import current_app

from attendguard.utils.exceptions import TokenExpiredError, TokenInvalidError
from attendguard.utils.helpers import utcnow

REQUIRED_CLAIMS = ['session_id', 'class_id', 'teacher_id', 'iat', 'exp']

@dataclass(frozen=True)
class TokenPayload:
    """Decoded contents of a session token."""
    session_id: int
    class_id: int
    teacher_id: int
    issued_at: datetime
    expires_at: datetime
    
    @property
    def lifetime_seconds(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())

def _to_epoch(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp())

def _from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)

class TokenCodec:
    """Mint and verify session tokens with a shared signing secret."""
    
    def __init__(self, secret: str, algorithm: str = 'HS256', leeway: int = 0):
        if not secret:
            raise ValueError("A token signing secret is required")
        self.secret = secret
        self.algorithm = algorithm
        self.leeway = leeway
    
    @classmethod
    def from_app(cls) -> 'TokenCodec':
        return cls(
            current_app.config['QR_TOKEN_SECRET'],
            current_app.config.get('QR_TOKEN_ALGORITHM', 'HS256'),
            current_app.config.get('QR_TOKEN_LEEWAY_SECONDS', 0)
        )
    
    def mint(self, session, now: Optional[datetime] = None):
        """Sign a token for ``session``, valid for its refresh interval.
        
        Returns ``(token, payload)``. Timestamps are truncated to whole
        seconds, matching what the JWT carries.
        """
        issued_at = (now or utcnow()).replace(microsecond=0)
        payload = TokenPayload(
            session_id=session.id,
            class_id=session.class_id,
            teacher_id=session.teacher_id,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=session.refresh_seconds)
        )
        
        token = jwt.encode(
            {
                'session_id': payload.session_id,
                'class_id': payload.class_id,
                'teacher_id': payload.teacher_id,
                'iat': _to_epoch(payload.issued_at),
                'exp': _to_epoch(payload.expires_at)
            },
            self.secret,
            algorithm=self.algorithm
        )
        return token, payload
    
    def verify(self, token: str) -> TokenPayload:
        """Check signature and expiry. Raises TokenExpiredError or TokenInvalidError."""
        if not token or not isinstance(token, str):
            raise TokenInvalidError("Invalid QR token")
        
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                leeway=self.leeway,
                options={'require': REQUIRED_CLAIMS}
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("QR code has expired. Please refresh and try again.")
        except jwt.InvalidTokenError:
            raise TokenInvalidError("Invalid QR token")
        
        try:
            return TokenPayload(
                session_id=int(claims['session_id']),
                class_id=int(claims['class_id']),
                teacher_id=int(claims['teacher_id']),
                issued_at=_from_epoch(claims['iat']),
                expires_at=_from_epoch(claims['exp'])
            )
        except (TypeError, ValueError):
            raise TokenInvalidError("Invalid QR token")
