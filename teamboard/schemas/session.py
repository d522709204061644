# teamboard/schemas/session.py
from datetime import datetime

from pydantic import BaseModel


class SessionInfoOut(BaseModel):
    sessionId: int
    ipAddress: str | None = None
    userAgent: str | None = None
    lastActivity: datetime | None = None
    activityCount: int = 0
    createdAt: datetime | None = None
    expiresAt: datetime
    isCurrent: bool = False


class ActiveSessionsOut(BaseModel):
    success: bool = True
    totalCount: int
    sessionCount: int
    uniqueIPs: int
    totalActivity: int
    lastActivity: datetime | None = None
    sessions: list[SessionInfoOut]


class CurrentSessionOut(BaseModel):
    success: bool = True
    session: SessionInfoOut


class SecurityCheckOut(BaseModel):
    success: bool = True
    isSuspicious: bool
    uniqueIPs: int
    activeTokenCount: int
    recentUniqueIPs: int


class RevokeOthersOut(BaseModel):
    success: bool = True
    message: str
    count: int
