import secrets

from fastapi import Header, HTTPException

from app.core.config import settings


async def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_api_key):
        raise HTTPException(status_code=403, detail="Admin key required")
