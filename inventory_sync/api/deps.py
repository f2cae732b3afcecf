"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request, status

from inventory_sync.bootstrap import Components
from inventory_sync.settings import Settings


def get_settings(request: Request) -> Settings:
	return request.app.state.settings


def get_components(request: Request) -> Components:
	components: Components | None = getattr(request.app.state, "components", None)
	if components is None:
		raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="components_not_ready")
	return components


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


async def require_admin(
	request: Request,
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	token = get_settings(request).obs_admin_token
	if not token:
		# Fail closed: if no token is configured, no admin access is allowed.
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	provided = _resolve_token(X_Admin_Token, authorization)
	if provided != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


async def require_metrics_access(
	request: Request,
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if get_settings(request).obs_metrics_public:
		return
	await require_admin(request, X_Admin_Token=X_Admin_Token, authorization=authorization)
