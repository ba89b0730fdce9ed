from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.estore.core.config import settings
from app.estore.core.error_catalog import AppError, ErrorCatalog
from app.estore.core.security import TokenData, decode_token, oauth2_scheme


def get_current_token_data(request: Request, token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        token_data = TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc
    request.state.user_id = token_data.sub
    return token_data


def require_opname_access(token_data: TokenData = Depends(get_current_token_data)) -> TokenData:
    if (token_data.role or "").upper() not in settings.opname_allowed_roles:
        raise AppError(ErrorCatalog.PERMISSION_DENIED, details={"role": token_data.role})
    return token_data


__all__ = [
    "get_current_token_data",
    "require_opname_access",
]
