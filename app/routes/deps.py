import json
from fastapi import HTTPException, Request, status

async def get_current_user_id(request: Request) -> str:
    """
    Read the caller's id from the user info header set by the API gateway
    after it has verified the token with the identity provider.
    """
    user_info = request.headers.get("X-User-Info")
    if not user_info:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication info"
        )

    try:
        user_info = json.loads(user_info)
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user info format"
        )

    user_id = user_info.get("id") if isinstance(user_info, dict) else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User info has no id"
        )
    return str(user_id)
