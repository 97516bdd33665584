"""
LawPay OAuth and connection management
Authorize redirects to LawPay; LawPay redirects back to the callback with a code
"""
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..auth import get_current_user, read_session, require_role, write_session
from ..database import get_db
from ..models import User, UserRole
from ..services import lawpay_service, lawpay_tokens
from ..utils.serialization import to_millis

logger = logging.getLogger(__name__)
router = APIRouter(tags=["lawpay"])

SESSION_STATE_KEY = "lawpay_oauth_state"


@router.get("/auth/lawpay/authorize")
def authorize(
    request: Request,
    current_user: User = Depends(require_role(UserRole.LAWYER, UserRole.ADMIN)),
):
    if not lawpay_service.is_configured():
        raise HTTPException(status_code=500, detail="LawPay is not configured")

    state = str(uuid.uuid4())
    session = read_session(request)
    session[SESSION_STATE_KEY] = state

    response = RedirectResponse(lawpay_service.build_authorization_url(state), status_code=302)
    write_session(response, session)

    logger.info(f"LawPay OAuth initiated for user {current_user.id}")
    return response


@router.get("/auth/lawpay/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
):
    if error:
        raise HTTPException(status_code=400, detail=f"LawPay authorization failed: {error}")

    if not code or not state:
        raise HTTPException(status_code=400, detail="Missing authorization code or state")

    session = read_session(request)
    if session.get(SESSION_STATE_KEY) != state:
        logger.warning("🚫 LawPay callback with mismatched state")
        raise HTTPException(status_code=400, detail="Invalid state parameter")

    user_id = (session.get("user") or {}).get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        token_data = await lawpay_service.exchange_code_for_token(code)
        credentials = await lawpay_service.get_gateway_credentials(token_data["access_token"])

        lawpay_tokens.store_connection(
            db,
            user_id=user_id,
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_in=token_data.get("expires_in", 3600),
            merchant_public_key=credentials["merchant_public_key"],
            merchant_name=credentials.get("merchant_name"),
            scope=token_data.get("scope"),
        )
    except Exception as e:
        logger.error(f"❌ LawPay OAuth error: {e}")
        db.rollback()
        raise HTTPException(
            status_code=500, detail=f"Failed to complete LawPay authorization: {e}"
        ) from e

    # The state is single use
    session.pop(SESSION_STATE_KEY, None)
    response = RedirectResponse("/dashboard?lawpay=connected", status_code=302)
    write_session(response, session)

    logger.info(f"✅ LawPay connected for user {user_id}")
    return response


@router.get("/lawpay/status")
def get_status(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    connection = lawpay_tokens.get_active_connection(db, current_user.id)
    if not connection:
        return {"connected": False, "merchant_name": None, "expires_at": None}

    return {
        "connected": True,
        "merchant_name": connection.merchant_name,
        "expires_at": to_millis(connection.expires_at),
    }


@router.delete("/lawpay/connection")
async def disconnect(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Revoke locally, then tell LawPay; the upstream call is best effort"""
    access_token = lawpay_tokens.get_access_token(db, current_user.id)
    connection = lawpay_tokens.revoke_connection(db, current_user.id)
    if not connection:
        raise HTTPException(status_code=404, detail="LawPay not connected")

    if access_token:
        try:
            await lawpay_service.deauthorize_merchant(access_token, connection.merchant_public_key)
        except Exception as e:
            logger.warning(f"⚠️ LawPay deauthorization failed for user {current_user.id}: {e}")

    return {"success": True}
