"""
Sign-in providers shown on the login page.
The public list needs no session; management is ADMIN only.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import require_role
from ..database import get_db
from ..models import OAuthProvider, User, UserRole
from ..schemas import OAuthProviderCreate, OAuthProviderUpdate
from ..utils.serialization import to_millis

logger = logging.getLogger(__name__)
router = APIRouter(tags=["oauth-providers"])

admin_only = require_role(UserRole.ADMIN)


def serialize_provider(provider: OAuthProvider) -> dict:
    return {
        "id": provider.id,
        "provider_id": provider.provider_id,
        "name": provider.name,
        "logo_url": provider.logo_url,
        "button_color": provider.button_color,
        "is_enabled": provider.is_enabled,
        "display_order": provider.display_order,
        "created_at": to_millis(provider.created_at),
        "updated_at": to_millis(provider.updated_at),
    }


def get_provider_or_404(db: Session, provider_pk: str) -> OAuthProvider:
    provider = db.query(OAuthProvider).filter(OAuthProvider.id == provider_pk).first()
    if not provider:
        raise HTTPException(status_code=404, detail="Provider not found")
    return provider


@router.get("/public/oauth-providers")
def list_enabled_providers(db: Session = Depends(get_db)):
    providers = (
        db.query(OAuthProvider)
        .filter(OAuthProvider.is_enabled.is_(True))
        .order_by(OAuthProvider.display_order.asc())
        .all()
    )
    return {
        "providers": [
            {
                "provider_id": p.provider_id,
                "name": p.name,
                "logo_url": p.logo_url,
                "button_color": p.button_color,
            }
            for p in providers
        ]
    }


@router.get("/oauth-providers")
def list_providers(current_user: User = Depends(admin_only), db: Session = Depends(get_db)):
    providers = db.query(OAuthProvider).order_by(OAuthProvider.display_order.asc()).all()
    return {"providers": [serialize_provider(p) for p in providers]}


@router.post("/oauth-providers")
def create_provider(
    body: OAuthProviderCreate,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    if db.query(OAuthProvider).filter(OAuthProvider.provider_id == body.provider_id).first():
        raise HTTPException(status_code=400, detail="Provider ID already exists")

    provider = OAuthProvider(
        provider_id=body.provider_id,
        name=body.name,
        logo_url=body.logo_url or None,
        button_color=body.button_color,
        is_enabled=body.is_enabled,
        display_order=body.display_order,
    )
    db.add(provider)
    db.commit()

    logger.info(f"🔑 OAuth provider {provider.provider_id} added by {current_user.id}")
    return {"success": True, "provider_id": provider.id}


@router.put("/oauth-providers/{provider_pk}")
def update_provider(
    provider_pk: str,
    body: OAuthProviderUpdate,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    provider = get_provider_or_404(db, provider_pk)

    data = body.model_dump(exclude_unset=True)
    if "logo_url" in data:
        data["logo_url"] = data["logo_url"] or None
    for field, value in data.items():
        setattr(provider, field, value)

    db.commit()
    return {"success": True}


@router.delete("/oauth-providers/{provider_pk}")
def delete_provider(
    provider_pk: str,
    current_user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    provider = get_provider_or_404(db, provider_pk)
    db.delete(provider)
    db.commit()

    logger.info(f"🗑️ OAuth provider {provider_pk} removed by {current_user.id}")
    return {"success": True}
