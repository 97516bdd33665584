"""
Google Drive configuration
Admins store the service account used for the shared client-files drive.
The private key never leaves the server.
"""
import json
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_role
from ..database import get_db
from ..encryption import encrypt_secret
from ..models import User, UserRole
from ..models_google_drive import DEFAULT_MATTER_SUBFOLDERS, GoogleDriveConfig
from ..schemas import GoogleDriveConfigure
from ..utils.serialization import parse_json, to_millis

logger = logging.getLogger(__name__)
router = APIRouter(tags=["google-drive"])


def get_drive_config(db: Session):
    return db.query(GoogleDriveConfig).order_by(GoogleDriveConfig.created_at.asc()).first()


def is_drive_configured(config) -> bool:
    """Enabled, with a service account and a shared drive; the drive itself can be the root"""
    return bool(config and config.is_enabled and config.shared_drive_id and config.service_account_email)


@router.get("/admin/google-drive/config")
def get_config(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    config = get_drive_config(db)
    if not config:
        return {"success": True, "config": None}

    return {
        "success": True,
        "config": {
            "id": config.id,
            "is_enabled": config.is_enabled,
            "service_account_email": config.service_account_email,
            "has_private_key": bool(config.service_account_private_key),
            "shared_drive_id": config.shared_drive_id,
            "root_folder_id": config.root_folder_id,
            "root_folder_name": config.root_folder_name,
            "impersonation_email": config.impersonation_email,
            "matter_subfolders": parse_json(config.matter_subfolders, list(DEFAULT_MATTER_SUBFOLDERS)),
            "sync_generated_documents": config.sync_generated_documents,
            "sync_client_uploads": config.sync_client_uploads,
            "sync_signed_documents": config.sync_signed_documents,
            "created_at": to_millis(config.created_at),
            "updated_at": to_millis(config.updated_at),
        },
    }


@router.post("/admin/google-drive/configure")
def configure(
    body: GoogleDriveConfigure,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    config = get_drive_config(db)
    if not config:
        config = GoogleDriveConfig()
        db.add(config)

    config.is_enabled = body.is_enabled
    config.service_account_email = body.service_account_email or None
    config.shared_drive_id = body.shared_drive_id or None
    config.root_folder_id = body.root_folder_id or None
    config.root_folder_name = body.root_folder_name
    config.impersonation_email = body.impersonation_email or None
    config.matter_subfolders = json.dumps(body.matter_subfolders)
    config.sync_generated_documents = body.sync_generated_documents
    config.sync_client_uploads = body.sync_client_uploads
    config.sync_signed_documents = body.sync_signed_documents

    # Partial updates keep the stored key
    if body.service_account_private_key:
        config.service_account_private_key = encrypt_secret(body.service_account_private_key)

    db.commit()
    logger.info(f"☁️ Google Drive configuration saved by {current_user.id} (enabled={config.is_enabled})")
    return {"success": True, "message": "Google Drive configuration saved"}


@router.get("/google-drive/status")
def get_status(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    config = get_drive_config(db)
    return {
        "success": True,
        "is_enabled": bool(config and config.is_enabled),
        "is_configured": is_drive_configured(config),
    }
