"""
Google Drive Configuration Model
A single row holding the service account used to store client files in a
shared drive. The private key is Fernet-encrypted at rest.
"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text

from .database import Base
from .models import generate_id

DEFAULT_ROOT_FOLDER_NAME = "YTP Client Files"
DEFAULT_MATTER_SUBFOLDERS = [
    "Generated Documents",
    "Client Uploads",
    "Signed Documents",
    "Correspondence",
]


class GoogleDriveConfig(Base):
    __tablename__ = "google_drive_config"

    id = Column(String(36), primary_key=True, default=generate_id)
    is_enabled = Column(Boolean, nullable=False, default=False)

    service_account_email = Column(String(255), nullable=True)
    service_account_private_key = Column(Text, nullable=True)  # encrypted

    shared_drive_id = Column(String(255), nullable=True)
    root_folder_id = Column(String(255), nullable=True)
    root_folder_name = Column(String(255), nullable=False, default=DEFAULT_ROOT_FOLDER_NAME)
    impersonation_email = Column(String(255), nullable=True)

    # JSON list of folder names created under every matter folder
    matter_subfolders = Column(Text, nullable=True)

    sync_generated_documents = Column(Boolean, nullable=False, default=True)
    sync_client_uploads = Column(Boolean, nullable=False, default=True)
    sync_signed_documents = Column(Boolean, nullable=False, default=True)

    last_sync_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
