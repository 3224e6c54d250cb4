"""
File content, version history and comment models.

FileContent keeps the payload either inline (``content_text`` already in a
portable text encoding, or raw bytes in the legacy ``content_blob`` column)
or externally in blob storage (``storage_path``).
"""

from docmanager.models import _utcnow, _uuid, db

__all__ = ["FileContent", "FileContentVersion", "FileComment"]


class FileContent(db.Model):
    __tablename__ = "file_contents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    file_name = db.Column(db.String(255), nullable=True, index=True)
    file_type = db.Column(db.String(100), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    content_text = db.Column(db.Text, nullable=True)
    content_blob = db.Column(db.LargeBinary, nullable=True, comment="Legacy raw payload")
    storage_path = db.Column(db.String(500), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), default=_utcnow)


class FileContentVersion(db.Model):
    """One historical revision of a stored file."""

    __tablename__ = "file_content_versions"
    __table_args__ = (
        db.UniqueConstraint("file_id", "version_no", name="uq_fcv_file_version"),
    )

    id = db.Column(db.Integer, primary_key=True)
    file_id = db.Column(db.String(36), nullable=False, index=True)
    version_no = db.Column(db.Integer, nullable=False)
    file_name = db.Column(db.String(255), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    created_by = db.Column(db.String(255), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "versionNo": self.version_no,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "createdBy": self.created_by,
            "createdDate": self.created_date.isoformat() if self.created_date else None,
        }


class FileComment(db.Model):
    __tablename__ = "file_comments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    file_id = db.Column(db.String(36), nullable=False, index=True)
    comment = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    author = db.relationship("User", foreign_keys=[author_id], lazy="joined")
    created_by = db.relationship("User", foreign_keys=[created_by_id], lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "fileId": self.file_id,
            "comment": self.comment,
            "author": self.author.to_summary() if self.author else None,
            "createdBy": self.created_by.to_summary() if self.created_by else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
