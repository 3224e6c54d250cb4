"""User identity model: resolves authors referenced by comments."""

from docmanager.models import _utcnow, db


class User(db.Model):
    """Generic user identity.

    A user can be referenced by any of: object reference, numeric code,
    email address or username.
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    object_ref = db.Column(db.String(36), nullable=True, unique=True)
    code = db.Column(db.Integer, nullable=True, index=True, comment="Numeric PMWB user code")
    email = db.Column(db.String(255), nullable=True, index=True)
    username = db.Column(db.String(150), nullable=True, index=True)
    display_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_summary(self):
        return {
            "id": self.id,
            "code": self.code,
            "email": self.email,
            "username": self.username,
            "name": self.display_name or self.username or self.email,
        }
