from __future__ import annotations

from ..extensions import db
from migdalor.time_utils import to_utc_z


class Listing(db.Model):
    """
    Marketplace listing posted by a resident.

    Removed with its pictures once older than the listing retention window.
    """
    __tablename__ = "listings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("people.id"), nullable=True, index=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(300), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "title": self.title,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Notice(db.Model):
    """Notice board message; removed once older than the notice retention window."""
    __tablename__ = "notices"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("people.id"), nullable=True, index=True)
    title = db.Column(db.String(100), nullable=False)
    message = db.Column(db.String(300), nullable=True)
    category = db.Column(db.String(100), nullable=True)
    sub_category = db.Column(db.String(100), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "title": self.title,
            "message": self.message,
            "category": self.category,
            "sub_category": self.sub_category,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Picture(db.Model):
    """
    Uploaded image and the reference to its file.

    path is the public path (e.g. "/Images/abc.jpeg"); only its file name is
    used to find the file under the uploads root. listing_id / notice_id are
    the optional owner references.
    """
    __tablename__ = "pictures"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    path = db.Column(db.String(500), nullable=False)
    alt = db.Column(db.String(255), nullable=False, default="")
    role = db.Column(db.String(50), nullable=True)
    uploader_id = db.Column(db.Integer, db.ForeignKey("people.id"), nullable=True, index=True)

    listing_id = db.Column(db.Integer, db.ForeignKey("listings.id"), nullable=True, index=True)
    notice_id = db.Column(db.Integer, db.ForeignKey("notices.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "alt": self.alt,
            "role": self.role,
            "uploader_id": self.uploader_id,
            "listing_id": self.listing_id,
            "notice_id": self.notice_id,
            "created_at": to_utc_z(self.created_at),
        }
