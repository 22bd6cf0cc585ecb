# Overview: Service-layer operations for maintenance; retention sweeps for listings and notices.

"""
Retention sweeps.

Content older than its policy's retention window is deleted together with
the pictures it owns and their files under the uploads root.

Per item, in one unit of work:
1. Delete every owned picture's file (missing file: warning; any other error:
   logged). File outcomes never stop the item.
2. Delete the picture rows, then the content row, and commit.

A failing item is rolled back and logged; the sweep moves on. Items created
exactly at the cutoff are kept.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from flask import current_app

from ..extensions import db
from ..models import Listing, Notice, Picture
from migdalor.time_utils import utcnow


@dataclass(frozen=True)
class RetentionPolicy:
    name: str
    model: type
    picture_owner_column: str
    retention: timedelta

    def owner_filter(self, item_id: int):
        return getattr(Picture, self.picture_owner_column) == item_id


LISTING_RETENTION = RetentionPolicy(
    name="listings",
    model=Listing,
    picture_owner_column="listing_id",
    retention=timedelta(days=14),
)

NOTICE_RETENTION = RetentionPolicy(
    name="notices",
    model=Notice,
    picture_owner_column="notice_id",
    retention=timedelta(days=7),
)


@dataclass
class SweepSummary:
    policy: str
    cutoff: datetime
    selected: int = 0
    deleted: int = 0
    failed: int = 0
    missing_files: int = 0
    file_errors: int = 0
    skipped: bool = False


def _delete_picture_file(uploads_dir: str, picture: Picture, summary: SweepSummary) -> None:
    # e.g. "/Images/some-file.jpeg" -> "some-file.jpeg"
    file_name = os.path.basename(picture.path or "")
    if not file_name:
        current_app.logger.warning("Picture %s has no file name in path %r, skipping file deletion", picture.id, picture.path)
        summary.missing_files += 1
        return

    full_path = os.path.join(uploads_dir, file_name)
    try:
        if os.path.isfile(full_path):
            os.remove(full_path)
            current_app.logger.info("Deleted file %s", full_path)
        else:
            summary.missing_files += 1
            current_app.logger.warning(
                "File not found for picture %s, skipping deletion: %s", picture.id, full_path
            )
    except Exception:
        summary.file_errors += 1
        current_app.logger.exception("Error deleting file for picture %s: %s", picture.id, full_path)


def _reap_item(policy: RetentionPolicy, item_id: int, uploads_dir: str, summary: SweepSummary) -> None:
    pictures = db.session.query(Picture).filter(policy.owner_filter(item_id)).all()

    for picture in pictures:
        _delete_picture_file(uploads_dir, picture, summary)

    picture_ids = [p.id for p in pictures]
    if picture_ids:
        db.session.query(Picture).filter(Picture.id.in_(picture_ids)).delete(synchronize_session=False)
    db.session.query(policy.model).filter(policy.model.id == item_id).delete(synchronize_session=False)
    db.session.commit()


def run_retention_sweep(
    policy: RetentionPolicy,
    *,
    now: datetime | None = None,
    uploads_dir: str | None = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> SweepSummary:
    """Delete content of one type older than its retention window."""
    cutoff = (now or utcnow()) - policy.retention
    summary = SweepSummary(policy=policy.name, cutoff=cutoff)
    uploads_dir = uploads_dir or current_app.config["UPLOADS_DIR"]

    if not os.path.isdir(uploads_dir):
        current_app.logger.critical(
            "Uploads directory does not exist, skipping %s cleanup. Please ensure the folder exists at: %s",
            policy.name, uploads_dir,
        )
        summary.skipped = True
        return summary

    model = policy.model
    item_ids = [
        row[0]
        for row in db.session.query(model.id)
        .filter(model.created_at < cutoff)
        .order_by(model.created_at.asc(), model.id.asc())
    ]
    summary.selected = len(item_ids)
    if not item_ids:
        current_app.logger.info("No %s older than %s days found to delete", policy.name, policy.retention.days)
        return summary

    current_app.logger.info("Found %s %s older than %s days to delete", len(item_ids), policy.name, policy.retention.days)
    for item_id in item_ids:
        if should_stop and should_stop():
            current_app.logger.info("%s cleanup interrupted by shutdown", policy.name.capitalize())
            break
        try:
            _reap_item(policy, item_id, uploads_dir, summary)
            summary.deleted += 1
        except Exception:
            db.session.rollback()
            summary.failed += 1
            current_app.logger.exception("Failed to delete %s item %s", policy.name, item_id)

    current_app.logger.info(
        "%s cleanup finished: %s deleted, %s failed, %s files missing, %s file errors",
        policy.name.capitalize(), summary.deleted, summary.failed, summary.missing_files, summary.file_errors,
    )
    return summary


def cleanup_listings(**kwargs) -> SweepSummary:
    return run_retention_sweep(LISTING_RETENTION, **kwargs)


def cleanup_notices(**kwargs) -> SweepSummary:
    return run_retention_sweep(NOTICE_RETENTION, **kwargs)
