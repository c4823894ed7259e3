"""Photo store.

Photos are only ever inserted. "The current after-photo" is whichever row is
newest for its scope.
"""
import logging

from .constants import PHOTO_STAGES, PHOTO_TYPES
from .errors import ValidationError
from .extensions import db
from .items import ItemKey
from .models import Photo

logger = logging.getLogger(__name__)

BUCKETS = ('before', 'after', 'received', 'other')

_BUCKET_BY_SCOPE = {
    ('pickup', 'before_photo'): 'before',
    ('pickup', 'after_photo'): 'received',
    ('service', 'before_photo'): 'before',
    ('service', 'after_photo'): 'after',
}


def photo_bucket(stage: str, photo_type: str) -> str:
    return _BUCKET_BY_SCOPE.get((stage, photo_type), 'other')


def empty_buckets() -> dict[str, list]:
    return {bucket: [] for bucket in BUCKETS}


def group_photos(photos) -> dict[str, list]:
    grouped = empty_buckets()
    for photo in photos:
        grouped[photo_bucket(photo.stage, photo.photo_type)].append(photo.to_dict())
    return grouped


def add_photo(enquiry, stage: str, photo_type: str, photo_data, notes=None,
              assignment=None, item: ItemKey | None = None, slot_index=None) -> Photo:
    if stage not in PHOTO_STAGES:
        raise ValidationError(f"unknown photo stage {stage!r}")
    if photo_type not in PHOTO_TYPES:
        raise ValidationError(f"unknown photo type {photo_type!r}")
    if not isinstance(photo_data, str) or not photo_data.strip():
        raise ValidationError(f"{photo_type} image data is required")

    photo = Photo(
        enquiry=enquiry,
        stage=stage,
        photo_type=photo_type,
        photo_data=photo_data,
        notes=notes,
        assignment=assignment,
        product=item.product if item else None,
        item_index=item.item_index if item else None,
        slot_index=slot_index,
    )
    db.session.add(photo)
    db.session.flush()
    logger.debug("Stored %s/%s photo %s for enquiry %s", stage, photo_type, photo.id, enquiry.id)
    return photo


def item_photo_count(enquiry_id: int, item: ItemKey, stage: str = 'pickup') -> int:
    return Photo.query.filter_by(
        enquiry_id=enquiry_id, stage=stage, product=item.product, item_index=item.item_index
    ).count()


def item_photos(enquiry_id: int) -> dict[ItemKey, dict[str, list]]:
    rows = (
        Photo.query
        .filter(Photo.enquiry_id == enquiry_id, Photo.product.isnot(None), Photo.item_index.isnot(None))
        .order_by(Photo.item_index, Photo.id)
        .all()
    )
    grouped: dict[ItemKey, dict[str, list]] = {}
    for photo in rows:
        buckets = grouped.setdefault(photo.item_key, empty_buckets())
        buckets[photo_bucket(photo.stage, photo.photo_type)].append(photo.to_dict())
    return grouped


def latest_photo(enquiry_id: int, photo_type: str) -> Photo | None:
    return (
        Photo.query
        .filter_by(enquiry_id=enquiry_id, photo_type=photo_type)
        .order_by(Photo.id.desc())
        .first()
    )


def overall_photos(enquiry_id: int) -> dict:
    before = latest_photo(enquiry_id, 'overall_before')
    after = latest_photo(enquiry_id, 'overall_after')
    return {
        'before_photo': before.photo_data if before else None,
        'before_notes': before.notes if before else None,
        'after_photo': after.photo_data if after else None,
        'after_notes': after.notes if after else None,
    }
