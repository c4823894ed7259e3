from datetime import date, datetime

from .extensions import db
from .items import ItemKey


def _iso(value):
    return value.isoformat() if value is not None else None


class Enquiry(db.Model):
    __tablename__ = "enquiries"

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    address = db.Column(db.Text, nullable=False, default="")
    message = db.Column(db.Text, default="")
    inquiry_type = db.Column(db.String(20), default="Walk-in")
    product = db.Column(db.String(32))  # first product, kept for listings
    quantity = db.Column(db.Integer, default=1)
    date = db.Column(db.Date, default=date.today)
    status = db.Column(db.String(16), default="new")
    contacted = db.Column(db.Boolean, default=False)
    contacted_at = db.Column(db.DateTime)
    assigned_to = db.Column(db.String(255))
    notes = db.Column(db.Text)
    current_stage = db.Column(db.String(16), nullable=False, default="enquiry", index=True)
    quoted_amount = db.Column(db.Numeric(10, 2))
    final_amount = db.Column(db.Numeric(10, 2))
    pickup_date = db.Column(db.Date)
    delivery_date = db.Column(db.Date)
    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    products = db.relationship(
        "EnquiryProduct", backref="enquiry", cascade="all, delete-orphan", order_by="EnquiryProduct.id"
    )
    pickup_details = db.relationship(
        "PickupDetails", backref="enquiry", uselist=False, cascade="all, delete-orphan"
    )
    service_details = db.relationship(
        "ServiceDetails", backref="enquiry", uselist=False, cascade="all, delete-orphan"
    )
    service_assignments = db.relationship(
        "ServiceTypeAssignment",
        backref="enquiry",
        cascade="all, delete-orphan",
        order_by="ServiceTypeAssignment.id",
    )
    photos = db.relationship("Photo", backref="enquiry", cascade="all, delete-orphan", order_by="Photo.id")
    billing_details = db.relationship(
        "BillingDetails", backref="enquiry", uselist=False, cascade="all, delete-orphan"
    )
    delivery_details = db.relationship(
        "DeliveryDetails", backref="enquiry", uselist=False, cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Enquiry id={self.id} customer={self.customer_name!r} stage={self.current_stage}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "phone": self.phone,
            "address": self.address,
            "message": self.message,
            "inquiry_type": self.inquiry_type,
            "product": self.product,
            "quantity": self.quantity,
            "date": _iso(self.date),
            "status": self.status,
            "contacted": self.contacted,
            "contacted_at": _iso(self.contacted_at),
            "assigned_to": self.assigned_to,
            "notes": self.notes,
            "current_stage": self.current_stage,
            "quoted_amount": self.quoted_amount,
            "final_amount": self.final_amount,
            "pickup_date": _iso(self.pickup_date),
            "delivery_date": _iso(self.delivery_date),
            "version_id": self.version_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class EnquiryProduct(db.Model):
    __tablename__ = "enquiry_products"

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    product = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {"product": self.product, "quantity": self.quantity}


class PickupDetails(db.Model):
    __tablename__ = "pickup_details"

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(
        db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status = db.Column(db.String(16), nullable=False, default="scheduled")
    scheduled_time = db.Column(db.DateTime)
    assigned_to = db.Column(db.String(100))
    collection_notes = db.Column(db.Text)
    collected_at = db.Column(db.DateTime)
    pin = db.Column(db.String(10))
    collection_photo_id = db.Column(db.Integer)
    received_notes = db.Column(db.Text)
    received_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "scheduled_time": _iso(self.scheduled_time),
            "assigned_to": self.assigned_to,
            "collection_notes": self.collection_notes,
            "collected_at": _iso(self.collected_at),
            "pin": self.pin,
            "collection_photo_id": self.collection_photo_id,
            "received_notes": self.received_notes,
            "received_at": _iso(self.received_at),
        }


class ServiceDetails(db.Model):
    __tablename__ = "service_details"

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(
        db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    estimated_cost = db.Column(db.Numeric(10, 2))
    actual_cost = db.Column(db.Numeric(10, 2))
    work_notes = db.Column(db.Text)
    completed_at = db.Column(db.DateTime)
    received_notes = db.Column(db.Text)
    overall_before_photo_id = db.Column(db.Integer)
    overall_after_photo_id = db.Column(db.Integer)
    overall_before_notes = db.Column(db.Text)
    overall_after_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "estimated_cost": self.estimated_cost,
            "actual_cost": self.actual_cost,
            "work_notes": self.work_notes,
            "completed_at": _iso(self.completed_at),
            "received_notes": self.received_notes,
            "overall_before_photo_id": self.overall_before_photo_id,
            "overall_after_photo_id": self.overall_after_photo_id,
            "overall_before_notes": self.overall_before_notes,
            "overall_after_notes": self.overall_after_notes,
        }


class ServiceTypeAssignment(db.Model):
    """One service type on one item instance."""

    __tablename__ = "service_types"
    __table_args__ = (
        db.UniqueConstraint(
            "enquiry_id", "product", "item_index", "service_type", name="uq_service_types_item_type"
        ),
        db.Index("ix_service_types_product_item", "product", "item_index"),
    )

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    service_type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    product = db.Column(db.String(32), nullable=False)
    item_index = db.Column(db.Integer, nullable=False)
    department = db.Column(db.String(255))
    assigned_to = db.Column(db.String(255))
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    work_notes = db.Column(db.Text)
    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    photos = db.relationship("Photo", backref="assignment", cascade="all, delete-orphan", order_by="Photo.id")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def item_key(self) -> ItemKey:
        return ItemKey(self.product, self.item_index)

    def __repr__(self) -> str:
        return f"<ServiceTypeAssignment id={self.id} {self.service_type} on {self.item_key} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.service_type,
            "status": self.status,
            "product": self.product,
            "item_index": self.item_index,
            "department": self.department,
            "assigned_to": self.assigned_to,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "work_notes": self.work_notes,
        }


class Photo(db.Model):
    """Append-only image row; never updated after insert."""

    __tablename__ = "photos"
    __table_args__ = (db.Index("ix_photos_product_item", "product", "item_index"),)

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    stage = db.Column(db.String(16), nullable=False)
    photo_type = db.Column(db.String(20), nullable=False)
    photo_data = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text)
    service_type_id = db.Column(db.Integer, db.ForeignKey("service_types.id", ondelete="CASCADE"), index=True)
    product = db.Column(db.String(32))
    item_index = db.Column(db.Integer)
    slot_index = db.Column(db.SmallInteger)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def item_key(self) -> ItemKey | None:
        if self.product is None or self.item_index is None:
            return None
        return ItemKey(self.product, self.item_index)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stage": self.stage,
            "photo_type": self.photo_type,
            "data": self.photo_data,
            "notes": self.notes,
            "slot_index": self.slot_index,
            "created_at": _iso(self.created_at),
        }


class BillingDetails(db.Model):
    __tablename__ = "billing_details"

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(
        db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    final_amount = db.Column(db.Numeric(10, 2), nullable=False)  # sum of original amounts
    gst_included = db.Column(db.Boolean, default=True)
    gst_rate = db.Column(db.Numeric(5, 2), default=18)
    gst_amount = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    invoice_number = db.Column(db.String(50), unique=True)
    invoice_date = db.Column(db.Date)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=False)
    customer_address = db.Column(db.Text, nullable=False, default="")
    notes = db.Column(db.Text)
    generated_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship("BillingItem", backref="billing", cascade="all, delete-orphan", order_by="BillingItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "invoice_date": _iso(self.invoice_date),
            "final_amount": self.final_amount,
            "gst_included": self.gst_included,
            "gst_rate": self.gst_rate,
            "subtotal": self.subtotal,
            "gst_amount": self.gst_amount,
            "total_amount": self.total_amount,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "notes": self.notes,
            "generated_at": _iso(self.generated_at),
            "items": [item.to_dict() for item in self.items],
        }


class BillingItem(db.Model):
    __tablename__ = "billing_items"

    id = db.Column(db.Integer, primary_key=True)
    billing_id = db.Column(db.Integer, db.ForeignKey("billing_details.id", ondelete="CASCADE"), nullable=False, index=True)
    service_type = db.Column(db.String(255), nullable=False)
    product = db.Column(db.String(32))
    item_index = db.Column(db.Integer)
    original_amount = db.Column(db.Numeric(10, 2), nullable=False)
    discount_value = db.Column(db.Numeric(5, 2), default=0)  # percent
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False)
    final_amount = db.Column(db.Numeric(10, 2), nullable=False)
    gst_rate = db.Column(db.Numeric(5, 2), default=18)
    gst_amount = db.Column(db.Numeric(10, 2), nullable=False)
    description = db.Column(db.Text)

    def to_dict(self) -> dict:
        return {
            "service_type": self.service_type,
            "product": self.product,
            "item_index": self.item_index,
            "original_amount": self.original_amount,
            "discount_value": self.discount_value,
            "discount_amount": self.discount_amount,
            "final_amount": self.final_amount,
            "gst_rate": self.gst_rate,
            "gst_amount": self.gst_amount,
            "description": self.description,
        }


class DeliveryDetails(db.Model):
    __tablename__ = "delivery_details"

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(
        db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status = db.Column(db.String(20), nullable=False, default="ready")
    delivery_method = db.Column(db.String(20), default="customer-pickup")
    scheduled_time = db.Column(db.DateTime)
    assigned_to = db.Column(db.String(255))
    delivery_address = db.Column(db.Text)
    customer_signature = db.Column(db.Text)
    delivery_notes = db.Column(db.Text)
    delivery_photo_id = db.Column(db.Integer)
    delivered_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "delivery_method": self.delivery_method,
            "scheduled_time": _iso(self.scheduled_time),
            "assigned_to": self.assigned_to,
            "delivery_address": self.delivery_address,
            "has_signature": bool(self.customer_signature),
            "delivery_notes": self.delivery_notes,
            "delivery_photo_id": self.delivery_photo_id,
            "delivered_at": _iso(self.delivered_at),
        }
