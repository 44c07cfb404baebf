from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ATTRIBUTE_TEXT = "text"
ATTRIBUTE_NUMBER = "number"
ATTRIBUTE_SELECT = "select"
ATTRIBUTE_TEXTAREA = "textarea"
VALID_ATTRIBUTE_TYPES = (ATTRIBUTE_TEXT, ATTRIBUTE_NUMBER, ATTRIBUTE_SELECT, ATTRIBUTE_TEXTAREA)


class Attribute(db.Model):
    """
    A named product property (size, colour, volume...).

    TYPES:
    - text / textarea: free text
    - number: value must parse as a number
    - select: value must be one of allowed_values

    allowed_values is only kept for select attributes.
    """
    __tablename__ = "attributes"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_attributes_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    attribute_type = db.Column(db.String(16), nullable=False, default=ATTRIBUTE_TEXT)
    allowed_values = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_required = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.attribute_type,
            "values": list(self.allowed_values or []),
            "is_active": self.is_active,
            "is_required": self.is_required,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductAttribute(db.Model):
    """One attribute value on one product."""
    __tablename__ = "product_attributes"
    __table_args__ = (
        db.UniqueConstraint("product_id", "attribute_id", name="uq_product_attributes_product_attribute"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    attribute_id = db.Column(db.Integer, db.ForeignKey("attributes.id"), nullable=False, index=True)
    value = db.Column(db.String(255), nullable=False)

    product = db.relationship("Product", backref=db.backref("attribute_values", lazy=True))
    attribute = db.relationship("Attribute")

    def to_dict(self) -> dict:
        return {
            "attribute_id": self.attribute_id,
            "name": self.attribute.name if self.attribute else None,
            "type": self.attribute.attribute_type if self.attribute else None,
            "value": self.value,
        }
