# crm_database.py

from extensions import db
from utils.datetime_utils import utc_now


# --- Property Catalog ---
class Property(db.Model):
    """Catalog entry for a known property; the source of canonical street names"""
    __tablename__ = 'property'

    id = db.Column(db.Integer, primary_key=True)
    suburb = db.Column(db.String(100), nullable=False)
    street_name = db.Column(db.String(200), nullable=False)
    street_number = db.Column(db.Text, nullable=True)
    property_type = db.Column(db.String(50), nullable=True)  # 'House', 'Unit', 'Townhouse', etc.
    created_at = db.Column(db.DateTime, default=utc_now)

    __table_args__ = (
        db.Index('idx_property_location', 'suburb', 'street_name'),
    )

    def __repr__(self):
        return f'<Property {self.street_number or ""} {self.street_name}, {self.suburb}>'


# --- Contact Ledger ---
class Contact(db.Model):
    """Property-owner contact recorded against a street in a suburb"""
    __tablename__ = 'contact'

    id = db.Column(db.Integer, primary_key=True)

    # Owners
    owner_1 = db.Column(db.Text, nullable=True)
    owner_2 = db.Column(db.Text, nullable=True)
    owner_1_email = db.Column(db.Text, nullable=True)
    owner_2_email = db.Column(db.Text, nullable=True)
    phone_number = db.Column(db.Text, nullable=True)
    owner_1_mobile = db.Column(db.Text, nullable=True)
    owner_2_mobile = db.Column(db.Text, nullable=True)

    # Location
    street_number = db.Column(db.Text, nullable=True)
    street_name = db.Column(db.String(200), nullable=False)
    suburb = db.Column(db.String(100), nullable=False)

    # Prospecting details
    outcome = db.Column(db.Text, nullable=True)
    status = db.Column(db.Text, nullable=True, default='Inprogress')
    last_sold_date = db.Column(db.Date, nullable=True)
    price = db.Column(db.Numeric(14, 2), nullable=True)
    marketing_plan = db.Column(db.Text, nullable=True)
    activity_log = db.Column(db.Text, nullable=True)

    # SHA-256 of the duplicate-detection key; NULL for contacts entered before hashing
    identity_hash = db.Column(db.String(64), nullable=True, unique=True)
    contact_import_id = db.Column(db.Integer, db.ForeignKey('contact_import.id', ondelete='SET NULL'), nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.Index('idx_contact_location', 'suburb', 'street_name'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'owner_1': self.owner_1,
            'owner_2': self.owner_2,
            'owner_1_email': self.owner_1_email,
            'owner_2_email': self.owner_2_email,
            'phone_number': self.phone_number,
            'owner_1_mobile': self.owner_1_mobile,
            'owner_2_mobile': self.owner_2_mobile,
            'outcome': self.outcome,
            'street_number': self.street_number,
            'street_name': self.street_name,
            'suburb': self.suburb,
            'status': self.status,
            'last_sold_date': self.last_sold_date.isoformat() if self.last_sold_date else None,
            'price': float(self.price) if self.price is not None else None,
            'marketing_plan': self.marketing_plan,
            'activity_log': self.activity_log,
            'contact_import_id': self.contact_import_id,
        }

    def __repr__(self):
        return f'<Contact {self.id} {self.owner_1 or self.owner_2} at {self.street_name}>'


# --- Import Audit ---
class ContactImport(db.Model):
    __tablename__ = 'contact_import'
    id = db.Column(db.Integer, primary_key=True)
    suburb = db.Column(db.String(100), nullable=False)
    filename = db.Column(db.String(255), nullable=True)
    imported_by = db.Column(db.String(100), nullable=True)
    imported_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    total_rows = db.Column(db.Integer, nullable=True)
    accepted_count = db.Column(db.Integer, nullable=True)
    duplicate_count = db.Column(db.Integer, nullable=True)
    unmatched_count = db.Column(db.Integer, nullable=True)
    skipped_count = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending')  # 'pending', 'completed', 'failed'
    error_code = db.Column(db.String(50), nullable=True)
    error_message = db.Column(db.Text, nullable=True)
    import_metadata = db.Column(db.JSON, nullable=True)

    contacts = db.relationship('Contact', backref='contact_import', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'suburb': self.suburb,
            'filename': self.filename,
            'imported_by': self.imported_by,
            'imported_at': self.imported_at.isoformat() if self.imported_at else None,
            'total_rows': self.total_rows,
            'accepted_count': self.accepted_count,
            'duplicate_count': self.duplicate_count,
            'unmatched_count': self.unmatched_count,
            'skipped_count': self.skipped_count,
            'status': self.status,
            'error_code': self.error_code,
            'error_message': self.error_message,
            'import_metadata': self.import_metadata,
        }

    def __repr__(self):
        return f'<ContactImport {self.id} {self.suburb} {self.status}>'
