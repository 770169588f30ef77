"""WasteX production log entries and their photo evidence."""

import base64
import binascii
import hashlib
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

DEFAULT_STATUS = "Mobile Entry"
UNKNOWN_CLIENT = "Unknown Client"
CUSTOM_CLIENT = "Custom"
PRODUCTION_CLIENTS = [
    "Panzarella Waste",
    "City of Fort Lauderdale",
    "Broward County",
    CUSTOM_CLIENT,
]

CENT = Decimal("0.01")


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Coerce a stored number or numeric string to Decimal."""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return result if result.is_finite() else default


def compute_total(tonnage: Decimal, price_per_ton: Decimal) -> Decimal:
    """Tonnage times price per ton, rounded to cents."""
    return (tonnage * price_per_ton).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _strip_data_url(payload: str) -> str:
    return payload.split(",")[-1] if "," in payload else payload


def hash_bytes(data: bytes) -> str:
    """SHA-256 hex digest of photo content."""
    return hashlib.sha256(data).hexdigest()


def hash_base64(payload: str) -> str:
    """Hash a base64 photo payload, with or without a data URL prefix."""
    return hash_bytes(base64.b64decode(_strip_data_url(payload)))


@dataclass
class ProductionPhoto:
    """Photo evidence embedded in an entry until it is uploaded."""

    base64: str
    hash: str
    file_name: str
    mime_type: str = "image/jpeg"

    @classmethod
    def from_bytes(
        cls, data: bytes, file_name: str, mime_type: str = "image/jpeg"
    ) -> "ProductionPhoto":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(
            base64=f"data:{mime_type};base64,{encoded}",
            hash=hash_bytes(data),
            file_name=file_name,
            mime_type=mime_type,
        )

    def decoded(self) -> bytes:
        """Raw photo bytes."""
        try:
            return base64.b64decode(_strip_data_url(self.base64))
        except binascii.Error as e:
            raise ValueError(f"Photo {self.file_name} is not valid base64") from e

    @property
    def extension(self) -> str:
        parts = self.file_name.rsplit(".", 1)
        ext = parts[1] if len(parts) > 1 and parts[1] else "jpg"
        return ext.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "base64": self.base64,
            "hash": self.hash,
            "fileName": self.file_name,
            "mimeType": self.mime_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ProductionPhoto | None":
        if not data or not data.get("base64"):
            return None
        return cls(
            base64=data["base64"],
            hash=data.get("hash") or hash_base64(data["base64"]),
            file_name=data.get("fileName") or data.get("file_name") or "photo.jpg",
            mime_type=data.get("mimeType") or data.get("mime_type") or "image/jpeg",
        )


@dataclass
class ProductionEntry:
    """One production log row, synced or still queued locally."""

    id: str
    log_date: date
    tonnage: Decimal
    price_per_ton: Decimal
    total_amount: Decimal
    client_name: str
    project_deliverable: str | None = None
    approval_name: str | None = None
    file_name: str | None = None
    file_url: str | None = None
    photo_hash: str | None = None
    processing_status: str = DEFAULT_STATUS
    created_at: datetime | None = None
    synced: bool = False
    photo: ProductionPhoto | None = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        log_date: date,
        tonnage: Decimal,
        price_per_ton: Decimal,
        client_name: str,
        project_deliverable: str | None = None,
        photo: ProductionPhoto | None = None,
        now: datetime | None = None,
    ) -> "ProductionEntry":
        """Build a new unsynced entry from form input."""
        return cls(
            id=str(uuid4()),
            log_date=log_date,
            tonnage=tonnage,
            price_per_ton=price_per_ton,
            total_amount=compute_total(tonnage, price_per_ton),
            client_name=client_name,
            project_deliverable=project_deliverable or None,
            file_name=photo.file_name if photo else None,
            photo_hash=photo.hash if photo else None,
            created_at=now or datetime.now(UTC),
            synced=False,
            photo=photo,
        )

    @classmethod
    def from_record(
        cls, record: dict[str, Any], fallback: "ProductionEntry | None" = None
    ) -> "ProductionEntry":
        """Normalize a server row; missing fields fall back to ``fallback``."""

        def pick(key: str) -> Any:
            value = record.get(key)
            if value in (None, "") and fallback is not None:
                return getattr(fallback, key, None)
            return value

        log_date = parse_date(pick("log_date")) or date.today()
        tonnage = to_decimal(pick("tonnage"))
        price = to_decimal(pick("price_per_ton"))
        total_raw = record.get("total_amount")
        if total_raw in (None, ""):
            total = fallback.total_amount if fallback else compute_total(tonnage, price)
        else:
            total = to_decimal(total_raw)
        created_at = parse_timestamp(
            record.get("created_at") or record.get("inserted_at") or record.get("createdAt")
        )
        if created_at is None:
            created_at = (
                fallback.created_at
                if fallback and fallback.created_at
                else datetime.combine(log_date, time.min, tzinfo=UTC)
            )
        raw_id = record.get("id")
        # Rows without an id keep an empty one and are keyed by their fields
        entry_id = str(raw_id) if raw_id not in (None, "") else (fallback.id if fallback else "")

        return cls(
            id=entry_id,
            log_date=log_date,
            tonnage=tonnage,
            price_per_ton=price,
            total_amount=total,
            client_name=pick("client_name") or UNKNOWN_CLIENT,
            project_deliverable=pick("project_deliverable") or None,
            approval_name=pick("approval_name") or None,
            file_name=pick("file_name") or None,
            file_url=pick("file_url") or None,
            photo_hash=pick("photo_hash") or None,
            processing_status=record.get("processing_status") or DEFAULT_STATUS,
            created_at=created_at,
            synced=True,
            photo=None,
        )

    @property
    def year(self) -> int:
        return self.log_date.year

    @property
    def month(self) -> int:
        return self.log_date.month

    @property
    def sort_timestamp(self) -> datetime:
        """Creation time, or midnight of the log date when unknown."""
        return self.created_at or datetime.combine(self.log_date, time.min, tzinfo=UTC)

    def as_confirmed(self) -> "ProductionEntry":
        """Copy flagged synced with the embedded photo dropped."""
        return replace(self, synced=True, photo=None)

    def to_insert_payload(self) -> dict[str, Any]:
        """Scalar columns for the production-log insert."""
        return {
            "log_date": self.log_date.isoformat(),
            "tonnage": float(self.tonnage),
            "price_per_ton": float(self.price_per_ton),
            "total_amount": float(self.total_amount),
            "client_name": self.client_name,
            "project_deliverable": self.project_deliverable or None,
            "approval_name": self.approval_name or None,
            "file_name": self.file_name or None,
            "file_url": self.file_url or None,
            "photo_hash": self.photo_hash or (self.photo.hash if self.photo else None),
            "processing_status": DEFAULT_STATUS,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "log_date": self.log_date.isoformat(),
            "tonnage": str(self.tonnage),
            "price_per_ton": str(self.price_per_ton),
            "total_amount": str(self.total_amount),
            "client_name": self.client_name,
            "project_deliverable": self.project_deliverable,
            "approval_name": self.approval_name,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "photo_hash": self.photo_hash,
            "processing_status": self.processing_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "synced": self.synced,
            "photo": self.photo.to_dict() if self.photo else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductionEntry":
        log_date = parse_date(data.get("log_date")) or date.today()
        tonnage = to_decimal(data.get("tonnage"))
        price = to_decimal(data.get("price_per_ton"))
        total = data.get("total_amount")
        return cls(
            id=str(data.get("id") or ""),
            log_date=log_date,
            tonnage=tonnage,
            price_per_ton=price,
            total_amount=to_decimal(total) if total not in (None, "") else compute_total(tonnage, price),
            client_name=data.get("client_name") or UNKNOWN_CLIENT,
            project_deliverable=data.get("project_deliverable"),
            approval_name=data.get("approval_name"),
            file_name=data.get("file_name"),
            file_url=data.get("file_url"),
            photo_hash=data.get("photo_hash"),
            processing_status=data.get("processing_status") or DEFAULT_STATUS,
            created_at=parse_timestamp(data.get("created_at")),
            synced=bool(data.get("synced", False)),
            photo=ProductionPhoto.from_dict(data.get("photo")),
        )


class ValidationError(Exception):
    """Production form input rejected."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


@dataclass
class ProductionForm:
    """Raw production form input as typed by the user."""

    date: str
    tonnage: str
    client: str = PRODUCTION_CLIENTS[0]
    custom_client: str = ""
    price_per_ton: str = "20"
    project_notes: str = ""


def validate_production_form(
    form: ProductionForm, photo: ProductionPhoto | None = None
) -> ProductionEntry:
    """Validate form input and build the unsynced entry it describes."""
    errors: dict[str, str] = {}

    log_date = parse_date(form.date)
    if log_date is None:
        errors["date"] = "Date is required"

    tonnage = to_decimal(form.tonnage, default=Decimal("-1"))
    if tonnage <= 0:
        errors["tonnage"] = "Tonnage must be greater than 0"

    rate = to_decimal(form.price_per_ton, default=Decimal("-1"))
    if rate <= 0:
        errors["price_per_ton"] = "Price per ton must be positive"

    client_name = form.client
    if client_name == CUSTOM_CLIENT:
        client_name = form.custom_client.strip()
    if not client_name:
        errors["client"] = "Client is required"

    if errors:
        raise ValidationError(errors)

    assert log_date is not None
    return ProductionEntry.create(
        log_date=log_date,
        tonnage=tonnage,
        price_per_ton=rate,
        client_name=client_name,
        project_deliverable=form.project_notes.strip() or None,
        photo=photo,
    )
