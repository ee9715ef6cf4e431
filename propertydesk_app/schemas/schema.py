from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing_extensions import Annotated

from core.exceptions import InvalidInputError
from models.enums import (
    MaintenanceCategory,
    MaintenancePriority,
    MaintenanceStatus,
    NotificationType,
    PaymentLinkStatus,
    PaymentMethod,
    PaymentStatus,
    UnitStatus,
)

Amount = Annotated[Decimal, Field(max_digits=10, decimal_places=3)]
PositiveAmount = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=3)]


class PartialUpdate(BaseModel):
    """Body where only the fields the caller sends are applied.

    An explicit ``null`` is only accepted for columns listed in
    ``nullable_fields``; anywhere else it is a client error, not a request to
    write NULL.
    """

    nullable_fields: ClassVar[frozenset] = frozenset()

    def changes(self) -> dict:
        values = self.model_dump(exclude_unset=True)
        nulls = sorted(
            k for k, v in values.items() if v is None and k not in self.nullable_fields
        )
        if nulls:
            raise InvalidInputError(f"{', '.join(nulls)} cannot be null")
        return values


class TenancyCreate(BaseModel):
    unit_id: int
    tenant_id: int
    start_date: date
    end_date: Optional[date] = None
    monthly_rent: PositiveAmount
    deposit_amount: Amount = Decimal("0")

    @field_validator("deposit_amount")
    @classmethod
    def validate_deposit(cls, value: Decimal):
        if value < 0:
            raise ValueError("Deposit amount cannot be negative.")
        return value


class TenancyUpdate(PartialUpdate):
    nullable_fields = frozenset({"end_date"})

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: Optional[PositiveAmount] = None
    deposit_amount: Optional[Amount] = None
    is_active: Optional[bool] = None


class TenancyOut(BaseModel):
    id: int
    unit_id: int
    tenant_id: int
    start_date: date
    end_date: Optional[date] = None
    monthly_rent: Decimal
    deposit_amount: Decimal
    is_active: bool
    created_at: Optional[datetime] = None

    unit_number: Optional[str] = None
    building_id: Optional[int] = None
    building_name: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_email: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record) -> "TenancyOut":
        out = cls.model_validate(record.tenancy)
        return out.model_copy(
            update={
                "unit_number": record.unit.unit_number,
                "building_id": record.building.id,
                "building_name": record.building.name,
                "tenant_name": record.tenant.full_name,
                "tenant_email": record.tenant.email,
            }
        )


class PaymentOut(BaseModel):
    id: int
    tenancy_id: int
    month: int
    year: int
    amount: Decimal
    status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    tahseeel_order_no: Optional[str] = None
    tahseeel_hash: Optional[str] = None
    tahseeel_inv_id: Optional[str] = None
    tahseeel_payment_link: Optional[str] = None
    tahseeel_tx_id: Optional[str] = None
    tahseeel_payment_id: Optional[str] = None
    tahseeel_result: Optional[str] = None
    tahseeel_tx_status: Optional[str] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    unit_number: Optional[str] = None
    building_id: Optional[int] = None
    building_name: Optional[str] = None
    tenant_id: Optional[int] = None
    tenant_name: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record) -> "PaymentOut":
        out = cls.model_validate(record.payment)
        return out.model_copy(
            update={
                "unit_number": record.unit.unit_number,
                "building_id": record.building.id,
                "building_name": record.building.name,
                "tenant_id": record.tenant.id,
                "tenant_name": record.tenant.full_name,
            }
        )


class PaymentUpdate(PartialUpdate):
    nullable_fields = frozenset({"payment_method", "paid_at", "notes"})

    status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    amount: Optional[PositiveAmount] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class GeneratePaymentsIn(BaseModel):
    month: int
    year: int


class GeneratePaymentsOut(BaseModel):
    message: str
    created: int
    overdue_marked: int


class CreateLinkOut(BaseModel):
    payment_id: int
    link: str
    order_no: str


class CallbackResult(BaseModel):
    success: bool
    payment_id: Optional[int] = None
    status: Optional[PaymentStatus] = None
    error: Optional[str] = None


class PaymentLinkCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    amount: PositiveAmount
    customer_email: Optional[EmailStr] = None
    customer_mobile: Optional[str] = Field(default=None, max_length=20)
    remarks: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class PaymentLinkOut(BaseModel):
    id: int
    order_no: str
    cust_name: str
    amount: Decimal
    payment_url: Optional[str] = None
    status: PaymentLinkStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UnitUpdate(PartialUpdate):
    nullable_fields = frozenset({"floor"})

    unit_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    floor: Optional[int] = None
    rent_amount: Optional[PositiveAmount] = None
    status: Optional[UnitStatus] = None


class UnitOut(BaseModel):
    id: int
    building_id: int
    unit_number: str
    floor: Optional[int] = None
    rent_amount: Decimal
    status: UnitStatus

    model_config = {"from_attributes": True}


class UnitCreate(BaseModel):
    building_id: int
    unit_number: str = Field(min_length=1, max_length=20)
    floor: Optional[int] = None
    rent_amount: PositiveAmount

    @field_validator("unit_number", mode="before")
    @classmethod
    def strip_unit_number(cls, value):
        return value.strip() if isinstance(value, str) else value


class BuildingCreate(BaseModel):
    owner_id: int
    name: str = Field(min_length=2, max_length=100)
    address: str = Field(min_length=5, max_length=255)
    city: str = Field(min_length=2, max_length=100)
    country: str = Field(default="Kuwait", min_length=2, max_length=100)


class BuildingUpdate(PartialUpdate):
    owner_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    address: Optional[str] = Field(default=None, min_length=5, max_length=255)
    city: Optional[str] = Field(default=None, min_length=2, max_length=100)
    country: Optional[str] = Field(default=None, min_length=2, max_length=100)


class BuildingOut(BaseModel):
    id: int
    owner_id: int
    name: str
    address: str
    city: str
    country: str
    total_units: int = 0
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_row(cls, building, total_units: int) -> "BuildingOut":
        return cls.model_validate(building).model_copy(
            update={"total_units": total_units or 0}
        )


class MaintenanceCreate(BaseModel):
    # Falls back to the tenant's first active unit when omitted.
    unit_id: Optional[int] = None
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=2000)
    category: MaintenanceCategory = MaintenanceCategory.OTHER
    priority: MaintenancePriority = MaintenancePriority.MEDIUM

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class MaintenanceUpdate(PartialUpdate):
    nullable_fields = frozenset({"resolution_notes"})

    status: Optional[MaintenanceStatus] = None
    priority: Optional[MaintenancePriority] = None
    resolution_notes: Optional[str] = Field(default=None, max_length=2000)


class MaintenanceOut(BaseModel):
    id: int
    unit_id: int
    tenant_id: int
    title: str
    description: str
    category: MaintenanceCategory
    priority: MaintenancePriority
    status: MaintenanceStatus
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    unit_number: Optional[str] = None
    building_id: Optional[int] = None
    building_name: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_email: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record) -> "MaintenanceOut":
        out = cls.model_validate(record.request)
        return out.model_copy(
            update={
                "unit_number": record.unit.unit_number,
                "building_id": record.building.id,
                "building_name": record.building.name,
                "tenant_name": record.tenant.full_name,
                "tenant_email": record.tenant.email,
            }
        )


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: NotificationType
    is_read: bool
    link: Optional[str] = None
    metadata: Optional[dict] = Field(default=None, validation_alias="extra")
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BuildingSummaryRowOut(BaseModel):
    tenancy_id: int
    unit_id: int
    unit_number: str
    tenant_id: int
    tenant_name: str
    monthly_rent: Decimal
    payment_id: Optional[int] = None
    payment_status: str
    amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None


class BuildingSummaryOut(BaseModel):
    building_id: int
    building_name: str
    month: int
    year: int
    total_tenants: int
    total_expected: Decimal
    total_paid: Decimal
    total_pending: int
    total_overdue: int
    paid_count: int
    rows: List[BuildingSummaryRowOut]
