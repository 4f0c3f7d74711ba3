import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    validation = "validation"
    not_found = "not_found"
    state_conflict = "state_conflict"
    consistency = "consistency"


class ErrorCode(str, enum.Enum):
    # Price tier table
    empty_table = "EmptyTable"
    non_positive_price = "NonPositivePrice"
    invalid_range = "InvalidRange"
    sequence_gap = "SequenceGap"
    missing_terminator = "MissingTerminator"
    no_matching_tier = "NoMatchingTier"

    # Pricing configuration
    missing_pricing_field = "MissingPricingField"
    invalid_pricing = "InvalidPricing"
    invalid_pricing_mode = "InvalidPricingMode"

    # Contract preconditions
    room_not_found = "RoomNotFound"
    room_not_available = "RoomNotAvailable"
    tenant_specification_invalid = "TenantSpecificationInvalid"
    tenant_not_found = "TenantNotFound"
    tenant_not_active = "TenantNotActive"
    incomplete_new_tenant = "IncompleteNewTenant"
    invalid_deposit = "InvalidDeposit"
    missing_start_date = "MissingStartDate"
    invalid_date_range = "InvalidDateRange"
    invalid_service_charge = "InvalidServiceCharge"
    service_not_found = "ServiceNotFound"
    service_mismatch = "ServiceMismatch"

    # Contract lifecycle
    contract_not_found = "NotFound"
    not_draft = "NotDraft"
    only_draft_editable = "OnlyDraftEditable"
    only_draft_deletable = "OnlyDraftDeletable"
    invalid_transition = "InvalidTransition"

    # Invoices and payments
    negative_usage = "NegativeUsage"
    invoice_not_found = "InvoiceNotFound"
    invalid_amount = "InvalidAmount"
    invalid_billing_period = "InvalidBillingPeriod"
    duplicate_invoice = "DuplicateInvoice"
    contract_not_billable = "ContractNotBillable"
    payment_not_found = "PaymentNotFound"
    invalid_payment_method = "InvalidPaymentMethod"

    # Directories
    building_not_found = "BuildingNotFound"
    building_in_use = "BuildingInUse"
    room_in_use = "RoomInUse"
    room_status_locked = "RoomStatusLocked"
    tenant_status_locked = "TenantStatusLocked"
    tenant_in_use = "TenantInUse"

    # Consistency
    side_effect_failed = "SideEffectFailed"


class RentalError(ValueError):
    """
    Base error of the rental core.
    Subclasses ValueError so callers that catch ValueError keep working.
    """
    kind = ErrorKind.validation

    def __init__(self, code: ErrorCode, message: str = "", index: Optional[int] = None, field: Optional[str] = None):
        self.code = code
        self.message = message or code.value
        self.index = index
        self.field = field
        super().__init__(self.message)

    def __repr__(self):
        extra = ""
        if self.index is not None:
            extra += f", index={self.index}"
        if self.field:
            extra += f", field={self.field}"
        return f"{type(self).__name__}({self.code.value}{extra})"


class ValidationFailed(RentalError):
    kind = ErrorKind.validation


class NotFound(RentalError):
    kind = ErrorKind.not_found


class StateConflict(RentalError):
    kind = ErrorKind.state_conflict


class ConsistencyError(RentalError):
    """A committed write was not followed by its dependent room/tenant writes."""
    kind = ErrorKind.consistency
