"""
Public entry points of the rental core.

Each operation returns an OperationResult instead of raising for expected
outcomes: `value` on success, `error` (a RentalError carrying kind and code)
on rejection. Unexpected exceptions propagate unchanged.
"""
import functools
import logging
from typing import Any, NamedTuple, Optional

from roomrent.services import contract_service, invoice_service, payment_service
from roomrent.services.errors import RentalError, ErrorKind
from roomrent.services.price_tiers import validate_price_tiers, evaluate_price_tiers


class OperationResult(NamedTuple):
    value: Any = None
    error: Optional[RentalError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def as_result(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> OperationResult:
        try:
            return OperationResult(value=await func(*args, **kwargs))
        except RentalError as e:
            if e.kind == ErrorKind.consistency:
                logging.error(f"CONSISTENCY: {func.__name__} failed: {e.message}")
            else:
                logging.info(f"{func.__name__} rejected: {e.kind.value}/{e.code.value}: {e.message}")
            return OperationResult(error=e)
    return wrapper


create_contract = as_result(contract_service.create_contract)
activate_contract = as_result(contract_service.activate_contract)
update_contract = as_result(contract_service.update_contract)
remove_contract = as_result(contract_service.remove_contract)
terminate_contract = as_result(contract_service.terminate_contract)
create_invoice = as_result(invoice_service.create_invoice)
build_invoice_for_contract = as_result(invoice_service.build_invoice_for_contract)
apply_invoice_payment = as_result(invoice_service.apply_invoice_payment)
update_invoice = as_result(invoice_service.update_invoice)
remove_invoice = as_result(invoice_service.remove_invoice)
record_payment = as_result(payment_service.record_payment)
remove_payment = as_result(payment_service.remove_payment)


def check_price_tiers(tiers) -> OperationResult:
    """Tier validation in result form, for room and service forms."""
    err = validate_price_tiers(tiers)
    return OperationResult(value=err is None, error=err)


def price_for_usage(tiers, usage: float) -> OperationResult:
    try:
        return OperationResult(value=evaluate_price_tiers(tiers, usage))
    except RentalError as e:
        return OperationResult(error=e)
