from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from typing import List, Tuple

# ========== UI Constants ==========
class UIEmojis:
    # Property
    BUILDING = "🏢"
    ROOM = "🚪"
    KEY = "🔑"
    TENANT = "👤"

    # Paperwork
    CONTRACT = "📄"
    INVOICE = "🧾"
    PAYMENT = "💳"
    MONEY = "💰"
    CALENDAR = "📅"

    # Meters
    ELECTRIC = "⚡"
    WATER = "💧"

    # Feedback
    SUCCESS = "✅"
    CANCEL = "❌"
    WARNING = "⚠️"
    INFO = "ℹ️"


class UIMessages:
    """HTML snippets shared by contract and invoice cards"""

    DIVIDER = "━" * 24

    @staticmethod
    def header(title: str, emoji: str = "") -> str:
        icon = f"{emoji} " if emoji else ""
        return f"\n{icon}<b>{title}</b>\n{UIMessages.DIVIDER}\n"

    @staticmethod
    def section(title: str) -> str:
        return f"\n<b>▪️ {title}</b>\n"

    @staticmethod
    def field(name: str, value: str, emoji: str = "") -> str:
        prefix = f"{emoji} " if emoji else "• "
        return f"{prefix}<b>{name}:</b> {value}\n"

    @staticmethod
    def success(text: str) -> str:
        return f"{UIEmojis.SUCCESS} {text}"

    @staticmethod
    def error(text: str) -> str:
        return f"{UIEmojis.CANCEL} {text}"

    @staticmethod
    def warning(text: str) -> str:
        return f"{UIEmojis.WARNING} {text}"


class UIKeyboards:
    @staticmethod
    def menu_grid(items: List[Tuple[str, str]], columns: int = 2) -> InlineKeyboardMarkup:
        """Inline keyboard from (text, callback_data) pairs, `columns` buttons per row."""
        buttons = [InlineKeyboardButton(text=text, callback_data=callback) for text, callback in items]
        rows = [buttons[i:i + columns] for i in range(0, len(buttons), columns)]
        return InlineKeyboardMarkup(inline_keyboard=rows)


# === Helper Functions ===

def format_amount(amount: float) -> str:
    """Format amount with currency symbol"""
    if amount is None:
        return "—"
    return f"{amount:,.0f} ₫".replace(",", ".")


def format_date(date_obj) -> str:
    if not date_obj:
        return "—"
    return date_obj.strftime("%d/%m/%Y")


def get_status_badge(status: str) -> str:
    """Get status badge emoji"""
    badges = {
        "DRAFT": "📝",
        "ACTIVE": "🟢",
        "EXPIRED": "📦",
        "TERMINATED": "⛔",
        "PENDING": "🟡",
        "PARTIAL": "🟠",
        "PAID": "✅",
        "OVERDUE": "🔴",
    }
    return badges.get(status, "⚪")


def format_contract(contract) -> str:
    text = UIMessages.header(f"Contract {contract.code}", UIEmojis.CONTRACT)
    text += UIMessages.field("Status", f"{get_status_badge(contract.status)} {contract.status}")
    text += UIMessages.field("Room", str(contract.room_id), UIEmojis.ROOM)
    text += UIMessages.field("Tenant", str(contract.tenant_id), UIEmojis.TENANT)
    text += UIMessages.field("Period", f"{format_date(contract.start_date)} – {format_date(contract.end_date)}", UIEmojis.CALENDAR)
    text += UIMessages.field("Deposit", format_amount(contract.deposit_amount), UIEmojis.MONEY)

    pricing = contract.pricing or {}
    mode = pricing.get("mode", "")
    if mode == "LONG_TERM":
        text += UIMessages.field("Rent", format_amount(pricing.get("rentPrice")))
        text += UIMessages.field("Electricity", f"{format_amount(pricing.get('electricityPrice'))}/kWh", UIEmojis.ELECTRIC)
        text += UIMessages.field("Water", f"{format_amount(pricing.get('waterPrice'))}/m³", UIEmojis.WATER)
    elif mode:
        text += UIMessages.field("Pricing", mode.replace("_", " ").lower())

    charges = contract.service_charges or []
    if charges:
        text += UIMessages.section("Services")
        for c in charges:
            qty = c.get("quantity") or 1
            text += f"• {c.get('name')}: {format_amount(c.get('amount'))} × {qty:g}\n"
    return text


def format_invoice(invoice) -> str:
    text = UIMessages.header(f"Invoice {invoice.invoice_number}", UIEmojis.INVOICE)
    text += UIMessages.field("Period", f"{invoice.billing_month:02d}/{invoice.billing_year}", UIEmojis.CALENDAR)
    text += UIMessages.field("Status", f"{get_status_badge(invoice.status)} {invoice.status}")
    text += UIMessages.field("Rent", format_amount(invoice.rent_amount))
    text += UIMessages.field(
        "Electricity",
        f"{invoice.previous_electric_index:g} → {invoice.current_electric_index:g} = {format_amount(invoice.electricity_amount)}",
        UIEmojis.ELECTRIC
    )
    text += UIMessages.field(
        "Water",
        f"{invoice.previous_water_index:g} → {invoice.current_water_index:g} = {format_amount(invoice.water_amount)}",
        UIEmojis.WATER
    )
    for line in invoice.service_charges or []:
        text += f"• {line.get('name')}: {format_amount(line.get('amount'))}\n"
    text += UIMessages.section("Totals")
    text += UIMessages.field("Total", format_amount(invoice.total_amount), UIEmojis.MONEY)
    text += UIMessages.field("Paid", format_amount(invoice.paid_amount), UIEmojis.PAYMENT)
    text += UIMessages.field("Remaining", format_amount(invoice.remaining_amount))
    text += UIMessages.field("Due", format_date(invoice.due_date), UIEmojis.CALENDAR)
    return text
