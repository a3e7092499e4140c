"""
Payout notice formatting.

Renders lifecycle notices as Markdown text for chat delivery.
"""

from datetime import datetime
from typing import Any

from settlement.models.enums import NoticeType
from settlement.models.partner import Partner
from settlement.services.fees import FeeBreakdown


def format_cents(amount_cents: int, currency: str = "usd") -> str:
    """Format cents as a currency string, e.g. 4925 -> "49.25 USD"."""
    sign = "-" if amount_cents < 0 else ""
    whole, cents = divmod(abs(amount_cents), 100)
    return f"{sign}{whole}.{cents:02d} {currency.upper()}"


_TITLES = {
    NoticeType.PROCESSING.value: "⏳ **Payout is processing**",
    NoticeType.COMPLETED.value: "✅ **Payout completed**",
    NoticeType.FAILED.value: "❌ **Payout failed**",
    NoticeType.CANCELLED.value: "🚫 **Payout cancelled**",
}


def format_payout_notice(
    partner: Partner,
    breakdown: FeeBreakdown,
    status: str,
    extra: dict[str, Any],
) -> str:
    """
    Build notice text.

    Args:
        partner: Notified partner
        breakdown: Payout amounts
        status: Notice type (processing, completed, failed, cancelled)
        extra: payout_id, currency, estimated_arrival, transaction_id, reason

    Returns:
        Markdown text
    """
    currency = extra.get("currency", "usd")
    lines = [
        _TITLES.get(status, f"**Payout {status}**"),
        "",
        f"Hi {partner.name},",
        "",
        f"💰 Amount: {format_cents(breakdown.gross_amount, currency)}",
        f"📉 Fees: {format_cents(breakdown.total_fees, currency)}",
        f"💵 Net: {format_cents(breakdown.net_amount, currency)}",
    ]

    payout_id = extra.get("payout_id")
    if payout_id:
        lines.append(f"🆔 Payout: `{payout_id}`")

    arrival = extra.get("estimated_arrival")
    if isinstance(arrival, datetime):
        lines.append(f"📅 Estimated arrival: {arrival:%Y-%m-%d}")

    transaction_id = extra.get("transaction_id")
    if transaction_id:
        lines.append(f"🔗 Transaction: `{transaction_id}`")

    reason = extra.get("reason")
    if reason:
        lines.append(f"⚠️ Reason: {reason}")

    return "\n".join(lines)
