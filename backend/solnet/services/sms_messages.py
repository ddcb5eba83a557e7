# Overview: Text builders for repair-ticket SMS and campaign placeholder substitution.

from __future__ import annotations

from datetime import timedelta

from solnet.time_utils import utcnow


STATUS_SENTENCES = {
    "registered": "Your device has been registered for repair.",
    "diagnosed": "Your device has been diagnosed and we're preparing the repair plan.",
    "in_progress": "We're now working on your device repair.",
    "waiting_parts": "We're waiting for parts to arrive to complete your repair.",
    "completed": "Your device repair has been completed successfully!",
    "ready_for_pickup": "Your device is ready for pickup! Please visit us to collect it.",
    "delivered": "Your device has been delivered. Thank you for choosing our service!",
    "cancelled": "Your device repair has been cancelled. Please contact us for more information.",
}

DEFAULT_STATUS_SENTENCE = "Your device status has been updated."


def format_money(cents: int | None) -> str:
    if cents is None:
        return ""
    return f"{cents / 100:,.2f}"


def _device_line(device) -> str:
    parts = [p for p in (device.device_type_name, device.brand_name, device.model_name) if p]
    return " ".join(parts) if parts else "Device"


def device_registration_message(device, customer_name: str) -> str:
    return (
        "Device Registration Confirmed\n\n"
        f"Dear {customer_name},\n\n"
        "Your device has been successfully registered for repair service.\n"
        f"Device: {_device_line(device)}\n"
        f"Problem: {device.problem_description}\n\n"
        f"Tracking Number: {device.receipt_number}\n\n"
        "You can track your device status using the tracking number above."
    )


def status_update_message(device, customer_name: str) -> str:
    if device.status == "ready_for_pickup":
        return ready_for_pickup_message(device, customer_name)

    sentence = STATUS_SENTENCES.get(device.status, DEFAULT_STATUS_SENTENCE)
    lines = [
        "Device Status Update",
        "",
        f"Dear {customer_name},",
        "",
        sentence,
        "",
        f"Tracking Number: {device.receipt_number}",
        f"Device: {_device_line(device)}",
    ]
    if device.total_cost_cents:
        lines.append(f"Total Cost: {format_money(device.total_cost_cents)}")
    return "\n".join(lines)


def ready_for_pickup_message(device, customer_name: str) -> str:
    cost = f"\nTotal Cost: {format_money(device.total_cost_cents)}" if device.total_cost_cents else ""
    return (
        "Device Ready for Pickup!\n\n"
        f"Dear {customer_name},\n\n"
        "Your device repair is complete and ready for pickup!\n"
        f"Device: {_device_line(device)}\n"
        f"Tracking Number: {device.receipt_number}{cost}\n\n"
        "Please bring your tracking number when picking up your device."
    )


def render_campaign_message(template: str, *, customer_name: str, business_name: str = "", now=None) -> str:
    """
    Fill campaign placeholders.

    {customerName} -> customer name
    {endDate}      -> today + 7 days (YYYY-MM-DD), for limited-time offers
    {businessName} -> business profile name
    """
    now = now or utcnow()
    end_date = (now + timedelta(days=7)).date().isoformat()
    return (
        template
        .replace("{customerName}", customer_name or "")
        .replace("{endDate}", end_date)
        .replace("{businessName}", business_name or "")
    )
