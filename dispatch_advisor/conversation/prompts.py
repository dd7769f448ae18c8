"""System prompt for the conversational AI."""

from dispatch_advisor.domain.conversation import ConversationContext, StopInfo
from dispatch_advisor.domain.pricing import PricingContext, PricingRule

ROLE_INSTRUCTIONS = """You are a delivery order creation assistant. Your role is to help customers create delivery orders efficiently while finding them the best pricing.

Your Role:
- Guide customers through order creation step by step
- Collect required information: pickup location, delivery locations, contact details
- Explain pricing options clearly with specific savings
- Be direct and efficient: focus on order creation, not marketing"""

CONVERSATION_RULES = """Required Information for Order Creation:
- Pickup Location: business name, address, contact name, phone number
- Delivery Locations: each delivery needs business name, address, contact name, phone
- Vehicle and Services: vehicle type and any special services
- Timing: when pickup and delivery should happen

IMPORTANT: Ask ONE question at a time. Guide the user step by step.

Never invent prices or discounts: only quote the pricing models listed above.
Remember: your goal is to collect everything needed to create the delivery order while helping the customer get the best pricing."""


def _describe_rule(rule: PricingRule) -> str:
    discount = round((1 - rule.base_price_multiplier) * 100)
    requirements = []
    if rule.volume_threshold:
        requirements.append(f"{rule.volume_threshold}+ deliveries")
    if rule.loyalty_tier is not None:
        requirements.append(f"{rule.loyalty_tier.value} tier")
    suffix = f" ({', '.join(requirements)})" if requirements else ""
    return f"- {rule.name}: {discount}% off{suffix}. {rule.description}"


def _describe_stop(label: str, stop: StopInfo) -> list[str]:
    lines = [f"- {label}:"]
    if stop.business_name:
        lines.append(f"  - Business: {stop.business_name}")
    if stop.contact_name:
        lines.append(f"  - Contact: {stop.contact_name}")
    if stop.contact_phone:
        lines.append(f"  - Phone: {stop.contact_phone}")
    if stop.address is not None:
        lines.append(f"  - Address: {stop.address.one_line()}")
    return lines


def format_order_information(context: ConversationContext) -> str:
    """Describe the order collected so far."""
    state = context.order_creation
    if not state.in_progress:
        return "- No order in progress"

    lines: list[str] = []
    if state.pickup_info is not None:
        lines.extend(_describe_stop("Pickup Location", state.pickup_info))

    if state.drop_offs:
        for index, drop_off in enumerate(state.drop_offs, start=1):
            lines.extend(_describe_stop(f"Delivery {index}", drop_off))
    else:
        lines.append("- Delivery Locations: None collected yet")

    if state.vehicle_type is not None:
        lines.append(f"- Vehicle: {state.vehicle_type.value}")
    if state.capabilities:
        lines.append(f"- Special Services: {', '.join(state.capabilities)}")
    return "\n".join(lines)


def build_system_prompt(
    context: ConversationContext,
    pricing_context: PricingContext,
    rules: tuple[PricingRule, ...],
) -> str:
    """Build the system prompt for one turn.

    Args:
        context: Updated conversation context.
        pricing_context: Pricing snapshot used for this turn.
        rules: Pricing rules to describe.

    Returns:
        Prompt text: role, pricing table, customer context, order progress
        and conversation rules.
    """
    state = context.order_creation
    sections = [
        ROLE_INSTRUCTIONS,
        "Available Pricing Models:\n" + "\n".join(_describe_rule(rule) for rule in rules),
        (
            "Current Customer Context:\n"
            f"- Delivery Count: {pricing_context.delivery_count}\n"
            f"- Customer Tier: {pricing_context.customer_tier.value} (bronze/silver/gold)\n"
            f"- Order Frequency: {pricing_context.order_frequency} orders/month\n"
            f"- Total Order Value: ${pricing_context.total_order_value:.2f}\n"
            f"- Is Bulk Order: {pricing_context.is_bulk_order}"
        ),
        (
            "Current Order Creation Progress:\n"
            f"- In Progress: {state.in_progress}\n"
            f"- Current Step: {state.step.value}\n"
            f"- Current Question: {state.current_question.value if state.current_question else ''}\n"
            f"- Completed Fields: {', '.join(state.completed_fields) or 'none'}\n"
            f"- Missing Fields: {', '.join(state.missing_fields) or 'none'}"
        ),
        "Collected Order Information:\n" + format_order_information(context),
    ]
    sections.append(CONVERSATION_RULES)
    return "\n\n".join(sections)
