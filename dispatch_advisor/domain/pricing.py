"""Pricing rules and the pricing comparison engine.

The rule set is a fixed table of five discount strategies. The engine
applies every rule to one original delivery cost and a customer context,
and picks the cheapest eligible outcome.

Pricing is a pure function of its inputs: the rules are immutable and
built once, so repeated comparisons with the same inputs are identical.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dispatch_advisor.domain.booking import Estimate, EstimateOption
from dispatch_advisor.domain.exceptions import NoEstimateOptionsError

# Adjusted costs never drop below this share of the original cost
MIN_COST_RATIO = 0.5

# Additional discount components, in percentage points
EXTRA_DELIVERY_BONUS = 2.0
HIGH_FREQUENCY_THRESHOLD = 5
HIGH_FREQUENCY_BONUS = 5.0
HIGH_VALUE_THRESHOLD = 1000.0
HIGH_VALUE_BONUS = 3.0

# Volume discount also requires this many orders per month
VOLUME_MIN_FREQUENCY = 3


# ============================================================================
# Enumerations
# ============================================================================


class CustomerTier(str, Enum):
    """Customer loyalty tiers."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class PricingModel(str, Enum):
    """Pricing strategies.

    Declaration order is the tie-break order when two strategies produce
    the same adjusted cost.
    """

    STANDARD = "standard"
    MULTI_DELIVERY = "multi_delivery"
    VOLUME_DISCOUNT = "volume_discount"
    LOYALTY_DISCOUNT = "loyalty_discount"
    BULK_ORDER = "bulk_order"


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class PricingRule:
    """Static descriptor of one pricing strategy."""

    model: PricingModel
    name: str
    description: str
    base_price_multiplier: float
    min_discount: float
    max_discount: float
    volume_threshold: int = 0
    loyalty_tier: CustomerTier | None = None


@dataclass(frozen=True)
class PricingContext:
    """Inputs to a single pricing comparison."""

    delivery_count: int = 0
    customer_tier: CustomerTier = CustomerTier.BRONZE
    order_frequency: int = 0
    total_order_value: float = 0.0
    is_bulk_order: bool = False
    organization_druid: str | None = None


@dataclass(frozen=True)
class PricingResult:
    """Outcome of applying one rule to one original cost."""

    model: PricingModel
    name: str
    original_cost: float
    adjusted_cost: float
    discount: float
    discount_percent: float
    savings: float
    eligible: bool
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model.value,
            "name": self.name,
            "original_cost": round(self.original_cost, 2),
            "adjusted_cost": round(self.adjusted_cost, 2),
            "discount": round(self.discount, 2),
            "discount_percent": round(self.discount_percent, 2),
            "savings": round(self.savings, 2),
            "eligible": self.eligible,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class PricingComparison:
    """Every rule's outcome plus the cheapest eligible one."""

    original_cost: float
    pricing_models: list[PricingResult] = field(default_factory=list)
    best_option: PricingResult | None = None
    savings: float = 0.0
    savings_percentage: float = 0.0
    original_estimate: EstimateOption | None = None

    @property
    def eligible_results(self) -> list[PricingResult]:
        """Results whose rule applies to the context."""
        return [result for result in self.pricing_models if result.eligible]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for tool and API output.

        Returns:
            JSON-compatible dictionary.
        """
        return {
            "original_estimate": (
                self.original_estimate.model_dump() if self.original_estimate else None
            ),
            "original_cost": round(self.original_cost, 2),
            "pricing_models": [result.to_dict() for result in self.pricing_models],
            "best_option": self.best_option.to_dict() if self.best_option else None,
            "savings": round(self.savings, 2),
            "savings_percentage": round(self.savings_percentage, 2),
        }


# ============================================================================
# Rule Set
# ============================================================================


DEFAULT_PRICING_RULES: tuple[PricingRule, ...] = (
    PricingRule(
        model=PricingModel.STANDARD,
        name="Standard Pricing",
        description="Standard pricing with no discounts",
        base_price_multiplier=1.0,
        min_discount=0.0,
        max_discount=0.0,
    ),
    PricingRule(
        model=PricingModel.MULTI_DELIVERY,
        name="Multi-Delivery Discount",
        description="Discount for multiple deliveries in the same order",
        base_price_multiplier=0.85,
        min_discount=5.0,
        max_discount=25.0,
        volume_threshold=2,
    ),
    PricingRule(
        model=PricingModel.VOLUME_DISCOUNT,
        name="Volume Discount",
        description="Discount based on order volume and frequency",
        base_price_multiplier=0.80,
        min_discount=10.0,
        max_discount=30.0,
        volume_threshold=5,
    ),
    PricingRule(
        model=PricingModel.LOYALTY_DISCOUNT,
        name="Loyalty Discount",
        description="Discount for loyal customers",
        base_price_multiplier=0.90,
        min_discount=5.0,
        max_discount=15.0,
        loyalty_tier=CustomerTier.GOLD,
    ),
    PricingRule(
        model=PricingModel.BULK_ORDER,
        name="Bulk Order Discount",
        description="Discount for large bulk orders",
        base_price_multiplier=0.75,
        min_discount=15.0,
        max_discount=40.0,
        volume_threshold=10,
    ),
)


# ============================================================================
# Pricing Engine
# ============================================================================


class PricingEngine:
    """Evaluates the rule set against an original cost and a context."""

    def __init__(self, rules: tuple[PricingRule, ...] = DEFAULT_PRICING_RULES) -> None:
        """Initialize the engine.

        Args:
            rules: Pricing rules; exactly one per pricing model.

        Raises:
            ValueError: If a model is missing or defined twice.
        """
        models = [rule.model for rule in rules]
        if sorted(models) != sorted(PricingModel) or len(set(models)) != len(models):
            raise ValueError("Pricing rules must define each pricing model exactly once")

        order = list(PricingModel)
        self._rules = tuple(sorted(rules, key=lambda rule: order.index(rule.model)))

    @property
    def rules(self) -> tuple[PricingRule, ...]:
        """Rules in pricing model declaration order."""
        return self._rules

    def get_rule(self, model: PricingModel) -> PricingRule:
        for rule in self._rules:
            if rule.model == model:
                return rule
        raise KeyError(model)

    def compare_all(
        self,
        original_cost: float,
        context: PricingContext,
        estimate: EstimateOption | None = None,
    ) -> PricingComparison:
        """Apply every rule and select the cheapest eligible outcome.

        Ties keep the rule that comes first in declaration order.

        Args:
            original_cost: Cost of the delivery before discounts.
            context: Customer context used for eligibility and bonuses.
            estimate: Optional estimate option the cost came from.

        Returns:
            PricingComparison with one result per rule.
        """
        results = [self.calculate(rule, original_cost, context) for rule in self._rules]

        best: PricingResult | None = None
        for result in results:
            if not result.eligible:
                continue
            if best is None or result.adjusted_cost < best.adjusted_cost:
                best = result

        savings = original_cost - best.adjusted_cost if best else 0.0
        return PricingComparison(
            original_cost=original_cost,
            pricing_models=results,
            best_option=best,
            savings=savings,
            savings_percentage=_percent_of(savings, original_cost),
            original_estimate=estimate,
        )

    def compare_estimate(self, estimate: Estimate, context: PricingContext) -> PricingComparison:
        """Compare pricing for the first (fastest) option of an estimate.

        Raises:
            NoEstimateOptionsError: If the estimate has no options.
        """
        if not estimate.available_order_options:
            raise NoEstimateOptionsError()
        option = estimate.available_order_options[0]
        return self.compare_all(option.estimated_order_cost, context, estimate=option)

    def calculate(
        self,
        rule: PricingRule,
        original_cost: float,
        context: PricingContext,
    ) -> PricingResult:
        """Apply a single rule.

        Args:
            rule: Rule to apply.
            original_cost: Cost before discounts.
            context: Customer context.

        Returns:
            PricingResult; ineligible results keep the original cost.
        """
        if not self.is_eligible(rule, context):
            return PricingResult(
                model=rule.model,
                name=rule.name,
                original_cost=original_cost,
                adjusted_cost=original_cost,
                discount=0.0,
                discount_percent=0.0,
                savings=0.0,
                eligible=False,
                reason=self.ineligibility_reason(rule, context),
            )

        adjusted_cost = original_cost * rule.base_price_multiplier
        additional_discount = self.additional_discount(rule, context)
        if additional_discount > 0:
            adjusted_cost -= adjusted_cost * (additional_discount / 100)

        adjusted_cost = max(adjusted_cost, original_cost * MIN_COST_RATIO)
        discount = original_cost - adjusted_cost

        return PricingResult(
            model=rule.model,
            name=rule.name,
            original_cost=original_cost,
            adjusted_cost=adjusted_cost,
            discount=discount,
            discount_percent=_percent_of(discount, original_cost),
            savings=discount,
            eligible=True,
        )

    @staticmethod
    def is_eligible(rule: PricingRule, context: PricingContext) -> bool:
        if rule.model == PricingModel.STANDARD:
            return True
        if rule.model == PricingModel.MULTI_DELIVERY:
            return context.delivery_count >= rule.volume_threshold
        if rule.model == PricingModel.VOLUME_DISCOUNT:
            return (
                context.delivery_count >= rule.volume_threshold
                and context.order_frequency >= VOLUME_MIN_FREQUENCY
            )
        if rule.model == PricingModel.LOYALTY_DISCOUNT:
            return context.customer_tier == rule.loyalty_tier
        if rule.model == PricingModel.BULK_ORDER:
            return context.is_bulk_order and context.delivery_count >= rule.volume_threshold
        raise ValueError(f"Unknown pricing model: {rule.model}")

    @staticmethod
    def ineligibility_reason(rule: PricingRule, context: PricingContext) -> str:
        """Describe the shortfall that makes a rule ineligible."""
        if rule.model == PricingModel.MULTI_DELIVERY:
            return (
                f"Requires {rule.volume_threshold}+ deliveries, "
                f"you have {context.delivery_count}"
            )
        if rule.model == PricingModel.VOLUME_DISCOUNT:
            return (
                f"Requires {rule.volume_threshold}+ deliveries and "
                f"{VOLUME_MIN_FREQUENCY}+ orders/month, you have "
                f"{context.delivery_count} deliveries and "
                f"{context.order_frequency} orders/month"
            )
        if rule.model == PricingModel.LOYALTY_DISCOUNT and rule.loyalty_tier:
            return (
                f"Requires {rule.loyalty_tier.value} tier, "
                f"you are {CustomerTier(context.customer_tier).value}"
            )
        if rule.model == PricingModel.BULK_ORDER:
            return (
                f"Requires bulk order with {rule.volume_threshold}+ deliveries, "
                f"you have {context.delivery_count}"
            )
        return "Not eligible for this pricing model"

    @staticmethod
    def additional_discount(rule: PricingRule, context: PricingContext) -> float:
        """Percentage points stacked on top of the base multiplier.

        Capped at the rule's maximum discount.
        """
        additional = 0.0

        if context.delivery_count > rule.volume_threshold:
            extra_deliveries = context.delivery_count - rule.volume_threshold
            additional += extra_deliveries * EXTRA_DELIVERY_BONUS

        if context.order_frequency > HIGH_FREQUENCY_THRESHOLD:
            additional += HIGH_FREQUENCY_BONUS

        if context.total_order_value > HIGH_VALUE_THRESHOLD:
            additional += HIGH_VALUE_BONUS

        return min(additional, rule.max_discount)


def _percent_of(amount: float, total: float) -> float:
    """Percentage of total, 0 when total is not positive."""
    if total <= 0:
        return 0.0
    return amount / total * 100
