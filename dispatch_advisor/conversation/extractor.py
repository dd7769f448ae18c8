"""Intent and entity extraction.

Keyword and regex heuristics that turn a free-text message into an
intent, a handful of entities, and optionally a parsed address block.

Pattern order matters and is part of the behavior:
- intent categories are tested in INTENT_PATTERNS order, first match wins
- tier detection checks gold, then silver, then bronze
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from dispatch_advisor.domain.booking import AddressInput

MATCH_CONFIDENCE = 0.8
FALLBACK_CONFIDENCE = 0.5


class IntentType(str, Enum):
    """Recognized user intents."""

    COMPARE_PRICING = "compare_pricing"
    GET_RECOMMENDATION = "get_recommendation"
    EXPLORE_OPTIONS = "explore_options"
    DELIVERY_REQUIREMENTS = "delivery_requirements"
    CUSTOMER_TIER = "customer_tier"
    VOLUME_QUESTIONS = "volume_questions"
    GENERAL_INQUIRY = "general_inquiry"


INTENT_PATTERNS: tuple[tuple[IntentType, tuple[str, ...]], ...] = (
    (
        IntentType.COMPARE_PRICING,
        (r"compare.*pricing", r"what.*pricing.*options", r"show.*me.*pricing", r"pricing.*models"),
    ),
    (
        IntentType.GET_RECOMMENDATION,
        (r"what.*best.*pricing", r"recommend.*pricing", r"which.*pricing.*best", r"best.*option"),
    ),
    (
        IntentType.EXPLORE_OPTIONS,
        (r"explore.*pricing", r"what.*options.*available", r"show.*me.*options", r"pricing.*choices"),
    ),
    (
        IntentType.DELIVERY_REQUIREMENTS,
        (r"need.*deliver", r"deliver.*to", r"pickup.*from", r"delivery.*count"),
    ),
    (
        IntentType.CUSTOMER_TIER,
        (r"gold.*tier", r"silver.*tier", r"bronze.*tier", r"loyalty.*tier"),
    ),
    (
        IntentType.VOLUME_QUESTIONS,
        (r"how.*many.*deliver", r"delivery.*count", r"multiple.*deliver", r"bulk.*order"),
    ),
)

DELIVERY_KEYWORDS = frozenset({
    "deliver", "delivery", "deliveries",
    "package", "packages",
    "shipment", "shipments",
    "drop", "drops",
})

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

TIER_KEYWORDS = ("gold", "silver", "bronze")

STREET_KEYWORD_PATTERN = re.compile(
    r"\b(drive|street|avenue|road|lane|way|blvd|boulevard|st|ave|rd|ln|pkwy|parkway)\b\.?",
    re.IGNORECASE,
)
FIVE_DIGIT_PATTERN = re.compile(r"\b\d{5}\b")
HOUSE_NUMBER_PATTERN = re.compile(r"^\d+[a-zA-Z]?\s+\S")
ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
STATE_ZIP_PATTERN = re.compile(r"^([A-Za-z][A-Za-z .]*?)\s+(\d{5}(?:-\d{4})?)$")
PHONE_CHARS_PATTERN = re.compile(r"^[\d\s().+-]+$")

MIN_BLOCK_PARTS = 4
PHONE_MIN_DIGITS = 7

STATE_CODES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "calif": "CA", "colorado": "CO", "connecticut": "CT",
    "delaware": "DE", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME",
    "maryland": "MD", "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
    "mississippi": "MS", "missouri": "MO", "montana": "MT", "nebraska": "NE",
    "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI",
    "south carolina": "SC", "south dakota": "SD", "tennessee": "TN", "texas": "TX",
    "utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
    "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
    "district of columbia": "DC", "washington dc": "DC", "washington d.c.": "DC", "dc": "DC",
}


@dataclass
class Intent:
    """Classification of a single message."""

    type: IntentType
    entities: dict[str, str] = field(default_factory=dict)
    confidence: float = FALLBACK_CONFIDENCE


@dataclass
class ParsedAddressBlock:
    """Business, contact, address and phone parsed from one message."""

    address: AddressInput
    business_name: str = ""
    contact_name: str = ""
    contact_phone: str = ""


def normalize_state(value: str) -> str:
    """Normalize a state name or abbreviation to its 2-letter code.

    Unknown 2-letter values are upper-cased; anything else is returned
    unchanged.
    """
    cleaned = value.strip()
    code = STATE_CODES.get(cleaned.lower().rstrip("."))
    if code:
        return code
    if len(cleaned) == 2:
        return cleaned.upper()
    return cleaned


def _parse_number(token: str) -> int | None:
    if token in NUMBER_WORDS:
        return NUMBER_WORDS[token]
    if token.isdigit() and 1 <= int(token) <= 10:
        return int(token)
    return None


def _phone_digits(part: str) -> int:
    if not PHONE_CHARS_PATTERN.match(part):
        return 0
    return sum(ch.isdigit() for ch in part)


class IntentExtractor:
    """Heuristic intent/entity extractor.

    Kept behind a small interface (extract_intent, extract_entities,
    parse_address, extract_address_block) so it can be replaced by a
    proper NLU component.
    """

    def __init__(self) -> None:
        self._patterns = [
            (intent_type, [re.compile(pattern) for pattern in patterns])
            for intent_type, patterns in INTENT_PATTERNS
        ]

    # =========================================================================
    # Intents and entities
    # =========================================================================

    def extract_intent(self, text: str) -> Intent:
        """Classify a message.

        Args:
            text: Raw user message.

        Returns:
            Intent with entities; general_inquiry when nothing matches.
        """
        lowered = text.lower()
        entities = self.extract_entities(text)

        for intent_type, patterns in self._patterns:
            if any(pattern.search(lowered) for pattern in patterns):
                return Intent(type=intent_type, entities=entities, confidence=MATCH_CONFIDENCE)

        return Intent(
            type=IntentType.GENERAL_INQUIRY,
            entities=entities,
            confidence=FALLBACK_CONFIDENCE,
        )

    def extract_entities(self, text: str) -> dict[str, str]:
        """Pull structured facts out of a message.

        Each heuristic runs independently, so several can fire on one
        message.
        """
        lowered = text.lower()
        entities: dict[str, str] = {}

        count = self.extract_delivery_count(lowered)
        if count is not None:
            entities["delivery_count"] = str(count)

        for tier in TIER_KEYWORDS:
            if tier in lowered:
                entities["customer_tier"] = tier
                break

        if "month" in lowered:
            if "5" in lowered:
                entities["order_frequency"] = "5"
            elif "10" in lowered:
                entities["order_frequency"] = "10"

        if "cargo" in lowered:
            entities["vehicle_type"] = "cargo_van"
        elif "sprinter" in lowered:
            entities["vehicle_type"] = "sprinter_van"

        if "bulk" in lowered:
            entities["is_bulk_order"] = "true"

        return entities

    @staticmethod
    def extract_delivery_count(text: str) -> int | None:
        """Find a 1-10 count next to a delivery keyword; first match wins."""
        tokens = [token.strip(".,!?;:()\"'") for token in text.lower().split()]

        for index, token in enumerate(tokens):
            if token not in DELIVERY_KEYWORDS:
                continue
            for neighbor in (index - 1, index + 1):
                if 0 <= neighbor < len(tokens):
                    number = _parse_number(tokens[neighbor])
                    if number is not None:
                        return number
        return None

    # =========================================================================
    # Addresses
    # =========================================================================

    @staticmethod
    def looks_like_address_block(text: str) -> bool:
        """Check for a comma-separated block with a street keyword or zip."""
        parts = [part for part in text.split(",") if part.strip()]
        if len(parts) < MIN_BLOCK_PARTS:
            return False
        return bool(STREET_KEYWORD_PATTERN.search(text) or FIVE_DIGIT_PATTERN.search(text))

    def extract_address_block(self, text: str) -> ParsedAddressBlock | None:
        """Parse business, contact, address and phone from one message.

        Parts are assigned around the street part: business and contact
        before it, then city, state, zip and phone after it. A message
        that starts with the street leaves business and contact empty.

        Args:
            text: Raw user message.

        Returns:
            ParsedAddressBlock, or None when the message is not address-shaped.
        """
        if not self.looks_like_address_block(text):
            return None

        parts = [part.strip() for part in text.split(",") if part.strip()]
        street_index = self._find_street_index(parts)

        before = parts[:street_index]
        business_name = before[0] if before else ""
        contact_name = before[1] if len(before) > 1 else ""

        address, phone = self._parse_address_parts(parts[street_index:])
        return ParsedAddressBlock(
            address=address,
            business_name=business_name,
            contact_name=contact_name,
            contact_phone=phone,
        )

    def parse_address(self, text: str) -> AddressInput | None:
        """Parse a single address such as '1 Main St, Austin, TX 78701'.

        Returns:
            AddressInput, or None when there are fewer than two parts.
        """
        parts = [part.strip() for part in text.split(",") if part.strip()]
        if len(parts) < 2:
            return None
        address, _ = self._parse_address_parts(parts)
        return address

    @staticmethod
    def _find_street_index(parts: list[str]) -> int:
        for index, part in enumerate(parts):
            if HOUSE_NUMBER_PATTERN.match(part):
                return index
        for index, part in enumerate(parts):
            if STREET_KEYWORD_PATTERN.search(part):
                return index
        # Positional layout: business, contact, street, ...
        return min(2, len(parts) - 1)

    @staticmethod
    def _parse_address_parts(parts: list[str]) -> tuple[AddressInput, str]:
        """Assign street, city, state, zip and phone from ordered parts."""
        street = parts[0] if parts else ""
        city = parts[1] if len(parts) > 1 else ""
        state = ""
        zip_code = ""
        phone = ""

        for part in parts[2:]:
            state_zip = STATE_ZIP_PATTERN.match(part)
            if state_zip and not state and not zip_code:
                state, zip_code = state_zip.group(1), state_zip.group(2)
            elif ZIP_PATTERN.match(part) and not zip_code:
                zip_code = part
            elif _phone_digits(part) >= PHONE_MIN_DIGITS and not phone:
                phone = part
            elif not state and not any(ch.isdigit() for ch in part):
                state = part
            elif not zip_code and any(ch.isdigit() for ch in part):
                zip_code = part

        address = AddressInput(
            street=street,
            city=city,
            state=normalize_state(state) if state else "",
            zip_code=zip_code,
        )
        return address, phone
