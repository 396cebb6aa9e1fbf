from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

Color = Literal["red", "yellow", "green", "blue"]
ActionKind = Literal["skip", "reverse", "draw2"]
WildKind = Literal["wild", "wildDraw4"]


class NumberCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    color: Color
    value: int = Field(ge=0, le=9)


class ActionCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["action"] = "action"
    color: Color
    action: ActionKind


class WildCard(BaseModel):
    """
    chosen_color stays None while the card sits in a hand or a pile;
    it is filled in by the player at the moment the card is played.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["wild"] = "wild"
    action: WildKind
    chosen_color: Optional[Color] = None


Card = Annotated[Union[NumberCard, ActionCard, WildCard], Field(discriminator="kind")]

_card_adapter: TypeAdapter[Card] = TypeAdapter(Card)


def parse_card(data: Any) -> Card:
    """Validate a raw dict (wire or store) into a Card. Raises ValidationError."""
    return _card_adapter.validate_python(data)


def dump_card(card: Card) -> dict:
    return card.model_dump(mode="json")


# ----------------------------
# Classification
# ----------------------------

def is_skip(card: Card) -> bool:
    return isinstance(card, ActionCard) and card.action == "skip"


def is_reverse(card: Card) -> bool:
    return isinstance(card, ActionCard) and card.action == "reverse"


def is_draw2(card: Card) -> bool:
    return isinstance(card, ActionCard) and card.action == "draw2"


def is_wild_draw4(card: Card) -> bool:
    return isinstance(card, WildCard) and card.action == "wildDraw4"


def is_wild(card: Card) -> bool:
    return isinstance(card, WildCard)


def draw_penalty(card: Card) -> int:
    """Cards added to the pending draw when this card is played (0 if none)."""
    if is_draw2(card):
        return 2
    if is_wild_draw4(card):
        return 4
    return 0


def pending_type_for(card: Card) -> Literal["none", "draw2", "draw4"]:
    if is_draw2(card):
        return "draw2"
    if is_wild_draw4(card):
        return "draw4"
    return "none"


# ----------------------------
# Comparison
# ----------------------------

def cards_equal(a: Card, b: Card) -> bool:
    """
    Structural equality used to find a card inside a hand.
    Wild cards compare by action only; chosen_color is ignored.
    """
    if isinstance(a, NumberCard) and isinstance(b, NumberCard):
        return a.color == b.color and a.value == b.value
    if isinstance(a, ActionCard) and isinstance(b, ActionCard):
        return a.color == b.color and a.action == b.action
    if isinstance(a, WildCard) and isinstance(b, WildCard):
        return a.action == b.action
    return False


def matches(top: Optional[Card], candidate: Card) -> bool:
    """
    Can `candidate` legally be played on `top`?

    - wild candidates are always legal
    - a wild top with a chosen colour only accepts that colour
    - number on number: same colour or same value
    - number/action mixes: same colour
    - action on action: same colour or same action
    """
    if top is None:
        return True
    if isinstance(candidate, WildCard):
        return True

    if isinstance(top, WildCard):
        if top.chosen_color is None:
            return True
        return candidate.color == top.chosen_color

    if isinstance(top, NumberCard) and isinstance(candidate, NumberCard):
        return top.color == candidate.color or top.value == candidate.value
    if isinstance(top, ActionCard) and isinstance(candidate, ActionCard):
        return top.color == candidate.color or top.action == candidate.action
    return top.color == candidate.color


def describe(card: Optional[Card]) -> str:
    if card is None:
        return "nothing"
    if isinstance(card, NumberCard):
        return f"{card.color} {card.value}"
    if isinstance(card, ActionCard):
        return f"{card.color} {card.action}"
    if card.chosen_color:
        return f"{card.action} ({card.chosen_color})"
    return card.action
