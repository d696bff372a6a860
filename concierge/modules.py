"""
Chat messages and the structured module payloads the widget renders.

``ModulePayload`` is a discriminated union on ``type``; ``WidgetMessage.type``
is computed from the payload so a text message can never carry a module and
vice versa.
"""
import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from concierge.models import ProductSummary, SupportIntent, TimelineEntry, utcnow


class _Module(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str


class PresetOption(BaseModel):
    slug: str
    label: str


class ReturnOption(BaseModel):
    id: str
    label: str
    description: str


class CsatChoice(BaseModel):
    value: str
    label: str


class ProductFilterFormModule(_Module):
    type: Literal["product-filter-form"] = "product-filter-form"
    headline: str
    description: Optional[str] = None
    presets: List[PresetOption] = Field(default_factory=list)
    sort_options: List[str] = Field(default_factory=list)


class ProductCarouselModule(_Module):
    type: Literal["product-carousel"] = "product-carousel"
    headline: str
    products: List[ProductSummary]
    filters: Dict[str, Any] = Field(default_factory=dict)
    relaxed: bool = False
    fallback_reason: Optional[str] = None


class OrderLookupFormModule(_Module):
    type: Literal["order-lookup-form"] = "order-lookup-form"
    headline: str
    description: Optional[str] = None


class OrderTimelineModule(_Module):
    type: Literal["order-timeline"] = "order-timeline"
    reference: str
    entries: List[TimelineEntry]
    allow_text_updates: bool = True


class ReturnOptionsModule(_Module):
    type: Literal["return-options"] = "return-options"
    headline: str
    options: List[ReturnOption]


class EscalationFormModule(_Module):
    type: Literal["escalation-form"] = "escalation-form"
    headline: str
    description: Optional[str] = None
    topic: Optional[SupportIntent] = None
    shortlist_count: int = 0


class CsatModule(_Module):
    type: Literal["csat"] = "csat"
    question: str
    choices: List[CsatChoice]


class IntentChooserModule(_Module):
    type: Literal["intent-chooser"] = "intent-chooser"
    headline: str
    description: Optional[str] = None
    emphasize_human: bool = False
    options: List[SupportIntent] = Field(default_factory=lambda: list(SupportIntent))


class ShortlistPanelModule(_Module):
    type: Literal["shortlist-panel"] = "shortlist-panel"
    title: str
    items: List[ProductSummary]
    cta_label: Optional[str] = None


ModulePayload = Annotated[
    Union[
        ProductFilterFormModule,
        ProductCarouselModule,
        OrderLookupFormModule,
        OrderTimelineModule,
        ReturnOptionsModule,
        EscalationFormModule,
        CsatModule,
        IntentChooserModule,
        ShortlistPanelModule,
    ],
    Field(discriminator="type"),
]


class WidgetMessage(BaseModel):
    """One chat turn."""
    id: str
    role: Literal["guest", "concierge"]
    payload: Union[str, ModulePayload]
    intent: Optional[SupportIntent] = None
    timestamp: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def type(self) -> Literal["text", "module"]:
        return "text" if isinstance(self.payload, str) else "module"

    @property
    def module_type(self) -> Optional[str]:
        return None if isinstance(self.payload, str) else self.payload.type


def create_message(
    role: Literal["guest", "concierge"],
    payload: Union[str, "ModulePayload"],
    intent: Optional[SupportIntent] = None,
) -> WidgetMessage:
    """Build a message with a fresh id and timestamp."""
    return WidgetMessage(
        id=f"{role}-{uuid.uuid4().hex[:12]}",
        role=role,
        payload=payload,
        intent=intent,
    )


def module_id(kind: str) -> str:
    """Unique id for a module instance, e.g. ``order-timeline-3f2a9c``."""
    return f"{kind}-{uuid.uuid4().hex[:6]}"


CSAT_CHOICES = [
    CsatChoice(value="great", label="Great"),
    CsatChoice(value="good", label="Good"),
    CsatChoice(value="okay", label="Okay"),
    CsatChoice(value="needs_follow_up", label="Needs follow-up"),
    CsatChoice(value="poor", label="Poor"),
]


def csat_prompt(question: str = "How did I do today?") -> CsatModule:
    return CsatModule(id=module_id("csat"), question=question, choices=CSAT_CHOICES)


def escalation_form(
    topic: Optional[SupportIntent],
    headline: str = "Talk with a stylist",
    description: Optional[str] = None,
    shortlist_count: int = 0,
) -> EscalationFormModule:
    return EscalationFormModule(
        id=module_id("escalation-form"),
        headline=headline,
        description=description or "Leave your details and a stylist will follow up within one business day.",
        topic=topic,
        shortlist_count=shortlist_count,
    )
