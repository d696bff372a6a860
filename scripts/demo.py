#!/usr/bin/env python3
"""
Interactive demo for the Aurora Concierge.

Usage:
    python scripts/demo.py                  # Demo inventory (stub providers)
    python scripts/demo.py --mode live      # Storefront support API at --base-url
    python scripts/demo.py --show-events    # Also print JSON analytics events

Commands inside the demo:
    pick <intent>     choose from the intent chooser (e.g. pick track_order)
    save <n>          shortlist product n from the last carousel
    rate <rating>     answer the CSAT prompt (great, good, okay, needs_follow_up, poor)
    texts             text me order updates (after tracking an order)
    share             print the shortlist as shareable text
    reset / quit
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from concierge import ConciergeWidget, create_providers, get_config
from concierge.models import SupportIntent
from concierge.modules import WidgetMessage
from concierge.utils.logger import set_level
from concierge.utils.structured_logger import event_logger


def format_message(message: WidgetMessage) -> str:
    """Render one concierge message as plain text."""
    payload = message.payload
    if isinstance(payload, str):
        return f"Concierge: {payload}"

    lines = [f"  [{payload.type}]"]
    if payload.type == "product-carousel":
        for i, product in enumerate(payload.products, 1):
            lines.append(f"    {i}. {product.title} - ${product.price:,.0f}")
        if payload.relaxed:
            lines.append(f"    (loosened: {payload.fallback_reason})")
    elif payload.type == "order-timeline":
        for entry in payload.entries:
            marker = {"complete": "x", "current": ">", "upcoming": " "}[entry.status]
            lines.append(f"    [{marker}] {entry.label}")
    elif payload.type == "return-options":
        for option in payload.options:
            lines.append(f"    - {option.id}: {option.description}")
    elif payload.type == "intent-chooser":
        lines.append("    " + ", ".join(o.value for o in payload.options))
        if payload.emphasize_human:
            lines.append("    (a stylist is one tap away: pick stylist_contact)")
    elif payload.type == "product-filter-form":
        lines.append("    presets: " + ", ".join(p.slug for p in payload.presets))
    elif payload.type == "csat":
        lines.append("    " + " / ".join(c.value for c in payload.choices))
    elif payload.type == "shortlist-panel":
        for item in payload.items:
            lines.append(f"    * {item.title}")
    else:
        lines.append(f"    {getattr(payload, 'headline', '')}")
    return "\n".join(lines)


def last_carousel(widget: ConciergeWidget):
    for message in reversed(widget.messages):
        if message.module_type == "product-carousel":
            return message.payload
    return None


async def handle_command(widget: ConciergeWidget, user_input: str) -> None:
    """Map demo shortcuts to module actions; everything else is free text."""
    command, _, arg = user_input.partition(" ")
    command = command.lower()

    if command == "pick" and arg:
        await widget.handle_module_action("intent-chooser-select", {"intent": arg.strip()})
    elif command == "save" and arg.strip().isdigit():
        carousel = last_carousel(widget)
        index = int(arg) - 1
        if carousel is None or not 0 <= index < len(carousel.products):
            print("Nothing to save at that position.")
            return
        await widget.handle_module_action(
            "shortlist-product", {"product": carousel.products[index]}, origin_intent=None
        )
    elif command == "rate" and arg:
        await widget.handle_module_action("submit-csat", {"rating": arg.strip()})
    elif command == "texts":
        await widget.handle_module_action("text-updates", {}, origin_intent=SupportIntent.TRACK_ORDER)
    elif command == "share":
        await widget.handle_module_action("shortlist-share")
    else:
        await widget.send_message(user_input)


async def run(args) -> None:
    config = get_config()
    config.data_mode = args.mode
    if args.base_url:
        config.api_base_url = args.base_url.rstrip("/")

    widget = ConciergeWidget(create_providers(config), config=config)

    while True:
        try:
            user_input = input("\nYou: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() == "quit":
            print("Goodbye!")
            break
        if user_input.lower() == "reset":
            widget = ConciergeWidget(create_providers(config), config=config)
            print("Session reset. Start a new conversation!")
            continue

        # Older modules get pruned, so compare by id rather than position
        shown = {message.id for message in widget.messages}
        await handle_command(widget, user_input)
        for message in widget.messages:
            if message.role == "concierge" and message.id not in shown:
                print(format_message(message))


def main():
    parser = argparse.ArgumentParser(description='Interactive Aurora Concierge Demo')
    parser.add_argument('--mode', type=str, default='stub', choices=['stub', 'live'],
                        help='Data providers to use')
    parser.add_argument('--base-url', type=str, default=None,
                        help='Storefront base URL for live mode')
    parser.add_argument('--show-events', action='store_true',
                        help='Print structured analytics events')
    args = parser.parse_args()

    set_level("WARNING")
    if not args.show_events:
        event_logger.logger.setLevel("WARNING")

    print("=" * 60)
    print("AURORA CONCIERGE - Interactive Demo")
    print("=" * 60)
    print(f"Data mode: {args.mode}")
    print("Try: 'gifts under $300 ready to ship', '/track', 'order 123456', 'talk to a stylist'")
    print("Type 'quit' to exit, 'reset' to start over")
    print("=" * 60)

    asyncio.run(run(args))


if __name__ == '__main__':
    main()
