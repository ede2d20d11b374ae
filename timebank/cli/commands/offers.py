"""Offer CLI commands."""

from typing import TYPE_CHECKING

from timebank.cli.commands.helpers import print_json, resolve_identity

if TYPE_CHECKING:
    from timebank import ExchangeEngine
    from timebank.models import Offer


def _print_offer(offer: "Offer"):
    state = "active" if offer.active else "inactive"
    print(f"  #{offer.id} [{offer.category}] {offer.description}")
    print(
        f"      by {offer.provider} | {offer.time_required} min | "
        f"{offer.time_cost} credits | {state}"
    )


def cmd_offer(args, engine: "ExchangeEngine"):
    """Manage service offers."""
    action = args.offer_action

    if action == "create":
        identity = resolve_identity(args)
        offer = engine.create_offer(
            identity, args.category, args.description, args.time, args.cost
        )
        if args.json:
            print_json(offer.to_dict())
        else:
            print(f"✓ Offer #{offer.id} created")
            _print_offer(offer)

    elif action == "show":
        offer = engine.get_offer(args.offer_id)
        if args.json:
            print_json(offer.to_dict())
        else:
            _print_offer(offer)

    elif action == "list":
        active = None
        if args.active:
            active = True
        elif args.inactive:
            active = False
        offers = engine.list_offers(
            provider=args.provider, category=args.category, active=active, limit=args.limit
        )
        if args.json:
            print_json([o.to_dict() for o in offers])
            return
        if not offers:
            print("No offers found.")
            return
        print(f"Offers ({len(offers)}):")
        for offer in offers:
            _print_offer(offer)

    elif action == "deactivate":
        identity = resolve_identity(args)
        offer = engine.deactivate_offer(identity, args.offer_id)
        if args.json:
            print_json(offer.to_dict())
        else:
            print(f"✓ Offer #{offer.id} is inactive")
