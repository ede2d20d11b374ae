"""Service request CLI commands."""

from typing import TYPE_CHECKING

from timebank.cli.commands.helpers import print_json, resolve_identity

if TYPE_CHECKING:
    from timebank import ExchangeEngine
    from timebank.models import ServiceRequest


def _print_request(request: "ServiceRequest"):
    print(
        f"  #{request.id} offer #{request.offer_id}: "
        f"{request.requester} -> {request.provider} [{request.status.value}]"
    )
    if request.completed_at:
        print(f"      completed {request.completed_at.isoformat()}")


def cmd_request(args, engine: "ExchangeEngine"):
    """Manage service requests."""
    action = args.request_action

    if action == "create":
        identity = resolve_identity(args)
        request = engine.create_request(identity, args.offer_id)
        if args.json:
            print_json(request.to_dict())
        else:
            print(f"✓ Request #{request.id} created for offer #{request.offer_id}")
            print(f"  Provider: {request.provider}")

    elif action == "complete":
        identity = resolve_identity(args)
        request = engine.complete_request(identity, args.request_id)
        offer = engine.get_offer(request.offer_id)
        if args.json:
            print_json(request.to_dict())
        else:
            print(f"✓ Request #{request.id} completed")
            print(f"  {offer.time_cost} credits: {request.requester} -> {request.provider}")

    elif action == "show":
        request = engine.get_request(args.request_id)
        if args.json:
            print_json(request.to_dict())
        else:
            _print_request(request)

    elif action == "list":
        requester = provider = None
        if args.mine:
            identity = resolve_identity(args)
            if args.role == "provider":
                provider = identity
            else:
                requester = identity
        requests = engine.list_requests(
            requester=requester, provider=provider, status=args.status, limit=args.limit
        )
        if args.json:
            print_json([r.to_dict() for r in requests])
            return
        if not requests:
            print("No requests found.")
            return
        print(f"Requests ({len(requests)}):")
        for request in requests:
            _print_request(request)

    elif action == "history":
        transitions = engine.get_request_history(args.request_id)
        if args.json:
            print_json([t.to_dict() for t in transitions])
            return
        print(f"History of request #{args.request_id}:")
        for t in transitions:
            from_status = t.from_status.value if t.from_status else "-"
            when = t.created_at.isoformat() if t.created_at else "?"
            print(f"  {when}  {from_status} -> {t.to_status.value}  by {t.actor}")
