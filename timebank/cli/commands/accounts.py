"""Account CLI commands."""

from typing import TYPE_CHECKING

from timebank.cli.commands.helpers import print_json, resolve_identity

if TYPE_CHECKING:
    from timebank import ExchangeEngine


def cmd_register(args, engine: "ExchangeEngine"):
    """Register the caller."""
    identity = resolve_identity(args)
    account = engine.register(identity, args.name, args.skill or [])

    if args.json:
        print_json(account.to_dict())
        return

    print(f"✓ Registered {account.identity} ({account.name})")
    print(f"  Balance: {account.balance} credits")
    if account.skills:
        print(f"  Skills: {', '.join(account.skills)}")


def cmd_balance(args, engine: "ExchangeEngine"):
    """Show an account balance."""
    identity = resolve_identity(args, args.identity)
    balance = engine.get_balance(identity)
    if args.json:
        print_json({"identity": identity, "balance": balance})
    else:
        print(f"{identity}: {balance} credits")


def cmd_reputation(args, engine: "ExchangeEngine"):
    """Show an account reputation."""
    identity = resolve_identity(args, args.identity)
    reputation = engine.get_reputation(identity)
    if args.json:
        print_json({"identity": identity, "reputation": reputation})
        return

    bar = "█" * (reputation // 10) + "░" * (10 - reputation // 10)
    print(f"{identity}: [{bar}] {reputation}/100")


def cmd_account(args, engine: "ExchangeEngine"):
    """Show an account."""
    identity = resolve_identity(args, args.identity)
    account = engine.get_account(identity)
    if args.json:
        print_json(account.to_dict())
        return

    print(f"Account: {account.identity}")
    print(f"  Name: {account.name}")
    print(f"  Balance: {account.balance} credits")
    print(f"  Reputation: {account.reputation}/100")
    print(f"  Skills: {', '.join(account.skills) if account.skills else 'none'}")
    if account.created_at:
        print(f"  Registered: {account.created_at.isoformat()}")


def cmd_supply(args, engine: "ExchangeEngine"):
    """Show the total credit supply."""
    accounts = engine.list_accounts()
    total = engine.total_credits()
    if args.json:
        print_json({"accounts": len(accounts), "total_credits": total})
    else:
        print(f"{len(accounts)} accounts, {total} credits in circulation")
