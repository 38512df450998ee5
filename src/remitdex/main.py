"""Command-line entry point.

Usage:
    remitdex corridors
    remitdex quote ethereum USDC 100 PH PHP --method gcash
    remitdex send ethereum USDC 100 PH PHP --sender 0x... \\
        --recipient '{"delivery_method": "gcash", "name": "Juan Dela Cruz", ...}'
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal

from remitdex.config import get_settings
from remitdex.errors import RemittanceError, RemittanceFailed
from remitdex.factory import create_orchestrator

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="remitdex", description="Crypto-to-fiat remittances")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("corridors", help="List supported corridors")

    for name, help_text in (("quote", "Price a remittance"), ("send", "Quote and execute a remittance")):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("chain", help="Source chain (ethereum, polygon, ...)")
        command.add_argument("token", help="Source token symbol or address")
        command.add_argument("amount", type=Decimal, help="Source token amount")
        command.add_argument("country", help="Destination country code")
        command.add_argument("currency", help="Destination currency code")
        command.add_argument("--method", default=None, help="Delivery method (default bank_transfer)")

        if name == "send":
            command.add_argument("--sender", required=True, help="Sender EVM address")
            command.add_argument("--recipient", required=True, help="Recipient details as JSON")

    return parser


async def run(args: argparse.Namespace) -> int:
    orchestrator = create_orchestrator()

    try:
        if args.command == "corridors":
            for corridor in orchestrator.get_supported_corridors():
                print(
                    f"{corridor.origin} -> {corridor.destination} "
                    f"{'/'.join(corridor.currencies)} via {corridor.anchor_code}: "
                    f"{', '.join(corridor.methods)} ({corridor.estimated_time}, max {corridor.max_amount})"
                )
            return 0

        quote = await orchestrator.get_quote(
            args.chain, args.token, args.amount, args.country, args.currency, args.method
        )
        if args.command == "quote":
            print(json.dumps(quote.to_dict(), indent=2))
            return 0

        order = await orchestrator.execute_remittance(quote, args.sender, json.loads(args.recipient))
        print(json.dumps(order.to_dict(), indent=2))
        return 0

    except RemittanceFailed as e:
        print(f"Failed: {e.user_message} (order {e.order.id})", file=sys.stderr)
        return 1
    except RemittanceError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2
    except json.JSONDecodeError as e:
        print(f"Error: recipient is not valid JSON: {e}", file=sys.stderr)
        return 2
    finally:
        await orchestrator.shutdown()


def main() -> None:
    """Main entry point."""
    configure_logging()
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
