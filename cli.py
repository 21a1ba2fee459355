#!/usr/bin/env python3
"""CLI for turning prompts into wallet transfers from a terminal"""

import argparse
import asyncio
from typing import Optional

from cryptoface.config import settings
from cryptoface.core.transfer import (
    AmountParseError,
    JsonRpcWallet,
    PipelineSnapshot,
    PipelineState,
    Resolved,
    TransferPipeline,
    Unresolved,
    normalize_amount,
)
from cryptoface.logging_config import bind_session, setup_logging


def print_snapshot(snapshot: PipelineSnapshot) -> None:
    """Pretty print what the pipeline currently shows"""
    outcome = snapshot.outcome

    if isinstance(outcome, Resolved):
        print("\n📝 Parsed Transfer")
        print("=" * 50)
        try:
            amount = normalize_amount(outcome.amount)
        except AmountParseError:
            amount = outcome.amount
        print(f"Amount:    {amount} {outcome.currency.upper()}")
        print(f"Recipient: {outcome.recipient}")
        print("Type 'sign' to submit it through your wallet.")
    elif isinstance(outcome, Unresolved) and outcome.messages:
        for message in outcome.messages:
            print(f"🤖 {message}")

    if snapshot.state == PipelineState.SUBMITTED:
        print(f"\n✅ Transaction submitted: {snapshot.transaction_handle}")

    if snapshot.error_message:
        print(f"❌ {snapshot.error_message}")
        if snapshot.can_retry_parse:
            print("   Type 'retry' to send the same prompt again.")


async def cli_parse(prompt: str):
    """CLI command to parse a single prompt"""
    print(f"🔍 Parsing: {prompt}")
    pipeline = TransferPipeline.from_settings()
    print_snapshot(await pipeline.parse(prompt))


async def cli_transfer(wallet_rpc_url: Optional[str] = None):
    """Interactive transfer mode"""
    rpc_url = wallet_rpc_url or settings.wallet_rpc_url
    wallet = JsonRpcWallet(rpc_url) if rpc_url else None
    pipeline = TransferPipeline.from_settings(wallet=wallet)
    bind_session(pipeline.session_id)

    print("💸 CryptoFace Transfers")
    print("Type 'exit' to quit, 'help' for commands")
    if wallet is None:
        print("⚠️  No wallet configured; set WALLET_RPC_URL or pass --wallet-rpc-url to sign.")
    print("-" * 40)

    while True:
        try:
            user_input = input("\n💬 You: ").strip()

            if user_input.lower() in ['exit', 'quit', 'q']:
                print("Goodbye! 👋")
                break

            elif user_input.lower() in ['help', 'h']:
                print("\nCommands:")
                print("  help  - Show this help")
                print("  exit  - Quit")
                print("  sign  - Sign & submit the parsed transfer")
                print("  retry - Re-send the last prompt after a failure")
                print("  Transfer 0.1 ETH to 0x... - Parse a new transfer")
                continue

            elif user_input.lower() == 'sign':
                print("✍️  Waiting for wallet confirmation...")
                print_snapshot(await pipeline.sign())
                continue

            elif user_input.lower() == 'retry':
                print_snapshot(await pipeline.retry_parse())
                continue

            elif not user_input:
                continue

            print_snapshot(await pipeline.parse(user_input))

        except KeyboardInterrupt:
            print("\nGoodbye! 👋")
            break
        except EOFError:
            break


def cli_serve(host: str, port: int):
    """Run the HTTP API"""
    import uvicorn

    uvicorn.run(
        "cryptoface.main:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CryptoFace CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    parse_parser = subparsers.add_parser("parse", help="Parse a single prompt")
    parse_parser.add_argument("prompt", help="e.g. 'Transfer 0.1 ETH to 0x...'")

    transfer_parser = subparsers.add_parser("transfer", help="Interactive parse & sign mode")
    transfer_parser.add_argument("--wallet-rpc-url", default=None, help="Wallet JSON-RPC endpoint")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level)
    command = args.command.lower()

    if command == "parse":
        await cli_parse(args.prompt)

    elif command == "transfer":
        await cli_transfer(args.wallet_rpc_url)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


def run():
    args = build_parser().parse_args()
    if args.command == "serve":
        setup_logging(args.log_level)
        cli_serve(args.host, args.port)
    else:
        asyncio.run(main())


if __name__ == "__main__":
    run()
