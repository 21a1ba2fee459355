"""
Tests for the transfer pipeline state machine.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cryptoface.config import TokenConfig
from cryptoface.core.transfer import (
    AssetClassifier,
    AuthorizationDeniedError,
    EmptyPromptError,
    ErrorCategory,
    Failed,
    InvalidActionError,
    NoProviderError,
    ParserClient,
    PipelineState,
    RecipientEncodingError,
    Resolved,
    SubmissionDriver,
    SubmissionFailure,
    TransferPipeline,
    TransportFailure,
    Unresolved,
    UnresolvedPrompt,
    UnsupportedAssetError,
    WalletCapability,
    WalletProviderError,
)

MUSD_ADDRESS = "0x1111111111111111111111111111111111111111"
SENDER = "0x9999999999999999999999999999999999999999"
RECIPIENT = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
TX_HASH = "0x" + "cd" * 32

ETH_PARSE = Resolved(amount="0.1", currency="ETH", recipient="0xABCD...1234")
MUSD_PARSE = Resolved(amount="5", currency="musd", recipient=RECIPIENT)


def make_wallet() -> MagicMock:
    wallet = MagicMock(spec=WalletCapability)
    wallet.name = "mock"
    wallet.request_accounts = AsyncMock(return_value=[SENDER])
    wallet.accounts = AsyncMock(return_value=[SENDER])
    wallet.send_transaction = AsyncMock(return_value=TX_HASH)
    return wallet


@pytest.fixture
def parser() -> MagicMock:
    parser = MagicMock(spec=ParserClient)
    parser.parse = AsyncMock(return_value=ETH_PARSE)
    return parser


@pytest.fixture
def wallet() -> MagicMock:
    return make_wallet()


@pytest.fixture
def pipeline(parser, wallet) -> TransferPipeline:
    classifier = AssetClassifier(
        native_symbol="ETH",
        native_decimals=18,
        token_registry={"MUSD": TokenConfig(address=MUSD_ADDRESS, decimals=18)},
    )
    return TransferPipeline(parser, classifier, SubmissionDriver(wallet), session_id="test")


class TestParse:

    @pytest.mark.asyncio
    async def test_starts_idle(self, pipeline):
        assert pipeline.state == PipelineState.IDLE
        assert pipeline.snapshot.can_sign is False

    @pytest.mark.asyncio
    async def test_resolved(self, pipeline, parser):
        snapshot = await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        assert snapshot.state == PipelineState.PARSE_RESOLVED
        assert snapshot.outcome == ETH_PARSE
        assert snapshot.error is None
        assert snapshot.can_sign is True
        parser.parse.assert_awaited_once_with("Transfer 0.1 ETH to 0xABCD...1234")

    @pytest.mark.asyncio
    async def test_unresolved_requires_new_prompt(self, pipeline, parser):
        parser.parse.return_value = Unresolved(messages=["Which recipient?"])

        snapshot = await pipeline.parse("send some eth")

        assert snapshot.state == PipelineState.PARSE_UNRESOLVED
        assert isinstance(snapshot.error, UnresolvedPrompt)
        assert "Which recipient?" in snapshot.error_message
        assert snapshot.can_sign is False
        assert snapshot.can_retry_parse is False

    @pytest.mark.asyncio
    async def test_transport_failure_is_retryable(self, pipeline, parser):
        parser.parse.return_value = Failed(reason="parser overloaded", status_code=503)

        snapshot = await pipeline.parse("send 1 eth to 0xabc")

        assert snapshot.state == PipelineState.PARSE_FAILED
        assert isinstance(snapshot.error, TransportFailure)
        assert snapshot.error.status_code == 503
        assert snapshot.error_message == "parser overloaded"
        assert snapshot.can_retry_parse is True

    @pytest.mark.asyncio
    async def test_retry_resends_same_prompt(self, pipeline, parser):
        parser.parse.return_value = Failed(reason="boom")
        await pipeline.parse("  Transfer 0.1 ETH to 0xABCD...1234 ")

        parser.parse.return_value = ETH_PARSE
        snapshot = await pipeline.retry_parse()

        assert snapshot.state == PipelineState.PARSE_RESOLVED
        assert parser.parse.await_count == 2
        assert parser.parse.await_args.args == ("Transfer 0.1 ETH to 0xABCD...1234",)

    @pytest.mark.asyncio
    async def test_retry_rejected_when_nothing_failed(self, pipeline, parser):
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        snapshot = await pipeline.retry_parse()

        assert isinstance(snapshot.error, InvalidActionError)
        assert pipeline.state == PipelineState.PARSE_RESOLVED
        assert parser.parse.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", None])
    async def test_empty_prompt_never_reaches_parser(self, pipeline, parser, prompt):
        snapshot = await pipeline.parse(prompt)

        assert snapshot.state == PipelineState.PARSE_FAILED
        assert isinstance(snapshot.error, EmptyPromptError)
        assert snapshot.error.category == ErrorCategory.VALIDATION
        assert snapshot.can_retry_parse is False
        parser.parse.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_parser_exception_becomes_failure(self, pipeline, parser):
        parser.parse.side_effect = RuntimeError("socket exploded")

        snapshot = await pipeline.parse("send 1 eth")

        assert snapshot.state == PipelineState.PARSE_FAILED
        assert "socket exploded" in snapshot.error_message

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self, pipeline, parser):
        release_first = asyncio.Event()

        async def slow_then_fast(prompt):
            if prompt == "first":
                await release_first.wait()
                return Resolved(amount="1", currency="ETH", recipient="0xold")
            return Resolved(amount="2", currency="ETH", recipient="0xnew")

        parser.parse.side_effect = slow_then_fast

        first = asyncio.create_task(pipeline.parse("first"))
        await asyncio.sleep(0)
        assert pipeline.state == PipelineState.PARSING

        second = await pipeline.parse("second")
        release_first.set()
        await first

        assert second.outcome.recipient == "0xnew"
        assert pipeline.snapshot.outcome.recipient == "0xnew"
        assert pipeline.snapshot.prompt == "second"

    @pytest.mark.asyncio
    async def test_new_parse_after_submission_resets(self, pipeline, parser):
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")
        await pipeline.sign()
        assert pipeline.state == PipelineState.SUBMITTED

        parser.parse.return_value = MUSD_PARSE
        snapshot = await pipeline.parse("Send 5 MUSD")

        assert snapshot.state == PipelineState.PARSE_RESOLVED
        assert snapshot.transaction_handle is None
        assert snapshot.can_sign is True


class TestSign:

    @pytest.mark.asyncio
    async def test_eth_transfer(self, pipeline, wallet):
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SUBMITTED
        assert snapshot.transaction_handle == TX_HASH
        assert snapshot.outcome is None
        wallet.send_transaction.assert_awaited_once_with({
            "to": "0xABCD...1234",
            "value": hex(100_000_000_000_000_000),
            "from": SENDER,
        })

    @pytest.mark.asyncio
    async def test_musd_transfer(self, pipeline, parser, wallet):
        parser.parse.return_value = MUSD_PARSE
        await pipeline.parse("Send 5 MUSD to 0xAbCd...")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SUBMITTED
        tx = wallet.send_transaction.await_args.args[0]
        assert tx["to"] == MUSD_ADDRESS
        assert tx["value"] == "0x0"
        assert tx["data"].startswith("0xa9059cbb")
        assert tx["data"].endswith(format(5_000_000_000_000_000_000, "064x"))

    @pytest.mark.asyncio
    async def test_rejected_from_idle(self, pipeline, wallet):
        snapshot = await pipeline.sign()

        assert isinstance(snapshot.error, InvalidActionError)
        assert pipeline.state == PipelineState.IDLE
        assert pipeline.snapshot.error is None
        wallet.request_accounts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_when_unresolved(self, pipeline, parser, wallet):
        parser.parse.return_value = Unresolved(messages=["How much?"])
        await pipeline.parse("send eth")

        snapshot = await pipeline.sign()

        assert isinstance(snapshot.error, UnresolvedPrompt)
        assert "clarify" in snapshot.error_message
        assert pipeline.state == PipelineState.PARSE_UNRESOLVED
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_after_parse_failure(self, pipeline, parser, wallet):
        parser.parse.return_value = Failed(reason="down")
        await pipeline.parse("send 1 eth")

        snapshot = await pipeline.sign()

        assert isinstance(snapshot.error, InvalidActionError)
        assert pipeline.state == PipelineState.PARSE_FAILED
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_wallet(self, pipeline):
        pipeline.disconnect_wallet()
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert isinstance(snapshot.error, NoProviderError)
        assert snapshot.error.category == ErrorCategory.PROVIDER

    @pytest.mark.asyncio
    async def test_unsupported_asset_never_reaches_wallet(self, pipeline, parser, wallet):
        parser.parse.return_value = Resolved(amount="1", currency="BTC", recipient=RECIPIENT)
        await pipeline.parse("send 1 btc")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert isinstance(snapshot.error, UnsupportedAssetError)
        assert snapshot.error_message == "Unsupported token: BTC"
        wallet.request_accounts.assert_not_awaited()
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_amount_never_reaches_wallet(self, pipeline, parser, wallet):
        parser.parse.return_value = Resolved(amount="-1", currency="ETH", recipient=RECIPIENT)
        await pipeline.parse("send -1 eth")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert snapshot.error.category == ErrorCategory.VALIDATION
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("currency", ["MUSD", "ETH"])
    async def test_amount_beyond_uint256_fails_sign(self, pipeline, parser, wallet, currency):
        parser.parse.return_value = Resolved(amount="9" * 70, currency=currency, recipient=RECIPIENT)
        await pipeline.parse("send a lot")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert "exceeds uint256" in snapshot.error_message
        assert snapshot.can_sign is True
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_amount_fails_sign(self, pipeline, parser, wallet):
        parser.parse.return_value = Resolved(amount="1" * 5000, currency="ETH", recipient=RECIPIENT)
        await pipeline.parse("send a lot")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert snapshot.error.category == ErrorCategory.VALIDATION
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_build_error_fails_sign(self, pipeline, wallet):
        pipeline.classifier = MagicMock(spec=AssetClassifier)
        pipeline.classifier.classify.side_effect = RuntimeError("registry corrupted")
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert "registry corrupted" in snapshot.error_message
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_token_recipient_never_reaches_wallet(self, pipeline, parser, wallet):
        parser.parse.return_value = Resolved(amount="5", currency="MUSD", recipient="alice.eth")
        await pipeline.parse("send 5 musd to alice.eth")

        snapshot = await pipeline.sign()

        assert isinstance(snapshot.error, RecipientEncodingError)
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wallet_error_then_retry_succeeds(self, pipeline, wallet):
        wallet.send_transaction.side_effect = [
            WalletProviderError("insufficient funds for gas * price + value", code=-32000),
            TX_HASH,
        ]
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        failed = await pipeline.sign()
        assert failed.state == PipelineState.SIGN_FAILED
        assert isinstance(failed.error, SubmissionFailure)
        assert failed.error_message == "insufficient funds for gas * price + value"
        assert failed.outcome == ETH_PARSE
        assert failed.can_sign is True

        retried = await pipeline.sign()
        assert retried.state == PipelineState.SUBMITTED
        assert retried.transaction_handle == TX_HASH

    @pytest.mark.asyncio
    async def test_authorization_denied(self, pipeline, wallet):
        wallet.request_accounts.side_effect = WalletProviderError("User rejected the request.", code=4001)
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SIGN_FAILED
        assert isinstance(snapshot.error, AuthorizationDeniedError)
        wallet.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submitted_is_sticky(self, pipeline, wallet):
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")
        await pipeline.sign()

        snapshot = await pipeline.sign()

        assert isinstance(snapshot.error, InvalidActionError)
        assert snapshot.state == PipelineState.SUBMITTED
        assert snapshot.transaction_handle == TX_HASH
        assert wallet.send_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_no_double_submit_while_pending(self, pipeline, wallet):
        release = asyncio.Event()

        async def wait_for_user(tx):
            await release.wait()
            return TX_HASH

        wallet.send_transaction.side_effect = wait_for_user
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        first = asyncio.create_task(pipeline.sign())
        await asyncio.sleep(0.01)
        assert pipeline.state == PipelineState.SIGNING
        assert pipeline.snapshot.is_busy is True

        second = await pipeline.sign()
        assert isinstance(second.error, InvalidActionError)

        reparse = await pipeline.parse("Send 5 MUSD")
        assert isinstance(reparse.error, InvalidActionError)
        assert pipeline.state == PipelineState.SIGNING

        release.set()
        done = await first
        assert done.state == PipelineState.SUBMITTED
        assert wallet.send_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_pending_sign(self, pipeline, wallet):
        never = asyncio.Event()

        async def wait_forever(tx):
            await never.wait()

        wallet.send_transaction.side_effect = wait_forever
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        task = asyncio.create_task(pipeline.sign())
        await asyncio.sleep(0.01)
        assert pipeline.cancel_sign() is True

        snapshot = await task
        assert snapshot.state == PipelineState.SIGN_FAILED
        assert snapshot.error_message == "Transaction signing was cancelled."
        assert pipeline.cancel_sign() is False

    @pytest.mark.asyncio
    async def test_wallet_connect_lifecycle(self, pipeline, wallet):
        pipeline.disconnect_wallet()
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")
        assert isinstance((await pipeline.sign()).error, NoProviderError)

        pipeline.connect_wallet(wallet)
        snapshot = await pipeline.sign()

        assert snapshot.state == PipelineState.SUBMITTED


class TestSnapshot:

    @pytest.mark.asyncio
    async def test_to_dict(self, pipeline):
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        data = pipeline.snapshot.to_dict()

        assert data == {
            "state": "parse_resolved",
            "prompt": "Transfer 0.1 ETH to 0xABCD...1234",
            "parsed": {"amount": "0.1", "currency": "ETH", "recipient": "0xABCD...1234"},
            "messages": [],
            "transaction_handle": None,
            "error": None,
            "error_category": None,
            "can_sign": True,
            "can_retry_parse": False,
        }

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, pipeline):
        snapshot = pipeline.snapshot
        snapshot.state = PipelineState.SUBMITTED
        assert pipeline.state == PipelineState.IDLE


class TestFromSettings:

    @pytest.mark.asyncio
    async def test_configured_chain_is_sent_to_wallet(self, wallet):
        from cryptoface.config import Settings

        config = Settings(_env_file=None, chain_id=137, parser_api_url="http://parser.test")
        pipeline = TransferPipeline.from_settings(config, wallet=wallet)
        pipeline.parser = MagicMock(spec=ParserClient)
        pipeline.parser.parse = AsyncMock(return_value=ETH_PARSE)
        await pipeline.parse("Transfer 0.1 ETH to 0xABCD...1234")

        await pipeline.sign()

        assert wallet.send_transaction.await_args.args[0]["chainId"] == "0x89"
