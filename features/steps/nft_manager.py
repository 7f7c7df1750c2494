import asyncio
import typing

from behave import given, then, use_step_matcher, when

from sui_nft.exceptions import ErrorKind
from sui_nft.nft_client import ContractConfig, SimpleNftClient
from sui_nft.orchestrator import NftManager
from sui_nft.testing import FakeLedger, FakeWallet, nft_record

# Use regular expressions
use_step_matcher("re")

PACKAGE_ID = "0xabc"


def holding(name: str, token_id: str) -> typing.List[typing.Dict[str, typing.Any]]:
    return [nft_record(token_id, PACKAGE_ID, {"name": name})]


@given(r"a wallet connected as (?P<address>\S+) confirming (?P<digest>\S+)")
def given_wallet(context: typing.Any, address: str, digest: str):
    context.ledger = FakeLedger()
    context.wallet = FakeWallet(address, digest)
    context.manager = NftManager(
        SimpleNftClient(context.ledger, ContractConfig(PACKAGE_ID)), context.wallet
    )


@given(r"the wallet is disconnected")
def given_disconnected(context: typing.Any):
    context.wallet.disconnect()


@given(r'the wallet rejects with "(?P<message>[^"]*)"')
def given_wallet_rejects(context: typing.Any, message: str):
    context.wallet.error = RuntimeError(message)


@given(r'the ledger holds "(?P<name>[^"]*)" as (?P<token_id>\S+)')
def given_ledger_holds(context: typing.Any, name: str, token_id: str):
    context.ledger.records = holding(name, token_id)


@given(
    r'the ledger reports "(?P<name>[^"]*)" as (?P<token_id>\S+) once a transaction lands'
)
def given_ledger_after_submit(context: typing.Any, name: str, token_id: str):
    def land(payload):
        context.ledger.records = holding(name, token_id)

    context.wallet.on_submit = land


@given(r"the ledger goes down once a transaction lands")
def given_ledger_down_after_submit(context: typing.Any):
    def land(payload):
        context.ledger.error = ConnectionError("node unavailable")

    context.wallet.on_submit = land


@given(r"the collection has been loaded")
def given_collection_loaded(context: typing.Any):
    result = asyncio.run(context.manager.refresh())
    assert result.success, result.message
    context.ledger.calls.clear()


@when(
    r'I mint "(?P<name>[^"]*)" described "(?P<description>[^"]*)" with image "(?P<image_url>[^"]*)"'
)
def when_mint(context: typing.Any, name: str, description: str, image_url: str):
    context.result = asyncio.run(context.manager.mint(name, description, image_url))


@when(r'I transfer (?P<token_id>\S+) to "(?P<recipient>[^"]*)"')
def when_transfer(context: typing.Any, token_id: str, recipient: str):
    context.result = asyncio.run(context.manager.transfer(token_id, recipient))


@when(r'I update (?P<token_id>\S+) to "(?P<description>[^"]*)"')
def when_update(context: typing.Any, token_id: str, description: str):
    context.result = asyncio.run(context.manager.update(token_id, description))


@when(r"I burn (?P<token_id>\S+)")
def when_burn(context: typing.Any, token_id: str):
    context.result = asyncio.run(context.manager.burn(token_id))


@when(
    r'burning (?P<burn_id>\S+) races with updating (?P<update_id>\S+) to "(?P<description>[^"]*)"'
)
def when_burn_and_update(
    context: typing.Any, burn_id: str, update_id: str, description: str
):
    async def both():
        return await asyncio.gather(
            context.manager.burn(burn_id),
            context.manager.update(update_id, description),
        )

    context.results = asyncio.run(both())


@then(r"the result should succeed with digest (?P<digest>\S+)")
def then_success(context: typing.Any, digest: str):
    assert context.result.success, context.result.message
    assert context.result.digest == digest, (
        "Expected " + digest + " but got " + str(context.result.digest)
    )
    assert digest in context.result.message


@then(r"the result should fail with (?P<kind>[a-zA-Z]+)")
def then_failure(context: typing.Any, kind: str):
    assert not context.result.success
    assert context.result.error == ErrorKind(kind), (
        "Expected " + kind + " but got " + str(context.result.error)
    )


@then(r"the result should carry a warning")
def then_warning(context: typing.Any):
    assert context.result.warning, "Expected a stale view warning"


@then(r'the collection should hold exactly "(?P<names>[^"]*)"')
def then_collection(context: typing.Any, names: str):
    expected = [name.strip() for name in names.split(",")]
    actual = [token.name for token in context.manager.collection_snapshot()]
    assert actual == expected, "Expected " + str(expected) + " but got " + str(actual)


@then(r"the wallet should not have been asked to sign")
def then_not_signed(context: typing.Any):
    assert context.wallet.payloads == [], str(context.wallet.payloads)


@then(r"the ledger should not have been queried")
def then_not_queried(context: typing.Any):
    assert context.ledger.calls == [], str(context.ledger.calls)


@then(r"one operation should succeed and the other should fail with (?P<kind>[a-zA-Z]+)")
def then_single_flight(context: typing.Any, kind: str):
    succeeded = [result for result in context.results if result.success]
    rejected = [result for result in context.results if not result.success]
    assert len(succeeded) == 1, str(context.results)
    assert len(rejected) == 1, str(context.results)
    assert rejected[0].error == ErrorKind(kind), str(rejected[0])
    assert len(context.wallet.payloads) == 1
