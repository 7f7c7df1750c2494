import typing

from behave import given, then, use_step_matcher, when

from sui_nft.nft_client import Token
from sui_nft.testing import nft_record

# Use regular expressions
use_step_matcher("re")

FIELDS = {
    "name": "Cat",
    "description": "A cat",
    "image_url": "http://img/cat.png",
    "creator": "0xA1",
}


@given(r"a SimpleNFT record (?P<object_id>\S+) without (?P<missing>[a-z_]+)")
def given_record(context: typing.Any, object_id: str, missing: str):
    fields = {key: value for key, value in FIELDS.items() if key != missing}
    context.record = nft_record(object_id, "0xabc", fields)
    if missing == "content":
        del context.record["data"]["content"]


@when(r"I decode the record")
def when_decode(context: typing.Any):
    context.token = Token.parse(context.record)


@then(r'the token (?P<field>[a-z ]+) should be "(?P<expected>[^"]*)"')
def then_field(context: typing.Any, field: str, expected: str):
    actual = getattr(context.token, field.replace(" ", "_"))
    assert actual == expected, "Expected " + expected + " but got " + str(actual)
