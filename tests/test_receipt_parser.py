import pytest

from conftest import LLM_URL, llm_reply
from services.errors import UpstreamEmptyReplyError
from services.receipt_parser import ReceiptParser, decode_reply, strip_code_fences


def test_strip_json_fence():
    assert strip_code_fences('```json\n{"total": 1}\n```') == '{"total": 1}'


def test_strip_leaves_plain_text():
    assert strip_code_fences('  {"total": 1} ') == '{"total": 1}'


def test_decode_fenced_reply():
    assert decode_reply('```json\n{"items": [{"name": "Milk", "price": 1.5}]}\n```') == {
        "items": [{"name": "Milk", "price": 1.5}]
    }


def test_decode_keeps_original_text_on_failure():
    reply = "```\nSorry, I can't read this receipt.\n```"
    assert decode_reply(reply) == {"raw": reply}


def test_decode_returns_non_object_json_as_is():
    assert decode_reply("[1, 2]") == [1, 2]


@pytest.mark.parametrize("data", [{}, {"choices": []}, {"choices": [{}]}, {"choices": [{"message": None}]}])
def test_reply_content_missing(data):
    assert ReceiptParser.reply_content(data) is None


@pytest.mark.asyncio
async def test_parse_empty_reply_raises(receipt_parser, upstream):
    upstream.on("POST", LLM_URL, llm_reply(None))
    with pytest.raises(UpstreamEmptyReplyError):
        await receipt_parser.parse("TOTAL 9.99")


@pytest.mark.asyncio
async def test_parse_returns_decoded_reply(receipt_parser, upstream):
    upstream.on("POST", LLM_URL, llm_reply('{"subtotal": 9.0, "tax": 0.99, "total": 9.99}'))
    assert await receipt_parser.parse("TOTAL 9.99") == {"subtotal": 9.0, "tax": 0.99, "total": 9.99}


@pytest.mark.parametrize("reply", ['{"total": NaN}', "Infinity", "-Infinity", '{"total": 1e400}'])
def test_decode_rejects_non_standard_numbers(reply):
    assert decode_reply(reply) == {"raw": reply}
