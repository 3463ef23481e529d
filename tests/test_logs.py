import json
import logging

import pytest

from foyle import ulid
from foyle.logs import (
    AssertResult,
    LLMUsage,
    build_assertion,
    log_llm_usage,
    new_logger,
    zap_proto,
)
from foyle.models import Block, BlockKind, BlockOutput, BlockOutputItem


@pytest.fixture
def fixed_ids():
    ulid.mock_generator("01HZZZZZZZZZZZZZZZZZZZZZZZ")
    yield
    ulid.reset_generator()


def test_zap_proto_round_trips_through_json():
    outputs = BlockOutput(items=[BlockOutputItem(text_data="hello")])
    field = zap_proto("req", outputs)
    decoded = json.loads(json.dumps(field))
    assert decoded == {"req": {"items": [{"textData": "hello"}]}}


def test_zap_proto_uses_enum_names_and_omits_defaults():
    block = Block(id="b1", contents="echo hi", kind=BlockKind.CODE)
    assert zap_proto("block", block) == {
        "block": {"id": "b1", "contents": "echo hi", "kind": "CODE"}
    }


def test_zap_proto_reports_error_for_unserializable():
    field = zap_proto("req", object())
    assert "error" in field["req"]


def test_log_llm_usage_records_usage(caplog):
    usage = LLMUsage(input_tokens=10, output_tokens=5, model="m", provider="openai")
    with caplog.at_level(logging.INFO, logger=new_logger().name):
        log_llm_usage(usage)
    records = [r for r in caplog.records if r.getMessage() == "LLM usage"]
    assert len(records) == 1
    assert records[0].usage == {
        "input_tokens": 10,
        "output_tokens": 5,
        "model": "m",
        "provider": "openai",
    }


def test_build_assertion_passed(fixed_ids):
    assertion = build_assertion("ONE_CODE_CELL", True)
    assert assertion.result == AssertResult.PASSED
    assert assertion.name == "ONE_CODE_CELL"
    assert assertion.id == "01HZZZZZZZZZZZZZZZZZZZZZZZ"


def test_build_assertion_failed(fixed_ids):
    assert build_assertion("X", False).result == AssertResult.FAILED


def test_build_assertion_ids_are_valid():
    assertion = build_assertion("X", True)
    assert ulid.valid_id(assertion.id)