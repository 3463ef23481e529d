import pytest

from foyle.oai import (
    CONTEXT_LENGTH_EXCEEDED_CODE,
    MISSING_DEPLOYMENT,
    APIError,
    AzureModelMapper,
    error_is,
    http_status_code,
    read_api_key,
)


def _wrapped(inner: BaseException) -> BaseException:
    try:
        try:
            raise inner
        except Exception as exc:
            raise RuntimeError("wrapped") from exc
    except RuntimeError as outer:
        return outer


def test_http_status_code_basic():
    assert http_status_code(APIError(http_status_code=404)) == 404


def test_http_status_code_wrapped():
    assert http_status_code(_wrapped(APIError(http_status_code=509))) == 509


def test_http_status_code_not_api_error():
    assert http_status_code(RuntimeError("not an api error")) == -1


def test_error_is_matching_code():
    err = APIError("too long", code=CONTEXT_LENGTH_EXCEEDED_CODE)
    assert error_is(err, CONTEXT_LENGTH_EXCEEDED_CODE) is True


def test_error_is_other_code():
    assert error_is(APIError(code="rate_limit"), CONTEXT_LENGTH_EXCEEDED_CODE) is False


def test_error_is_non_string_code():
    assert error_is(APIError(code=400), "400") is False


def test_error_is_not_api_error():
    assert error_is(ValueError("x"), CONTEXT_LENGTH_EXCEEDED_CODE) is False


def test_azure_model_mapper_known_and_missing():
    mapper = AzureModelMapper(model_to_deployment={"gpt-4o": "deploy-1"})
    assert mapper.map("gpt-4o") == "deploy-1"
    assert mapper.map("other") == MISSING_DEPLOYMENT


def test_read_api_key_strips_whitespace(tmp_path):
    key_file = tmp_path / "key"
    key_file.write_text("  placeholder\n", encoding="utf-8")
    assert read_api_key(str(key_file)) == "placeholder"


def test_read_api_key_requires_path():
    with pytest.raises(ValueError, match="APIKeyFile is required"):
        read_api_key("")


def test_read_api_key_missing_file(tmp_path):
    with pytest.raises(OSError, match="could not read APIKeyFile"):
        read_api_key(str(tmp_path / "missing"))