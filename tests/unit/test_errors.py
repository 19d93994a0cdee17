"""Unit tests for pixelfeed.api.errors — error taxonomy and messages."""

import pytest

from pixelfeed.api.errors import (
    APIError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UpstreamError,
    describe_validation_error,
)


class TestStatusCodes:
    """Each error class maps to one status code."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (BadRequestError("bad"), 400),
            (UnauthorizedError(), 401),
            (NotFoundError("Image"), 404),
            (ConflictError("taken"), 409),
            (RateLimitedError("slow down"), 429),
            (UpstreamError("failed"), 500),
        ],
    )
    def test_status(self, error, status):
        assert error.status_code == status
        assert isinstance(error, APIError)

    def test_explicit_status_overrides_default(self):
        assert APIError("teapot", status_code=418).status_code == 418

    def test_not_found_message(self):
        assert NotFoundError("Image").message == "Image not found"


class TestRateLimitedError:
    """Test the wait hint on RateLimitedError."""

    def test_retry_after_in_body(self):
        error = RateLimitedError("wait", retry_after=12)
        assert error.extra == {"retryAfter": 12}
        assert error.retry_after == 12

    def test_no_hint_without_retry_after(self):
        assert RateLimitedError("wait").extra == {}

    def test_headers_are_kept(self):
        error = RateLimitedError("wait", retry_after=3, headers={"Retry-After": "3"})
        assert error.headers == {"Retry-After": "3"}


class TestDescribeValidationError:
    """Test describe_validation_error()."""

    def test_missing_field(self):
        error = {"type": "missing", "loc": ("body", "imageUrl"), "msg": "Field required"}
        assert describe_validation_error(error) == ("imageUrl is required", "imageUrl")

    def test_wrong_int_type(self):
        error = {"type": "int_type", "loc": ("body", "hearts"), "msg": "..."}
        assert describe_validation_error(error) == ("hearts must be an integer", "hearts")

    def test_negative(self):
        error = {"type": "greater_than_equal", "loc": ("body", "hearts"), "msg": "..."}
        message, field = describe_validation_error(error)
        assert message == "hearts must be a non-negative integer"

    def test_blank_string(self):
        error = {"type": "value_error", "loc": ("body", "prompt"), "msg": "..."}
        assert describe_validation_error(error)[0] == "prompt must be a non-empty string"

    def test_unknown_type_falls_back_to_pydantic_message(self):
        error = {"type": "weird", "loc": ("body", "prompt"), "msg": "Something odd"}
        assert describe_validation_error(error) == ("prompt: Something odd", "prompt")

    def test_invalid_json(self):
        error = {"type": "json_invalid", "loc": ("body", 7), "msg": "JSON decode error"}
        assert describe_validation_error(error) == ("Request body is not valid JSON", None)

    def test_body_not_an_object(self):
        error = {"type": "model_attributes_type", "loc": ("body",), "msg": "..."}
        assert describe_validation_error(error) == ("Request body must be a JSON object", None)

    def test_path_parameter(self):
        error = {"type": "int_parsing", "loc": ("path", "image_id"), "msg": "Not an int"}
        assert describe_validation_error(error) == ("image_id: Not an int", None)
